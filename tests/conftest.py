"""Shared fixtures for the fleet tests."""

import pytest
from loguru import logger

from bus import MessageBus
from machines import MachineRegistry


class Recorder:
    """Subscriber that remembers what it handled, optionally running a hook."""

    def __init__(self, name="recorder", log=None, on_handle=None):
        self.name = name
        self.handled = []
        self.log = log
        self.on_handle = on_handle

    def handle(self, event):
        self.handled.append(event)
        if self.log is not None:
            self.log.append((self.name, event))
        if self.on_handle is not None:
            self.on_handle(event)


@pytest.fixture
def bus():
    return MessageBus()


@pytest.fixture
def machines():
    return MachineRegistry.with_ids(("001", "002", "003"), stock_level=10)


@pytest.fixture
def log_records():
    """Collect loguru records emitted during the test."""
    records = []
    handler_id = logger.add(lambda message: records.append(message.record), level="DEBUG")
    yield records
    logger.remove(handler_id)


@pytest.fixture
def make_recorder():
    return Recorder
