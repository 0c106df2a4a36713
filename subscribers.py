# subscribers.py
"""
Subscribers that carry the fleet's stock rules.

Sale and refill handlers mutate the shared MachineRegistry and publish
follow-up events; the low-stock responder answers every warning with a
refill, which is where the sale -> warning -> refill -> ok cascade comes from.
"""

import random
from collections import Counter, deque
from typing import Callable, NamedTuple, Optional

from bus import MessageBus, Subscriber
from config import LOW_STOCK_THRESHOLD, WARNING_REFILL_RANGE
from events import (
    Event,
    EventType,
    LowStockWarningEvent,
    MachineRefillEvent,
    MachineSaleEvent,
    StockLevelOkEvent,
)
from logger import get_logger
from machines import MachineRegistry

logger = get_logger("subscribers")


class MachineSaleSubscriber:
    def __init__(self, machines: MachineRegistry, bus: MessageBus, threshold: int = LOW_STOCK_THRESHOLD) -> None:
        self.machines = machines
        self._bus = bus
        self.threshold = threshold

    def handle(self, event: MachineSaleEvent) -> None:
        machine = self.machines.get(event.machine_id)
        if machine is None:
            logger.error(f"Machine {event.machine_id} not found, dropping sale of {event.sold_quantity}")
            return

        machine.stock_level -= event.sold_quantity
        if machine.stock_level < self.threshold:
            self._bus.publish(LowStockWarningEvent(machine.id))


class MachineRefillSubscriber:
    def __init__(self, machines: MachineRegistry, bus: MessageBus, threshold: int = LOW_STOCK_THRESHOLD) -> None:
        self.machines = machines
        self._bus = bus
        self.threshold = threshold

    def handle(self, event: MachineRefillEvent) -> None:
        """Apply the refill and report a threshold crossing in either direction."""
        machine = self.machines.get(event.machine_id)
        if machine is None:
            logger.error(f"Machine {event.machine_id} not found, dropping refill of {event.refill_quantity}")
            return

        before = machine.stock_level
        machine.stock_level = before + event.refill_quantity
        if before < self.threshold <= machine.stock_level:
            # only the refill that crosses the threshold reports recovery
            self._bus.publish(StockLevelOkEvent(machine.id))
        elif machine.stock_level < self.threshold:
            # still short after this refill
            self._bus.publish(LowStockWarningEvent(machine.id))


def uniform_refill_quantity(low: int = WARNING_REFILL_RANGE[0], high: int = WARNING_REFILL_RANGE[1],
                            rng: Optional[random.Random] = None) -> Callable[[], int]:
    """Return a sampler of integers in [low, high)."""
    rng = rng or random.Random()
    return lambda: rng.randrange(low, high)


class StockWarningSubscriber:
    """
    Answers every low-stock warning with a refill for the same machine.

    Holds no registry reference; the refill goes back through the bus so the
    refill subscriber applies it.
    """

    def __init__(self, bus: MessageBus, refill_quantity: Optional[Callable[[], int]] = None) -> None:
        self._bus = bus
        self.refill_quantity = refill_quantity or uniform_refill_quantity()

    def handle(self, event: LowStockWarningEvent) -> None:
        logger.debug(f"Low stock on machine {event.machine_id}, requesting refill")
        self._bus.publish(MachineRefillEvent(event.machine_id, self.refill_quantity()))


class StockLevelOkSubscriber:
    def handle(self, event: StockLevelOkEvent) -> None:
        logger.info(f"Now the stock level of machine {event.machine_id} is OK")


class EventTally:
    """Counts handled events per type and keeps the most recent ones."""

    def __init__(self, keep: int = 200) -> None:
        self.counts: Counter = Counter()
        self.recent: deque = deque(maxlen=keep)

    def handle(self, event: Event) -> None:
        self.counts[event.type] += 1
        self.recent.append(event)

    def count(self, event_type) -> int:
        return self.counts[EventType(event_type)]


class FleetSubscribers(NamedTuple):
    sale: MachineSaleSubscriber
    refill: MachineRefillSubscriber
    low_stock: StockWarningSubscriber
    stock_ok: StockLevelOkSubscriber

    def registrations(self) -> tuple[tuple[EventType, Subscriber], ...]:
        return (
            (EventType.SALE, self.sale),
            (EventType.REFILL, self.refill),
            (EventType.LOW_STOCK_WARNING, self.low_stock),
            (EventType.STOCK_LEVEL_OK, self.stock_ok),
        )


def wire_fleet(bus: MessageBus, machines: MachineRegistry,
               refill_quantity: Optional[Callable[[], int]] = None,
               threshold: int = LOW_STOCK_THRESHOLD) -> FleetSubscribers:
    """Create the four stock subscribers and register each under its event type."""
    subscribers = FleetSubscribers(
        sale=MachineSaleSubscriber(machines, bus, threshold),
        refill=MachineRefillSubscriber(machines, bus, threshold),
        low_stock=StockWarningSubscriber(bus, refill_quantity),
        stock_ok=StockLevelOkSubscriber(),
    )
    for event_type, subscriber in subscribers.registrations():
        bus.subscribe(event_type, subscriber)
    return subscribers


def unwire_fleet(bus: MessageBus, subscribers: FleetSubscribers) -> None:
    for event_type, subscriber in subscribers.registrations():
        bus.unsubscribe(event_type, subscriber)
