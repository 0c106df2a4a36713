# bus.py
"""
In-process publish/subscribe broker.

Dispatch is synchronous: `publish` calls every subscriber registered for the
event's type, in subscription order, before it returns. A subscriber may
publish again from inside `handle`; that nested event is fully dispatched
before the next subscriber of the outer event runs (depth-first cascade).

Thread safety:
    Not thread-safe. The registry mutations performed by subscribers assume a
    single writer; callers that step the fleet from several threads must hold
    one lock around every `publish` (see start_simulation.py).
"""

from typing import Optional, Protocol, Union

from config import MAX_CASCADE_DEPTH
from events import Event, EventType
from logger import get_logger

logger = get_logger("bus")


class Subscriber(Protocol):
    def handle(self, event: Event) -> None: ...


class CascadeDepthExceeded(RuntimeError):
    """Raised when nested publishes go deeper than the bus allows."""

    def __init__(self, event: Event, depth: int) -> None:
        super().__init__(
            f"Cascade depth {depth} exceeded while publishing "
            f"'{event.type.value}' for machine {event.machine_id}"
        )
        self.event = event
        self.depth = depth


class MessageBus:
    """
    Type-keyed subscriber table with synchronous fan-out.

    Args:
        max_depth: Maximum nesting of publish calls. A publish issued while
            `max_depth` publishes are already on the stack raises
            CascadeDepthExceeded. Subscribers already called keep their
            mutations, so the registry is left partly updated (e.g. a
            machine refilled only part of the way). None leaves cascades
            unbounded, in which case two subscribers that always re-trigger
            each other recurse until Python's own recursion limit.
    """

    def __init__(self, max_depth: Optional[int] = MAX_CASCADE_DEPTH):
        self._subs: dict[EventType, list] = {}
        self._max_depth = max_depth
        self._depth = 0

    @property
    def depth(self) -> int:
        """Number of publish calls currently on the stack."""
        return self._depth

    def _registered(self, event_type: Union[EventType, str]) -> Optional[list]:
        # a string naming no event type simply has no registrations
        try:
            return self._subs.get(EventType(event_type))
        except ValueError:
            return None

    def subscribe(self, event_type: Union[EventType, str], subscriber: Subscriber) -> None:
        event_type = EventType(event_type)
        # duplicates are kept on purpose: each registration is one call per publish
        self._subs.setdefault(event_type, []).append(subscriber)
        logger.debug(f"Subscribed {type(subscriber).__name__} to {event_type.value}")

    def unsubscribe(self, event_type: Union[EventType, str], subscriber: Subscriber) -> None:
        """Remove the first registration of `subscriber` under `event_type`, if any."""
        subs = self._registered(event_type)
        if not subs:
            return
        # identity, not equality: two equal-looking subscribers are still distinct
        for index, registered in enumerate(subs):
            if registered is subscriber:
                del subs[index]
                logger.debug(f"Unsubscribed {type(subscriber).__name__} from {EventType(event_type).value}")
                return

    def publish(self, event: Event) -> None:
        subs = self._subs.get(event.type)
        if not subs:
            logger.debug(f"No subscribers for {event.type.value}")
            return

        if self._max_depth is not None and self._depth >= self._max_depth:
            error = CascadeDepthExceeded(event, self._depth + 1)
            logger.error(str(error))
            raise error

        self._depth += 1
        try:
            # snapshot: (un)subscribing mid-dispatch applies to the next publish
            for subscriber in tuple(subs):
                subscriber.handle(event)
        finally:
            self._depth -= 1

    def subscribers(self, event_type: Union[EventType, str]) -> tuple:
        return tuple(self._registered(event_type) or ())

    def has_subscribers(self, event_type: Union[EventType, str]) -> bool:
        return bool(self._registered(event_type))

    def clear(self) -> None:
        """Drop every registration, e.g. when a simulation is torn down."""
        self._subs.clear()
