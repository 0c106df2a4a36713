# events.py
"""
Domain events for the vending fleet.

Events are immutable records of something that happened to a machine. The
`type` class attribute is the routing key the bus dispatches on.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, ClassVar


class EventType(str, Enum):
    SALE = "sale"
    REFILL = "refill"
    LOW_STOCK_WARNING = "low-stock-warning"
    STOCK_LEVEL_OK = "stock-level-ok"


def _check_quantity(name: str, value: Any, minimum: int) -> None:
    # bool is an int subclass but never a meaningful quantity
    if not isinstance(value, int) or isinstance(value, bool) or value < minimum:
        raise ValueError(f"{name} must be an integer >= {minimum}.")


@dataclass(frozen=True)
class Event:
    """Base event type."""

    type: ClassVar[EventType]

    machine_id: str

    def __post_init__(self) -> None:
        if not isinstance(self.machine_id, str) or not self.machine_id.strip():
            raise ValueError("machine_id must be a non-empty string.")

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.type.value, "machine_id": self.machine_id}


@dataclass(frozen=True)
class MachineSaleEvent(Event):
    type: ClassVar[EventType] = EventType.SALE

    sold_quantity: int

    def __post_init__(self) -> None:
        super().__post_init__()
        _check_quantity("sold_quantity", self.sold_quantity, 1)

    def to_dict(self) -> dict[str, Any]:
        return {**super().to_dict(), "quantity": self.sold_quantity}


@dataclass(frozen=True)
class MachineRefillEvent(Event):
    """A refill of `refill_quantity` units; zero is a legal (empty) refill."""

    type: ClassVar[EventType] = EventType.REFILL

    refill_quantity: int

    def __post_init__(self) -> None:
        super().__post_init__()
        _check_quantity("refill_quantity", self.refill_quantity, 0)

    def to_dict(self) -> dict[str, Any]:
        return {**super().to_dict(), "quantity": self.refill_quantity}


@dataclass(frozen=True)
class LowStockWarningEvent(Event):
    type: ClassVar[EventType] = EventType.LOW_STOCK_WARNING


@dataclass(frozen=True)
class StockLevelOkEvent(Event):
    type: ClassVar[EventType] = EventType.STOCK_LEVEL_OK
