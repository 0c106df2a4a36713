# machines.py
"""
Machine state and the shared registry subscribers read and mutate.
"""

from dataclasses import dataclass
from typing import Iterable, Iterator, Optional

from config import DEFAULT_STOCK_LEVEL


@dataclass
class Machine:
    """
    One vending machine.

    `stock_level` is allowed to go negative when a sale is larger than the
    remaining stock; the simulation keeps that as-is.
    """

    id: str
    stock_level: int = DEFAULT_STOCK_LEVEL

    def __post_init__(self) -> None:
        if not isinstance(self.id, str) or not self.id.strip():
            raise ValueError("Machine id must be a non-empty string.")


class MachineRegistry:
    """Machines keyed by id. Handed by reference to every subscriber that needs it."""

    def __init__(self, machines: Iterable[Machine] = ()) -> None:
        self._machines: dict[str, Machine] = {}
        for machine in machines:
            self.add(machine)

    @classmethod
    def with_ids(cls, ids: Iterable[str], stock_level: int = DEFAULT_STOCK_LEVEL) -> "MachineRegistry":
        return cls(Machine(id=machine_id, stock_level=stock_level) for machine_id in ids)

    def add(self, machine: Machine) -> Machine:
        # Ids are never reused, so a second machine with the same id is a caller bug.
        if machine.id in self._machines:
            raise ValueError(f"A machine with id '{machine.id}' already exists.")
        self._machines[machine.id] = machine
        return machine

    def get(self, machine_id: str) -> Optional[Machine]:
        return self._machines.get(machine_id)

    def ids(self) -> list[str]:
        return list(self._machines)

    def __contains__(self, machine_id: object) -> bool:
        return machine_id in self._machines

    def __iter__(self) -> Iterator[Machine]:
        return iter(list(self._machines.values()))

    def __len__(self) -> int:
        return len(self._machines)
