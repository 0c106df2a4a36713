# model.py
from mesa import Model, Agent

from bus import MessageBus
from config import (
    DEFAULT_MACHINE_IDS,
    DEFAULT_STEPS,
    DEFAULT_STOCK_LEVEL,
    LOW_STOCK_THRESHOLD,
    MAX_CASCADE_DEPTH,
    REFILL_QUANTITIES,
    SALE_PROBABILITY,
    SALE_QUANTITIES,
    WARNING_REFILL_RANGE,
)
from events import EventType, MachineRefillEvent, MachineSaleEvent
from logger import get_logger
from machines import Machine, MachineRegistry
from subscribers import EventTally, uniform_refill_quantity, unwire_fleet, wire_fleet

logger = get_logger("model")


class EventSourceAgent(Agent):
    """Feeds one random sale or refill into the bus per step."""

    def step(self):
        event = self.model.generate_event()
        logger.debug(f"Step {self.model.current_step}: publishing {event.type.value} for {event.machine_id}")
        self.model.bus.publish(event)


class FleetModel(Model):
    def __init__(self, machine_ids=DEFAULT_MACHINE_IDS, initial_stock=DEFAULT_STOCK_LEVEL,
                 steps=DEFAULT_STEPS, events_per_step=1, threshold=LOW_STOCK_THRESHOLD,
                 max_depth=MAX_CASCADE_DEPTH, observers=(), seed=None):
        super().__init__(seed=seed)
        self.bus = MessageBus(max_depth=max_depth)
        self.machines = MachineRegistry.with_ids(machine_ids, initial_stock)
        self.max_steps = steps
        self.current_step = 0
        self.tally = EventTally()

        # observers before the rules so they see a cascade in publish order
        self.event_observers = [self.tally, *observers]
        for observer in self.event_observers:
            self.subscribe_all(observer)
        self.subscribers = wire_fleet(
            self.bus,
            self.machines,
            refill_quantity=uniform_refill_quantity(*WARNING_REFILL_RANGE, rng=self.random),
            threshold=threshold,
        )

        # create agents (auto-registered in Mesa 3.x)
        for _ in range(events_per_step):
            EventSourceAgent(self)

    def subscribe_all(self, subscriber):
        for event_type in EventType:
            self.bus.subscribe(event_type, subscriber)

    def unsubscribe_all(self, subscriber):
        for event_type in EventType:
            self.bus.unsubscribe(event_type, subscriber)

    def random_machine(self):
        return self.random.choice(self.machines.ids())

    def generate_event(self):
        if self.random.random() < SALE_PROBABILITY:
            return MachineSaleEvent(self.random_machine(), self.random.choice(SALE_QUANTITIES))
        return MachineRefillEvent(self.random_machine(), self.random.choice(REFILL_QUANTITIES))

    def add_machine(self, machine_id, stock_level=DEFAULT_STOCK_LEVEL):
        """Register a new machine at runtime; raises ValueError on a duplicate id."""
        machine = self.machines.add(Machine(id=machine_id, stock_level=stock_level))
        logger.info(f"Machine {machine_id} added with stock {stock_level}")
        return machine

    def stock_levels(self):
        return {machine.id: machine.stock_level for machine in self.machines}

    def step(self):
        self.current_step += 1
        self.agents.shuffle_do("step")

    def run(self):
        for _ in range(self.max_steps):
            self.step()
        self.shutdown()

    def shutdown(self):
        unwire_fleet(self.bus, self.subscribers)
        for observer in self.event_observers:
            self.unsubscribe_all(observer)
