"""Tests for the stock rule subscribers and the cascade they form."""

import random

import pytest

from events import (
    EventType,
    LowStockWarningEvent,
    MachineRefillEvent,
    MachineSaleEvent,
    StockLevelOkEvent,
)
from subscribers import (
    EventTally,
    MachineRefillSubscriber,
    MachineSaleSubscriber,
    StockLevelOkSubscriber,
    StockWarningSubscriber,
    uniform_refill_quantity,
    unwire_fleet,
    wire_fleet,
)


@pytest.fixture
def followups(bus, make_recorder):
    """Record the follow-up events a rule subscriber publishes."""
    recorder = make_recorder()
    bus.subscribe(EventType.LOW_STOCK_WARNING, recorder)
    bus.subscribe(EventType.STOCK_LEVEL_OK, recorder)
    return recorder


class TestMachineSaleSubscriber:
    def test_sale_decrements_stock(self, bus, machines, followups):
        MachineSaleSubscriber(machines, bus).handle(MachineSaleEvent("001", 2))

        assert machines.get("001").stock_level == 8
        assert followups.handled == []

    @pytest.mark.parametrize("start, sold, warned", [(10, 7, False), (10, 8, True), (3, 1, True), (1, 4, True)])
    def test_warning_when_below_threshold(self, bus, machines, followups, start, sold, warned):
        machines.get("002").stock_level = start

        MachineSaleSubscriber(machines, bus).handle(MachineSaleEvent("002", sold))

        assert machines.get("002").stock_level == start - sold
        expected = [LowStockWarningEvent("002")] if warned else []
        assert followups.handled == expected

    def test_stock_may_go_negative(self, bus, machines):
        MachineSaleSubscriber(machines, bus).handle(MachineSaleEvent("003", 15))

        assert machines.get("003").stock_level == -5

    def test_unknown_machine_is_logged_and_dropped(self, bus, machines, followups, log_records):
        MachineSaleSubscriber(machines, bus).handle(MachineSaleEvent("999", 1))

        assert [m.stock_level for m in machines] == [10, 10, 10]
        assert followups.handled == []
        errors = [r for r in log_records if r["level"].name == "ERROR"]
        assert len(errors) == 1
        assert "999" in errors[0]["message"]

    def test_custom_threshold(self, bus, machines, followups):
        MachineSaleSubscriber(machines, bus, threshold=5).handle(MachineSaleEvent("001", 6))

        assert followups.handled == [LowStockWarningEvent("001")]


class TestMachineRefillSubscriber:
    @pytest.mark.parametrize(
        "start, refill, expected",
        [
            (2, 1, StockLevelOkEvent("001")),   # crosses the threshold
            (0, 8, StockLevelOkEvent("001")),
            (1, 1, LowStockWarningEvent("001")),  # still short
            (-4, 0, LowStockWarningEvent("001")),
            (3, 2, None),  # already healthy
            (10, 5, None),
        ],
    )
    def test_transition_classification(self, bus, machines, followups, start, refill, expected):
        machines.get("001").stock_level = start

        MachineRefillSubscriber(machines, bus).handle(MachineRefillEvent("001", refill))

        assert machines.get("001").stock_level == start + refill
        assert followups.handled == ([expected] if expected else [])

    def test_unknown_machine_is_logged_and_dropped(self, bus, machines, followups, log_records):
        MachineRefillSubscriber(machines, bus).handle(MachineRefillEvent("999", 5))

        assert followups.handled == []
        assert any(r["level"].name == "ERROR" and "999" in r["message"] for r in log_records)


class TestStockWarningSubscriber:
    def test_every_warning_requests_one_refill(self, bus, make_recorder):
        refills = make_recorder()
        bus.subscribe(EventType.REFILL, refills)
        subscriber = StockWarningSubscriber(bus, refill_quantity=lambda: 4)

        subscriber.handle(LowStockWarningEvent("002"))
        subscriber.handle(LowStockWarningEvent("002"))

        assert refills.handled == [MachineRefillEvent("002", 4)] * 2

    def test_default_quantity_range(self):
        sample = uniform_refill_quantity(rng=random.Random(7))
        values = {sample() for _ in range(500)}

        assert values <= set(range(0, 9))
        assert 0 in values and 8 in values


class TestStockLevelOkSubscriber:
    def test_logs_recovery(self, log_records):
        StockLevelOkSubscriber().handle(StockLevelOkEvent("003"))

        infos = [r for r in log_records if r["level"].name == "INFO"]
        assert len(infos) == 1
        assert "003" in infos[0]["message"]


class TestFleetCascade:
    def test_sale_cascades_to_refill_and_recovery(self, bus, machines):
        tally = EventTally()
        for event_type in EventType:
            bus.subscribe(event_type, tally)
        wire_fleet(bus, machines, refill_quantity=lambda: 5)

        bus.publish(MachineSaleEvent("001", 8))

        assert machines.get("001").stock_level == 7
        assert list(tally.recent) == [
            MachineSaleEvent("001", 8),
            LowStockWarningEvent("001"),
            MachineRefillEvent("001", 5),
            StockLevelOkEvent("001"),
        ]

    def test_empty_refills_repeat_until_recovered(self, bus, machines):
        quantities = iter([0, 0, 1])
        tally = EventTally()
        bus.subscribe(EventType.REFILL, tally)
        wire_fleet(bus, machines, refill_quantity=lambda: next(quantities))

        bus.publish(MachineSaleEvent("002", 8))

        assert machines.get("002").stock_level == 3
        assert tally.count(EventType.REFILL) == 3
        assert bus.depth == 0

    def test_random_refill_cascade_terminates(self, bus, machines):
        rng = random.Random(1234)
        tally = EventTally()
        for event_type in EventType:
            bus.subscribe(event_type, tally)
        wire_fleet(bus, machines, refill_quantity=uniform_refill_quantity(rng=rng))

        bus.publish(MachineSaleEvent("001", 8))

        assert machines.get("001").stock_level >= 3
        assert tally.count(EventType.SALE) == 1
        assert tally.count(EventType.STOCK_LEVEL_OK) == 1
        assert tally.count(EventType.REFILL) == tally.count(EventType.LOW_STOCK_WARNING)

    def test_unwire_stops_all_rules(self, bus, machines):
        subscribers = wire_fleet(bus, machines)
        unwire_fleet(bus, subscribers)

        bus.publish(MachineSaleEvent("001", 9))

        assert machines.get("001").stock_level == 10
        assert not any(bus.has_subscribers(event_type) for event_type in EventType)
