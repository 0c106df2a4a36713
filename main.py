# main.py

import time

from config import DEFAULT_MACHINE_IDS, DEFAULT_STEPS, DEFAULT_STOCK_LEVEL, LOW_STOCK_THRESHOLD
from events import EventType
from logger import get_logger, setup_logger
from model import FleetModel
from ontology import save_fleet, sync_fleet
from rules import run_reasoner_safely

logger = get_logger("main")


def stock_status(level):
    if level < LOW_STOCK_THRESHOLD:
        return "LOW STOCK"
    if level < DEFAULT_STOCK_LEVEL:
        return "ADEQUATE"
    return "FULL"


def log_summary(sim, elapsed, low_ids):
    logger.info("=" * 60)
    logger.info("FLEET SIMULATION SUMMARY")
    logger.info("=" * 60)
    logger.info(f"Simulation time: {elapsed:.2f} seconds")
    logger.info(f"Steps completed: {sim.current_step}")
    for event_type in EventType:
        logger.info(f"{event_type.value:<18} events: {sim.tally.count(event_type)}")

    logger.info("Final inventory:")
    for machine in sim.machines:
        logger.info(f"  machine {machine.id} | stock {machine.stock_level:3d} | {stock_status(machine.stock_level)}")

    if low_ids:
        logger.warning(f"Low stock machines: {', '.join(low_ids)}")
    else:
        logger.info("No low stock machines")


if __name__ == "__main__":
    setup_logger()

    sim = FleetModel(DEFAULT_MACHINE_IDS, initial_stock=DEFAULT_STOCK_LEVEL, steps=DEFAULT_STEPS)

    logger.info("Initial inventory:")
    for machine in sim.machines:
        logger.info(f"  machine {machine.id} | stock {machine.stock_level}")

    start_time = time.time()
    sim.run()
    end_time = time.time()

    sync_fleet(sim.machines)
    low_ids = run_reasoner_safely()
    log_summary(sim, end_time - start_time, low_ids)

    try:
        save_fleet("vending.owl")
    except OSError as e:
        logger.error(f"Save failed: {e}")
