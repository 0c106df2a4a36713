# rules.py
from owlready2 import sync_reasoner, destroy_entity, OwlReadyError

from config import LOW_STOCK_THRESHOLD
from logger import get_logger
from ontology import onto

logger = get_logger("rules")


def check_low_stock(threshold=LOW_STOCK_THRESHOLD):
    """Rebuild LowStock individuals for mirrored machines below `threshold`.

    Returns the ids of the low machines, in mirror order.
    """
    low_ids = []
    with onto:
        for ls in list(onto.LowStock.instances()):
            destroy_entity(ls)

        for machine in onto.VendingMachine.instances():
            qty = machine.stockLevel if machine.stockLevel is not None else 0
            if qty < threshold:
                ls = onto.LowStock(f"LowStock_{machine.name}")
                ls.concerns = machine
                low_ids.append(machine.machineId)
    return low_ids


def run_reasoner_safely(threshold=LOW_STOCK_THRESHOLD):
    low_ids = check_low_stock(threshold)
    try:
        with onto:
            sync_reasoner()
    except (OwlReadyError, OSError) as e:
        # the bundled HermiT reasoner needs a Java runtime
        logger.warning(f"Reasoner pass skipped: {e}")
    return low_ids
