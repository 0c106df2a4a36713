# ontology.py
"""
OWL mirror of the fleet.

The registry stays the source of truth; `sync_fleet` copies its current
state into the ontology so rules.py can classify machines and main.py can
export a report.
"""

from owlready2 import get_ontology, Thing, DataProperty, ObjectProperty, FunctionalProperty, destroy_entity

from logger import get_logger

logger = get_logger("ontology")

onto = get_ontology("http://example.org/vending.owl")

with onto:
    # Classes
    class VendingMachine(Thing): pass
    class LowStock(Thing): pass

    # Data properties
    class machineId(DataProperty, FunctionalProperty):  range = [str]
    class stockLevel(DataProperty, FunctionalProperty): range = [int]

    # Object properties
    class concerns(ObjectProperty, FunctionalProperty): domain = [LowStock]; range = [VendingMachine]


def individual_name(machine_id):
    return f"Machine_{machine_id}"


def clear_fleet():
    with onto:
        for cls in (LowStock, VendingMachine):
            for inst in list(cls.instances()):
                destroy_entity(inst)


def sync_fleet(machines):
    """Replace the mirrored machines with the current state of `machines`."""
    clear_fleet()
    individuals = []
    with onto:
        for machine in machines:
            ind = VendingMachine(individual_name(machine.id))
            ind.machineId = machine.id
            ind.stockLevel = machine.stock_level
            individuals.append(ind)
    logger.debug(f"Mirrored {len(individuals)} machine(s) into {onto.base_iri}")
    return individuals


def save_fleet(path="vending.owl"):
    onto.save(file=path, format="rdfxml")
    logger.info(f"Ontology saved to '{path}'")
