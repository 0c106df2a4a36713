# config.py
import os

LOW_STOCK_THRESHOLD = 3
DEFAULT_STOCK_LEVEL = 10

# half-open range the low-stock responder draws refill quantities from
WARNING_REFILL_RANGE = (0, 9)

# each nesting level costs about two Python frames; stays under the default
# recursion limit of 1000. None disables the guard (unbounded cascades)
MAX_CASCADE_DEPTH = 300

DEFAULT_MACHINE_IDS = ("001", "002", "003")
DEFAULT_STEPS = 5

# demo event mix used by the random event source
SALE_PROBABILITY = 0.5
SALE_QUANTITIES = (1, 2)
REFILL_QUANTITIES = (3, 5)

LOG_LEVEL = os.environ.get("VENDING_LOG_LEVEL", "INFO")
