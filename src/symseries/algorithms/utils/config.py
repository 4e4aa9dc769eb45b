# Global flag for Numba's fastmath option
FASTMATH = False

# Worker count used when a configuration requests 0 threads
DEFAULT_N_THREADS = 1

# Partitioning of the larger operand
MIN_BLOCK_SIZE = 64
MAX_BLOCKS = 8

# Dense accumulation is used when the product code range holds at most
# DENSE_MAX_SIZE slots and at least DENSE_MIN_FILL candidate pairs per slot
DENSE_MAX_SIZE = 1 << 22
DENSE_MIN_FILL = 0.25

# Packed monomial codes must stay below 2**MAX_CODE_BITS (int64 arithmetic)
MAX_CODE_BITS = 62
