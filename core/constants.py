"""
Constants Module

Centralized location for all magic numbers and hardcoded values used throughout
the hook miner. Flag bit positions, search bounds, batch sizes and difficulty
thresholds live here so they can be audited and tuned without searching
through code.
"""

# ============================================================================
# Hook Flags
# ============================================================================

# Number of low-order address bits reserved for hook permission flags
FLAG_BITS = 14

# Mask for the bottom 14 bits of an address
FLAG_MASK = (1 << FLAG_BITS) - 1  # 0x3FFF

# Uniswap v4 hook permission bits (Hooks.sol), highest bit first
BEFORE_INITIALIZE_FLAG = 1 << 13
AFTER_INITIALIZE_FLAG = 1 << 12
BEFORE_ADD_LIQUIDITY_FLAG = 1 << 11
AFTER_ADD_LIQUIDITY_FLAG = 1 << 10
BEFORE_REMOVE_LIQUIDITY_FLAG = 1 << 9
AFTER_REMOVE_LIQUIDITY_FLAG = 1 << 8
BEFORE_SWAP_FLAG = 1 << 7
AFTER_SWAP_FLAG = 1 << 6
BEFORE_DONATE_FLAG = 1 << 5
AFTER_DONATE_FLAG = 1 << 4
BEFORE_SWAP_RETURNS_DELTA_FLAG = 1 << 3
AFTER_SWAP_RETURNS_DELTA_FLAG = 1 << 2
AFTER_ADD_LIQUIDITY_RETURNS_DELTA_FLAG = 1 << 1
AFTER_REMOVE_LIQUIDITY_RETURNS_DELTA_FLAG = 1 << 0

# ============================================================================
# CREATE2 Configuration
# ============================================================================

# Deterministic deployment proxy (same address on every network)
CREATE2_DEPLOYER = "0x4e59b44847b379578588920cA78FbF26c0B4956C"

# Leading byte of the CREATE2 preimage
CREATE2_PREFIX = b"\xff"

# Field widths (bytes)
ADDRESS_LENGTH = 20
SALT_LENGTH = 32
HASH_LENGTH = 32

# ============================================================================
# Mining Configuration
# ============================================================================

# Default iteration bound for cooperative (async) mining
MAX_ITERATIONS = 500_000

# Default iteration bound for blocking (sync) mining
SYNC_MAX_ITERATIONS = 50_000

# Yield control back to the event loop every N iterations
YIELD_BATCH_SIZE = 10_000

# Report progress every N iterations
PROGRESS_INTERVAL = 5_000

# Supported mining modes
MINING_MODES = ("async", "sync", "parallel")

# Default mining mode
DEFAULT_MINING_MODE = "async"

# ============================================================================
# Parallel Mining Configuration
# ============================================================================

# Salts handed to a CPU worker per request
CPU_CHUNK_SIZE = 20_000

# Default number of CPU workers (0 = physical core count)
DEFAULT_CPU_WORKERS = 0

# Timeout while waiting for a worker response (seconds)
WORKER_RESPONSE_TIMEOUT = 60.0

# Timeout while joining workers on shutdown (seconds)
WORKER_JOIN_TIMEOUT = 5.0

# ============================================================================
# Difficulty Estimation
# ============================================================================

# (upper bound on expected iterations, tier name); last tier is the fallback
DIFFICULTY_THRESHOLDS = (
    (50, "Instant"),
    (500, "Fast"),
    (5_000, "Medium"),
    (50_000, "Slow"),
)

# Tier used when no threshold applies
DIFFICULTY_FALLBACK = "Very Slow"

# ============================================================================
# Logging Configuration
# ============================================================================

# Maximum log file size for rotation (bytes) - 10MB
LOG_MAX_SIZE = 10 * 1024 * 1024

# Number of backup log files to keep
LOG_BACKUP_COUNT = 5

# Default configuration file
DEFAULT_CONFIG_FILE = "config.yaml"

# ============================================================================
# Display Configuration
# ============================================================================

# Number of characters to show for truncated addresses
ADDRESS_DISPLAY_LENGTH = 10

# Miner Name
MINER_NAME = "hook-miner"

# Miner Version
MINER_VERSION = "0.1.0"

# ============================================================================
# Hashrate Smoothing
# ============================================================================

# Exponential moving average weight for old hashrate values
HASHRATE_EMA_WEIGHT_OLD = 0.9

# Hashrate display threshold for KH/s vs MH/s
HASHRATE_MH_THRESHOLD = 1_000_000

# Hashrate display threshold for H/s vs KH/s
HASHRATE_KH_THRESHOLD = 1_000
