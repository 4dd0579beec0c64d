"""
EpochMint Configuration

Reward Epoch System:
- Each successful claim closes one mining epoch and opens the next
- A claim must carry a signature whose digest is at or below the mining target
- The target is retargeted every BLOCKS_PER_READJUSTMENT epochs
- Burning switches on when difficulty sinks well below its observed peak
"""

# =============================================================================
# TOKEN UNITS
# =============================================================================

# Base units per whole token (18 decimals, like most fungible tokens)
DECIMALS = 18
UNIT = 10 ** DECIMALS

# Fixed reward paid to each successful claimant
MINING_REWARD = 50 * UNIT

# Fixed amount destroyed from the distributor's holdings per claim while burning
BURN_AMOUNT = 5 * UNIT

# Ledger account that holds the distributable supply
DISTRIBUTOR_ADDRESS = "0x" + "00" * 18 + "e0e0"

# =============================================================================
# MINING TARGET
# =============================================================================

# A digest (read as an unsigned 256-bit integer) must be <= the target.
# Smaller target = harder puzzle.
MIN_TARGET = 2 ** 16
MAX_TARGET = 2 ** 220

# =============================================================================
# DIFFICULTY READJUSTMENT
# =============================================================================

# Retarget every N epochs (successful claims)
BLOCKS_PER_READJUSTMENT = 64

# Target moves by (target / DIFFICULTY_DENOMINATOR) per percentage point
DIFFICULTY_DENOMINATOR = 2000

# Host blocks one readjustment period should span (one epoch every ~40 blocks)
TARGET_BLOCKS_PER_DIFF_PERIOD = BLOCKS_PER_READJUSTMENT * 40

# Upper bound on the percentage term of a single retarget
MAX_ADJUSTMENT_PERCENT = 1000

# =============================================================================
# BURNING
# =============================================================================

# Burning turns on once difficulty drops more than this % below its peak
BURN_WATERMARK_PERCENT = 30

# =============================================================================
# CLAIM PROTOCOL
# =============================================================================

# Prefix of the message a solver signs, followed by the payload length
SIGNED_MESSAGE_PREFIX = b"\x19EpochMint Signed Message:\n"

# Payload = claimant address (20 bytes) + challenge (32 bytes)
ADDRESS_LENGTH = 20
CHALLENGE_LENGTH = 32
SIGNED_PAYLOAD_LENGTH = ADDRESS_LENGTH + CHALLENGE_LENGTH

# A claim landing less than this many time units after the previous epoch
# started is rejected as a duplicate. Host timestamps are whole seconds, so the
# default of 1 rejects exactly the zero-duration case.
DUPLICATE_WINDOW = 1

# =============================================================================
# HOST CHAIN
# =============================================================================

# Seconds between simulated host blocks
BLOCK_TIME = 12

# Only the most recent N ancestors have an addressable hash (EVM BLOCKHASH rule)
BLOCKHASH_WINDOW = 256

# Genesis Block Configuration
GENESIS_TIMESTAMP = 1703548800  # Fixed timestamp for reproducibility
GENESIS_MESSAGE = "EpochMint Genesis Block"

# =============================================================================
# WALLET KEY PROTECTION (Argon2id)
# =============================================================================

WALLET_KDF_TIME_COST = 2
WALLET_KDF_MEMORY_COST = 19456  # Memory usage in KB
WALLET_KDF_PARALLELISM = 1
WALLET_KDF_SALT_LEN = 16

# =============================================================================
# LOCAL DATA
# =============================================================================

DATA_DIR = "~/.epochmint"
STATE_FILENAME = "deployment.json"
WALLET_DIRNAME = "wallets"
