"""Constants for chainfork."""

# RPC constants
KEYS_PAGE_SIZE = 512  # Keys requested per state_getKeysPaged call
MAX_CONCURRENT_REQUESTS = 2048  # Shared cap on in-flight page + value requests
DEFAULT_RPC_URL = "ws://127.0.0.1:9944"

# Output constants
DEFAULT_OUTPUT_PATH = "fork.json"
DEFAULT_BASE_CHAIN = "dev"
FORK_SUFFIX = "-fork"

# Storage constants
CODE_KEY = "0x3a636f6465"  # hex(":code")
GENESIS_MARKER_KEY = "0xdeadbeef"
GENESIS_MARKER_VALUE = "0x1"
DEV_SUDO_ACCOUNT = "0xd43593c715fdd31c61141abd04a99fd6822c8558854ccde39a5684e7a56da27d"  # Alice
TARGET_BLOCK_TIME_MS = 6000

# Pallets whose state is regenerated by the new chain
DEFAULT_EXCLUDED_PALLETS = ("System", "Authorship", "Difficulty", "Rewards")

# Progress constants
PROGRESS_REFRESH_INTERVAL = 0.1  # seconds between visible progress updates
