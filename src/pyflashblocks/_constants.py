"""Internal constants shared across the library."""

FAST_STREAM_URL = "wss://sepolia.flashblocks.base.org/ws"
FULL_SOURCE_URL = "https://sepolia-preconf.base.org"
USER_AGENT = "pyflashblocks"

# ------------------------------------------------------------------
# Reconciler cadence (seconds)
# ------------------------------------------------------------------

# Debounce windows are deliberately slower than the underlying cadence so
# consumer-facing state settles visibly instead of thrashing.
FAST_DEBOUNCE_SECONDS = 0.2
FULL_DEBOUNCE_SECONDS = 0.4
POLL_INTERVAL_SECONDS = 2.0
REQUEST_TIMEOUT_SECONDS = 10.0
RECONNECT_DELAY_SECONDS = 5.0

# ------------------------------------------------------------------
# JSON-RPC
# ------------------------------------------------------------------

JSONRPC_VERSION = "2.0"
LATEST_BLOCK_METHOD = "eth_getBlockByNumber"
