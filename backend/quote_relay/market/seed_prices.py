"""Reference prices and synthetic-quote parameters for the fallback generator."""

# Starting point for the mock walk before any snapshot or live quote is seen
DEFAULT_REFERENCE_PRICE: float = 3400.0

# Snapshot ``marketStatus`` values that count as open
OPEN_MARKET_STATUSES: frozenset[str] = frozenset({"TRADEABLE"})

# Random walk: each tick moves the mid by a uniform step in [-MAX_STEP, +MAX_STEP]
MOCK_MAX_STEP: float = 2.5

# Fixed spread between synthetic bid and ask
MOCK_SPREAD: float = 0.3

# Synthetic lot sizes are drawn uniformly from [MOCK_QTY_MIN, MOCK_QTY_MAX)
MOCK_QTY_MIN: int = 10
MOCK_QTY_MAX: int = 20

# ``note`` attached to synthetic quotes, by reason
NOTE_MARKET_CLOSED = "mock price, market closed"
NOTE_NO_LIVE_DATA = "mock price, no live data"
