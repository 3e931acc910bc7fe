"""Market data relay core.

Public API:
    Quote               - Immutable normalized quote dataclass
    Credentials         - Session token pair
    ConnectionState     - Upstream link states
    CredentialStore     - Persisted session tokens
    SessionManager      - Login, lazy authentication, keepalive
    MarketStatusChecker - Market open/closed and reference price
    UpstreamStreamClient - The single upstream streaming connection
    FallbackGenerator   - Synthetic quotes while no live data flows
    BroadcastHub        - Downstream subscriber set and fan-out
    RelayController     - Startup ordering, timers, shutdown
    create_stream_router - FastAPI router factory for the WebSocket endpoint
"""

from .credentials import CredentialStore
from .fallback import FallbackGenerator
from .hub import BroadcastHub
from .lifecycle import RelayController
from .models import ConnectionState, Credentials, MarketState, Quote, QuoteSource
from .session import SessionManager
from .status import MarketStatusChecker
from .stream import create_stream_router
from .upstream import UpstreamStreamClient

__all__ = [
    "Quote",
    "QuoteSource",
    "Credentials",
    "ConnectionState",
    "MarketState",
    "CredentialStore",
    "SessionManager",
    "MarketStatusChecker",
    "UpstreamStreamClient",
    "FallbackGenerator",
    "BroadcastHub",
    "RelayController",
    "create_stream_router",
]
