"""Data models for the quote relay."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from enum import Enum


class QuoteSource(str, Enum):
    REAL = "Real"
    MOCK = "Mock"


class ConnectionState(str, Enum):
    """Lifecycle of the upstream streaming link."""

    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    SUBSCRIBED = "subscribed"
    CLOSING = "closing"


def now_ms() -> int:
    return int(time.time() * 1000)


@dataclass(frozen=True, slots=True)
class Quote:
    """Immutable normalized price quote pushed to downstream subscribers."""

    source: QuoteSource
    bid: float
    ask: float
    bid_qty: float | None = None
    ask_qty: float | None = None
    timestamp: int = field(default_factory=now_ms)  # Unix milliseconds
    note: str | None = None

    def to_dict(self) -> dict:
        """Serialize for JSON / WebSocket transmission. Absent optionals are omitted."""
        data: dict = {
            "source": self.source.value,
            "bid": self.bid,
            "ask": self.ask,
        }
        if self.bid_qty is not None:
            data["bidQty"] = self.bid_qty
        if self.ask_qty is not None:
            data["askQty"] = self.ask_qty
        data["timestamp"] = self.timestamp
        if self.note is not None:
            data["note"] = self.note
        return data


@dataclass(frozen=True, slots=True)
class Credentials:
    """The two session secrets issued by the provider on login.

    Both tokens travel together: a half-populated pair counts as absent.
    """

    session_token: str | None = None
    security_token: str | None = None

    @property
    def present(self) -> bool:
        return bool(self.session_token) and bool(self.security_token)

    def headers(self) -> dict[str, str]:
        """Request headers that authenticate a REST call."""
        return {
            "CST": self.session_token or "",
            "X-SECURITY-TOKEN": self.security_token or "",
        }

    def to_dict(self) -> dict:
        return {"cst": self.session_token, "securityToken": self.security_token}

    @classmethod
    def from_dict(cls, data: object) -> Credentials:
        """Build from the persisted JSON shape; anything partial yields empty credentials."""
        if not isinstance(data, dict):
            return cls()
        cst = data.get("cst")
        token = data.get("securityToken")
        if not (isinstance(cst, str) and cst and isinstance(token, str) and token):
            return cls()
        return cls(session_token=cst, security_token=token)


@dataclass(frozen=True, slots=True)
class MarketState:
    """Result of the latest market status check."""

    is_open: bool = False
    reference_price: float | None = None
    status: str | None = None
    checked_at: float | None = None  # Unix seconds

    def to_dict(self) -> dict:
        return {
            "open": self.is_open,
            "status": self.status,
            "reference_price": self.reference_price,
            "checked_at": self.checked_at,
        }
