"""Upstream stream frames: inbound parsing and outbound builders.

Inbound frames are narrowed into explicit variants before anything reads
their fields:

    QuoteFrame    - ``destination == "quote"`` with a usable price payload
    IgnoredFrame  - any other well-formed JSON object (acks, pings, errors)

Anything that is not a JSON object, or a quote frame whose prices are
missing or non-numeric, raises ParseError.
"""

from __future__ import annotations

import json
import math
from dataclasses import dataclass
from typing import Union

from ..errors import ParseError
from .models import Credentials, Quote, QuoteSource

QUOTE_DESTINATION = "quote"
SUBSCRIBE_DESTINATION = "marketData.subscribe"
PING_DESTINATION = "ping"


@dataclass(frozen=True, slots=True)
class QuoteFrame:
    epic: str
    bid: float
    ofr: float
    bid_qty: float | None
    ofr_qty: float | None
    timestamp: int

    def to_quote(self) -> Quote:
        """Normalize into a REAL Quote (``ofr`` is the provider's name for ask)."""
        return Quote(
            source=QuoteSource.REAL,
            bid=self.bid,
            ask=self.ofr,
            bid_qty=self.bid_qty,
            ask_qty=self.ofr_qty,
            timestamp=self.timestamp,
        )


@dataclass(frozen=True, slots=True)
class IgnoredFrame:
    destination: str | None
    reason: str


InboundFrame = Union[QuoteFrame, IgnoredFrame]


def _number(payload: dict, key: str, *, required: bool) -> float | None:
    value = payload.get(key)
    if value is None:
        if required:
            raise ParseError(f"quote frame missing {key!r}")
        return None
    # bool is an int subclass; a flag is never a price
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ParseError(f"quote frame field {key!r} is not numeric: {value!r}")
    if isinstance(value, float) and not math.isfinite(value):
        raise ParseError(f"quote frame field {key!r} is not finite: {value!r}")
    return value


def parse_frame(raw: str | bytes) -> InboundFrame:
    """Decode one raw upstream message into a tagged frame."""
    try:
        msg = json.loads(raw)
    except (TypeError, ValueError) as e:
        raise ParseError(f"undecodable frame: {e}") from e

    if not isinstance(msg, dict):
        raise ParseError(f"frame is not a JSON object: {type(msg).__name__}")

    destination = msg.get("destination")
    if destination != QUOTE_DESTINATION:
        return IgnoredFrame(destination=destination, reason="not a quote")

    payload = msg.get("payload")
    if not isinstance(payload, dict):
        raise ParseError("quote frame without payload object")

    epic = payload.get("epic")
    if not isinstance(epic, str):
        raise ParseError("quote frame without epic")

    timestamp = _number(payload, "timestamp", required=True)
    return QuoteFrame(
        epic=epic,
        bid=_number(payload, "bid", required=True),
        ofr=_number(payload, "ofr", required=True),
        bid_qty=_number(payload, "bidQty", required=False),
        ofr_qty=_number(payload, "ofrQty", required=False),
        timestamp=int(timestamp),
    )


def subscribe_frame(epic: str, credentials: Credentials, correlation_id: str) -> dict:
    return {
        "destination": SUBSCRIBE_DESTINATION,
        "correlationId": correlation_id,
        "cst": credentials.session_token,
        "securityToken": credentials.security_token,
        "payload": {"epics": [epic]},
    }


def ping_frame(credentials: Credentials, correlation_id: str) -> dict:
    return {
        "destination": PING_DESTINATION,
        "correlationId": correlation_id,
        "cst": credentials.session_token,
        "securityToken": credentials.security_token,
    }
