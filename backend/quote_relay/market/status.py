"""Market open/closed checks against the instrument snapshot endpoint."""

from __future__ import annotations

import logging
import math
import time
from collections.abc import Callable

import httpx

from ..config import Settings
from .models import MarketState
from .seed_prices import DEFAULT_REFERENCE_PRICE, OPEN_MARKET_STATUSES
from .session import SessionManager

logger = logging.getLogger(__name__)


def _usable_price(value: object) -> bool:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    try:
        return math.isfinite(value) and value > 0
    except OverflowError:
        return False


class MarketStatusChecker:
    """Answers "is the tracked market tradeable right now?".

    Any failure of the snapshot request itself reads as closed. A failure to
    authenticate is different: AuthError propagates so callers can tell a
    closed market from a relay that cannot log in.
    """

    def __init__(
        self,
        settings: Settings,
        session: SessionManager,
        on_reference_price: Callable[[float], None] | None = None,
    ) -> None:
        self._settings = settings
        self._session = session
        self._on_reference_price = on_reference_price
        self._state = MarketState()

    @property
    def state(self) -> MarketState:
        return self._state

    async def check_status(self) -> MarketState:
        """Query the snapshot endpoint and update MarketState."""
        try:
            response = await self._session.authenticated_get(self._settings.market_url)
            response.raise_for_status()
            snapshot = response.json().get("snapshot")
            if not isinstance(snapshot, dict):
                raise ValueError("response carries no snapshot object")
        except (httpx.HTTPError, ValueError, AttributeError) as e:
            logger.error("Failed to fetch market status: %s", e)
            self._state = MarketState(
                is_open=False,
                reference_price=self._state.reference_price,
                status=None,
                checked_at=time.time(),
            )
            return self._state

        status = snapshot.get("marketStatus")
        bid = snapshot.get("bid")
        if _usable_price(bid):
            reference_price = float(bid)
        elif self._state.reference_price is not None:
            reference_price = self._state.reference_price
        else:
            reference_price = DEFAULT_REFERENCE_PRICE

        self._state = MarketState(
            is_open=status in OPEN_MARKET_STATUSES,
            reference_price=reference_price,
            status=status,
            checked_at=time.time(),
        )
        if self._on_reference_price is not None:
            self._on_reference_price(reference_price)

        logger.info(
            "Market status for %s: %s (%s), reference %.2f",
            self._settings.epic,
            "OPEN" if self._state.is_open else "CLOSED",
            status,
            reference_price,
        )
        return self._state
