"""Synthetic quote generator used while no live data is flowing."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable

import numpy as np

from .models import Quote, QuoteSource, now_ms
from .seed_prices import (
    DEFAULT_REFERENCE_PRICE,
    MOCK_MAX_STEP,
    MOCK_QTY_MAX,
    MOCK_QTY_MIN,
    MOCK_SPREAD,
    NOTE_NO_LIVE_DATA,
)

logger = logging.getLogger(__name__)


class FallbackGenerator:
    """Emits a MOCK quote every ``interval`` seconds while running.

    Price model: a bounded random walk,

        P(t+1) = P(t) + U(-max_step, +max_step)
        bid    = round(P, 2)
        ask    = round(P + spread, 2)

    starting from the last price passed to seed(). The first quote goes out
    one interval after start().
    """

    def __init__(
        self,
        emit: Callable[[Quote], Awaitable[object]],
        interval: float = 2.0,
        seed_price: float = DEFAULT_REFERENCE_PRICE,
        max_step: float = MOCK_MAX_STEP,
        spread: float = MOCK_SPREAD,
        rng: np.random.Generator | None = None,
    ) -> None:
        self._emit = emit
        self._interval = interval
        self._price = seed_price
        self._max_step = max_step
        self._spread = spread
        self._rng = rng if rng is not None else np.random.default_rng()
        self._note = NOTE_NO_LIVE_DATA
        self._task: asyncio.Task | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def price(self) -> float:
        """Current mid of the walk."""
        return self._price

    def seed(self, price: float) -> None:
        """Restart the walk from ``price`` (a reference or last real price)."""
        self._price = float(price)

    def next_quote(self) -> Quote:
        """Advance the walk one step and build the quote for it."""
        self._price += float(self._rng.uniform(-self._max_step, self._max_step))
        return Quote(
            source=QuoteSource.MOCK,
            bid=round(self._price, 2),
            ask=round(self._price + self._spread, 2),
            bid_qty=int(self._rng.integers(MOCK_QTY_MIN, MOCK_QTY_MAX)),
            ask_qty=int(self._rng.integers(MOCK_QTY_MIN, MOCK_QTY_MAX)),
            timestamp=now_ms(),
            note=self._note,
        )

    def start(self, note: str | None = None) -> bool:
        """Begin emitting. No-op (returns False) if already running.

        ``note`` is attached to every emitted quote; when already running
        it replaces the current note so the reason stays accurate.
        """
        if note is not None:
            self._note = note
        if self.running:
            return False
        self._task = asyncio.create_task(self._run_loop(), name="fallback-generator")
        logger.info("Starting mock price feed from %.2f (%s)", self._price, self._note)
        return True

    def stop(self) -> bool:
        """Stop emitting. No-op (returns False) if not running."""
        if not self.running:
            self._task = None
            return False
        self._task.cancel()
        self._task = None
        logger.info("Stopped mock price feed")
        return True

    async def _run_loop(self) -> None:
        """Core loop: sleep, step the walk, emit."""
        while True:
            await asyncio.sleep(self._interval)
            try:
                await self._emit(self.next_quote())
            except Exception:
                logger.exception("Mock quote emission failed")
