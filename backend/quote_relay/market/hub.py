"""Fan-out of quotes to downstream WebSocket subscribers."""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import Callable

from fastapi import WebSocket
from fastapi.websockets import WebSocketState

from .models import Quote

logger = logging.getLogger(__name__)


def _is_open(conn: WebSocket) -> bool:
    return (
        conn.client_state == WebSocketState.CONNECTED
        and conn.application_state == WebSocketState.CONNECTED
    )


class BroadcastHub:
    """The set of downstream subscribers and best-effort delivery to them.

    Broadcasts iterate over a snapshot of the set, so a subscriber that
    connects or disconnects mid-broadcast only affects the next one.
    Nothing is queued: a subscriber that is not open, or whose send fails,
    simply misses the quote. A send that takes longer than ``send_timeout``
    counts as failed, so one stalled client cannot hold up the others.
    """

    def __init__(
        self,
        epic: str,
        market_open: Callable[[], bool | None] | None = None,
        send_timeout: float = 1.0,
    ) -> None:
        self._epic = epic
        self._send_timeout = send_timeout
        self._market_open = market_open
        self._subscribers: set[WebSocket] = set()

    def __len__(self) -> int:
        return len(self._subscribers)

    def __contains__(self, conn: object) -> bool:
        return conn in self._subscribers

    def welcome_message(self) -> dict:
        message: dict = {"message": f"Connected to {self._epic} price feed"}
        if self._market_open is not None and self._market_open() is False:
            message["marketOpen"] = False
        return message

    async def on_subscriber_connect(self, conn: WebSocket) -> None:
        """Register an accepted connection and greet it."""
        self._subscribers.add(conn)
        logger.info("Client connected (%d live)", len(self._subscribers))
        try:
            await conn.send_text(json.dumps(self.welcome_message()))
        except Exception as e:
            logger.warning("Failed to greet client: %s", e)
            self.on_subscriber_disconnect(conn)

    def on_subscriber_disconnect(self, conn: WebSocket) -> None:
        """Forget a connection. Safe to call more than once."""
        if conn in self._subscribers:
            self._subscribers.discard(conn)
            logger.info("Client disconnected (%d live)", len(self._subscribers))

    async def broadcast(self, quote: Quote) -> int:
        """Push ``quote`` to every open subscriber. Returns the number of deliveries."""
        targets = [conn for conn in list(self._subscribers) if _is_open(conn)]
        if not targets:
            return 0

        payload = json.dumps(quote.to_dict())
        results = await asyncio.gather(*(self._send(conn, payload) for conn in targets))
        return sum(results)

    async def _send(self, conn: WebSocket, payload: str) -> bool:
        try:
            await asyncio.wait_for(conn.send_text(payload), self._send_timeout)
            return True
        except asyncio.TimeoutError:
            logger.info("Dropping client that did not accept a quote within %.1fs", self._send_timeout)
            self.on_subscriber_disconnect(conn)
            return False
        except Exception as e:
            logger.debug("Dropping client after failed send: %s", e)
            self.on_subscriber_disconnect(conn)
            return False
