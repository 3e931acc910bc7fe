"""The single upstream streaming connection and its state machine."""

from __future__ import annotations

import asyncio
import itertools
import json
import logging
from collections.abc import Awaitable, Callable
from typing import Any

import websockets
from websockets.exceptions import ConnectionClosed, WebSocketException

from ..config import Settings
from ..errors import AuthError, ParseError, TransportError
from .frames import IgnoredFrame, parse_frame, ping_frame, subscribe_frame
from .models import ConnectionState, Quote
from .session import SessionManager

logger = logging.getLogger(__name__)

ConnectFactory = Callable[..., Awaitable[Any]]


class UpstreamStreamClient:
    """Owns the upstream socket; nothing else touches it.

    State transitions:

        DISCONNECTED --connect()--------------> CONNECTING
        CONNECTING   --first accepted quote---> SUBSCRIBED
        any          --socket close / error---> DISCONNECTED  (fires on_disconnect)
        any          --close()----------------> CLOSING -> DISCONNECTED (silent)

    The owner decides what a disconnect means (fallback, backoff); this class
    only reports it.
    """

    def __init__(
        self,
        settings: Settings,
        session: SessionManager,
        on_quote: Callable[[Quote], Awaitable[None]],
        on_open: Callable[[], None] | None = None,
        on_disconnect: Callable[[], None] | None = None,
        connect: ConnectFactory | None = None,
    ) -> None:
        self._settings = settings
        self._session = session
        self._on_quote = on_quote
        self._on_open = on_open
        self._on_disconnect = on_disconnect
        self._connect = connect or websockets.connect
        self._state = ConnectionState.DISCONNECTED
        self._ws: Any = None
        self._reader: asyncio.Task | None = None
        self._correlation = itertools.count(100)
        self._last_quote: Quote | None = None

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def last_quote(self) -> Quote | None:
        return self._last_quote

    async def connect(self) -> None:
        """Open the stream and subscribe to the tracked epic.

        No-op unless DISCONNECTED. Raises AuthError if no session can be
        obtained and TransportError if the socket cannot be opened; either
        way the state is back to DISCONNECTED.
        """
        if self._state is not ConnectionState.DISCONNECTED:
            logger.debug("connect() ignored in state %s", self._state.value)
            return

        self._state = ConnectionState.CONNECTING
        try:
            credentials = await self._session.ensure_credentials()
        except AuthError:
            self._state = ConnectionState.DISCONNECTED
            raise

        try:
            ws = await self._connect(
                self._settings.stream_url,
                open_timeout=self._settings.open_timeout,
            )
        except (OSError, asyncio.TimeoutError, WebSocketException) as e:
            self._state = ConnectionState.DISCONNECTED
            raise TransportError(f"Failed to open upstream stream: {e}") from e

        try:
            frame = subscribe_frame(self._settings.epic, credentials, str(next(self._correlation)))
            await ws.send(json.dumps(frame))
        except (OSError, WebSocketException) as e:
            self._state = ConnectionState.DISCONNECTED
            await ws.close()
            raise TransportError(f"Failed to subscribe to {self._settings.epic}: {e}") from e

        if self._state is not ConnectionState.CONNECTING:
            # close() ran while we were opening
            await ws.close()
            return

        self._ws = ws
        logger.info("Connected to upstream stream, subscribed to %s", self._settings.epic)
        if self._on_open is not None:
            self._on_open()
        self._reader = asyncio.create_task(self._read_loop(ws), name="upstream-reader")

    async def handle_message(self, raw: str | bytes) -> Quote | None:
        """Process one inbound frame. Returns the forwarded quote, if any.

        Malformed frames are logged and dropped; they never raise.
        """
        try:
            frame = parse_frame(raw)
        except ParseError as e:
            logger.warning("Failed to parse upstream message: %s", e)
            return None

        if isinstance(frame, IgnoredFrame):
            logger.debug("Ignoring upstream frame %r: %s", frame.destination, frame.reason)
            return None

        if frame.epic != self._settings.epic:
            logger.debug("Ignoring quote for untracked epic %s", frame.epic)
            return None

        if self._state is ConnectionState.CONNECTING:
            self._state = ConnectionState.SUBSCRIBED
            logger.info("Receiving live quotes for %s", self._settings.epic)

        quote = frame.to_quote()
        self._last_quote = quote
        try:
            await self._on_quote(quote)
        except Exception:
            logger.exception("Quote handler failed")
        return quote

    async def send_ping(self) -> bool:
        """Send a stream-level ping so the upstream keeps the stream session open."""
        if self._ws is None or self._state not in (
            ConnectionState.CONNECTING,
            ConnectionState.SUBSCRIBED,
        ):
            return False
        frame = ping_frame(self._session.credentials, str(next(self._correlation)))
        try:
            await self._ws.send(json.dumps(frame))
        except (OSError, WebSocketException) as e:
            logger.warning("Upstream ping failed: %s", e)
            return False
        return True

    async def close(self) -> None:
        """Close the stream without reporting a disconnect. Safe when not connected."""
        if self._state is ConnectionState.DISCONNECTED and self._ws is None:
            return
        self._state = ConnectionState.CLOSING
        ws, reader = self._ws, self._reader
        try:
            if ws is not None:
                await ws.close()
        finally:
            if reader is not None and not reader.done():
                reader.cancel()
                try:
                    await reader
                except asyncio.CancelledError:
                    pass
            self._ws = None
            self._reader = None
            self._state = ConnectionState.DISCONNECTED
            logger.info("Upstream stream closed")

    # --- Internal ---

    async def _read_loop(self, ws: Any) -> None:
        """Consume frames until the socket ends, then report the disconnect."""
        try:
            async for raw in ws:
                try:
                    await self.handle_message(raw)
                except Exception:
                    logger.exception("Dropping upstream frame after unexpected error")
            if self._state is not ConnectionState.CLOSING:
                logger.warning("Upstream stream closed by remote")
        except ConnectionClosed as e:
            logger.warning("Upstream stream closed: %s", e)
        except (OSError, WebSocketException) as e:
            logger.error("Upstream stream error: %s", e)
        finally:
            if self._ws is ws:
                self._ws = None
                self._reader = None
            if self._state is not ConnectionState.CLOSING:
                self._state = ConnectionState.DISCONNECTED
                if self._on_disconnect is not None:
                    self._on_disconnect()
