"""Startup, arbitration between live and synthetic quotes, and shutdown."""

from __future__ import annotations

import logging

import httpx
import numpy as np

from ..config import Settings
from ..errors import AuthError, TransportError
from .credentials import CredentialStore
from .fallback import FallbackGenerator
from .hub import BroadcastHub
from .models import ConnectionState, MarketState, Quote
from .seed_prices import NOTE_MARKET_CLOSED, NOTE_NO_LIVE_DATA
from .session import SessionManager
from .status import MarketStatusChecker
from .timers import PeriodicTask, Timer
from .upstream import ConnectFactory, UpstreamStreamClient

logger = logging.getLogger(__name__)


class RelayController:
    """Wires the relay components together and owns every timer.

    Lifecycle:
        controller = RelayController(settings)
        controller.load_credentials()
        # ... local listener starts ...
        await controller.bootstrap()
        # ... app runs ...
        await controller.shutdown()

    Arbitration: the no-data timer decides when synthetic quotes take over.
    It is armed when the stream opens and re-armed by every real quote; when
    it fires, or the stream drops, the fallback generator starts. The next
    real quote stops it again.
    """

    def __init__(
        self,
        settings: Settings,
        http_client: httpx.AsyncClient | None = None,
        connect: ConnectFactory | None = None,
        rng: np.random.Generator | None = None,
    ) -> None:
        self.settings = settings
        self._http = http_client or httpx.AsyncClient(timeout=settings.request_timeout)

        self.store = CredentialStore(settings.session_file)
        self.session = SessionManager(settings, self.store, self._http)
        self.hub = BroadcastHub(
            settings.epic,
            market_open=self._market_known_open,
            send_timeout=settings.send_timeout,
        )
        self.fallback = FallbackGenerator(
            emit=self.hub.broadcast,
            interval=settings.mock_interval,
            rng=rng,
        )
        self.checker = MarketStatusChecker(
            settings,
            self.session,
            on_reference_price=self.fallback.seed,
        )
        self.upstream = UpstreamStreamClient(
            settings,
            self.session,
            on_quote=self._on_real_quote,
            on_open=self._on_upstream_open,
            on_disconnect=self._on_upstream_disconnect,
            connect=connect,
        )

        self._keepalive = PeriodicTask("keepalive", settings.keepalive_interval, self._keep_alive)
        self._no_data = Timer("no-data", settings.no_data_timeout, self._on_no_data)
        self._reconnect = Timer("reconnect", settings.reconnect_delay, self._reconnect_attempt)
        self._shut_down = False

    @property
    def reconnect_pending(self) -> bool:
        return self._reconnect.pending

    @property
    def market(self) -> MarketState:
        return self.checker.state

    def load_credentials(self) -> None:
        """Load persisted session tokens. Runs before the listener starts."""
        self.store.load()

    async def bootstrap(self) -> None:
        """Decide between live and synthetic quotes once the listener is up."""
        self._keepalive.start()
        try:
            state = await self.checker.check_status()
        except AuthError as e:
            logger.error("Cannot reach provider (%s), serving mock prices", e)
            self.fallback.start(NOTE_NO_LIVE_DATA)
            return

        if state.is_open:
            await self._connect_upstream()
        else:
            logger.info("Market closed, serving mock prices")
            self.fallback.start(NOTE_MARKET_CLOSED)

    def request_reconnect(self) -> bool:
        """Schedule a reconnect attempt after the backoff delay.

        Idempotent: returns False if an attempt is already pending.
        """
        if self._shut_down:
            return False
        scheduled = self._reconnect.schedule_if_idle()
        if scheduled:
            logger.info("Reconnect scheduled in %.1fs", self._reconnect.delay)
        return scheduled

    async def shutdown(self) -> None:
        """Best-effort teardown: every step runs even if an earlier one fails."""
        logger.info("Shutting down relay")
        self._shut_down = True
        steps = (
            ("stop mock feed", self.fallback.stop),
            ("cancel keepalive", self._keepalive.stop),
            ("cancel no-data timer", self._no_data.cancel),
            ("cancel reconnect timer", self._reconnect.cancel),
        )
        for label, step in steps:
            try:
                step()
            except Exception:
                logger.exception("Shutdown step failed: %s", label)
        try:
            await self.upstream.close()
        except Exception:
            logger.exception("Shutdown step failed: close upstream stream")
        try:
            await self._http.aclose()
        except Exception:
            logger.exception("Shutdown step failed: close HTTP client")

    def snapshot(self) -> dict:
        """Current relay state, for the status endpoint."""
        last = self.upstream.last_quote
        return {
            "epic": self.settings.epic,
            "connection": self.upstream.state.value,
            "market": self.market.to_dict(),
            "mock_feed": self.fallback.running,
            "reconnect_pending": self.reconnect_pending,
            "subscribers": len(self.hub),
            "session": self.store.present,
            "last_real_quote": last.to_dict() if last else None,
        }

    # --- Internal ---

    def _market_known_open(self) -> bool | None:
        if self.market.checked_at is None:
            return None
        return self.market.is_open

    async def _connect_upstream(self) -> None:
        if self._shut_down:
            return
        try:
            await self.upstream.connect()
        except AuthError as e:
            logger.error("Upstream connect needs a session, staying on mock prices: %s", e)
            self.fallback.start(NOTE_NO_LIVE_DATA)
        except TransportError as e:
            logger.error("%s", e)
            self._on_upstream_disconnect()

    async def _reconnect_attempt(self) -> None:
        try:
            state = await self.checker.check_status()
        except AuthError as e:
            logger.error("Reconnect skipped, login failed: %s", e)
            return
        if not state.is_open:
            logger.info("Market closed, continuing mock prices")
            self.fallback.start(NOTE_MARKET_CLOSED)
            return
        await self._connect_upstream()

    def _on_upstream_open(self) -> None:
        self._no_data.schedule()

    async def _on_real_quote(self, quote: Quote) -> None:
        self.fallback.stop()
        self.fallback.seed(quote.bid)
        self._no_data.schedule()
        await self.hub.broadcast(quote)

    def _on_upstream_disconnect(self) -> None:
        self._no_data.cancel()
        if self._shut_down:
            return
        self.fallback.start(NOTE_NO_LIVE_DATA)
        self.request_reconnect()

    async def _on_no_data(self) -> None:
        logger.warning(
            "No real data received for %.0fs, switching to mock prices",
            self.settings.no_data_timeout,
        )
        self.fallback.start(NOTE_NO_LIVE_DATA)

    async def _keep_alive(self) -> None:
        await self.session.keep_alive()
        if self.upstream.state is ConnectionState.SUBSCRIBED:
            await self.upstream.send_ping()
        elif self.upstream.state is ConnectionState.DISCONNECTED:
            self.request_reconnect()
