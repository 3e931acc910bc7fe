"""Fixtures for relay core tests.

Fakes stand in for the three things the core talks to:

    FakeProvider    - the provider's REST API, served through httpx.MockTransport
    FakeConnector   - the upstream stream, handing out FakeUpstreamSocket objects
    FakeSubscriber  - a downstream WebSocket connection
"""

import asyncio
import json

import httpx
import pytest
from fastapi.websockets import WebSocketState

from quote_relay.config import Settings

_END = object()


class FakeProvider:
    """Callable handler for httpx.MockTransport that mimics the provider REST API."""

    def __init__(self) -> None:
        self.login_status = 200
        self.ping_status = 200
        self.market_http_status = 200
        self.market_status = "TRADEABLE"
        self.bid: float | None = 3400.0
        self.tokens = ("cst-1", "xst-1")
        self.network_down = False
        self.rejected_tokens: set[str] = set()
        self.market_body: str | None = None  # raw snapshot body, overrides the fields above
        self.requests: list[httpx.Request] = []

    def count(self, suffix: str) -> int:
        return sum(1 for r in self.requests if r.url.path.endswith(suffix))

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.network_down:
            raise httpx.ConnectError("network down", request=request)

        path = request.url.path
        if path.endswith("/session"):
            if self.login_status != 200:
                return httpx.Response(self.login_status, json={"errorCode": "error.invalid.details"})
            cst, token = self.tokens
            return httpx.Response(200, headers={"CST": cst, "X-SECURITY-TOKEN": token}, json={})
        if path.endswith("/ping"):
            return httpx.Response(self.ping_status, json={"status": "OK"})
        if "/markets/" in path:
            if request.headers.get("CST") in self.rejected_tokens:
                return httpx.Response(401, json={"errorCode": "error.invalid.session.token"})
            if self.market_body is not None:
                return httpx.Response(200, content=self.market_body, headers={"Content-Type": "application/json"})
            snapshot: dict = {"marketStatus": self.market_status}
            if self.bid is not None:
                snapshot["bid"] = self.bid
            return httpx.Response(self.market_http_status, json={"snapshot": snapshot})
        return httpx.Response(404)


class FakeUpstreamSocket:
    """In-memory upstream socket: frames are fed by the test and iterated by the client."""

    def __init__(self) -> None:
        self.sent: list[dict] = []
        self.closed = False
        self._inbox: asyncio.Queue = asyncio.Queue()

    async def send(self, data: str) -> None:
        if self.closed:
            raise OSError("socket closed")
        self.sent.append(json.loads(data))

    async def close(self) -> None:
        if not self.closed:
            self.closed = True
            self._inbox.put_nowait(_END)

    def feed(self, frame: dict | str) -> None:
        self._inbox.put_nowait(frame if isinstance(frame, str) else json.dumps(frame))

    def drop(self) -> None:
        """Simulate the remote end closing the stream."""
        self.closed = True
        self._inbox.put_nowait(_END)

    def fail(self, exc: BaseException) -> None:
        self._inbox.put_nowait(exc)

    def __aiter__(self):
        return self

    async def __anext__(self) -> str:
        item = await self._inbox.get()
        if item is _END:
            raise StopAsyncIteration
        if isinstance(item, BaseException):
            raise item
        return item


class FakeConnector:
    """Replacement for websockets.connect."""

    def __init__(self) -> None:
        self.calls: list[str] = []
        self.sockets: list[FakeUpstreamSocket] = []
        self.fail_with: BaseException | None = None

    @property
    def latest(self) -> FakeUpstreamSocket:
        return self.sockets[-1]

    async def __call__(self, uri: str, **kwargs) -> FakeUpstreamSocket:
        self.calls.append(uri)
        if self.fail_with is not None:
            raise self.fail_with
        ws = FakeUpstreamSocket()
        self.sockets.append(ws)
        return ws


class FakeSubscriber:
    """Downstream connection exposing the bits of starlette's WebSocket the hub uses."""

    def __init__(self, connected: bool = True, broken: bool = False) -> None:
        self.client_state = WebSocketState.CONNECTED if connected else WebSocketState.DISCONNECTED
        self.application_state = WebSocketState.CONNECTED
        self.broken = broken
        self.stalled = False  # sends hang until cancelled
        self.messages: list[dict] = []

    async def send_text(self, data: str) -> None:
        if self.broken:
            raise RuntimeError("connection reset")
        if self.stalled:
            await asyncio.Event().wait()
        self.messages.append(json.loads(data))

    def quotes(self, source: str | None = None) -> list[dict]:
        return [m for m in self.messages if "bid" in m and (source is None or m["source"] == source)]


def quote_frame(epic: str = "GOLD", bid: float = 3400.12, ofr: float = 3400.42, **extra) -> dict:
    payload = {
        "epic": epic,
        "bid": bid,
        "ofr": ofr,
        "bidQty": 5,
        "ofrQty": 7,
        "timestamp": 1700000000000,
    }
    payload.update(extra)
    return {"destination": "quote", "payload": payload}


@pytest.fixture
def settings(tmp_path) -> Settings:
    """Settings with test credentials and shortened timers."""
    return Settings(
        api_key="test-key",
        identifier="trader@example.com",
        password="secret",
        epic="GOLD",
        api_base_url="https://api.test",
        stream_url="wss://stream.test/connect",
        session_file=tmp_path / "session.json",
        keepalive_interval=60.0,
        no_data_timeout=0.2,
        reconnect_delay=0.05,
        mock_interval=0.05,
        request_timeout=1.0,
        open_timeout=1.0,
    )


@pytest.fixture
def provider() -> FakeProvider:
    return FakeProvider()


@pytest.fixture
def http_client(provider) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(provider))


@pytest.fixture
def connector() -> FakeConnector:
    return FakeConnector()


@pytest.fixture
def make_subscriber():
    return FakeSubscriber


@pytest.fixture
def make_quote_frame():
    return quote_frame
