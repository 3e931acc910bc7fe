"""FastAPI application and process entry point."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.responses import PlainTextResponse

from .config import Settings
from .market import RelayController, create_stream_router

logger = logging.getLogger(__name__)


def create_app(
    settings: Settings | None = None,
    controller: RelayController | None = None,
) -> FastAPI:
    """Build the relay app.

    Credentials are loaded before the listener accepts connections; the
    market check and upstream connect run in the background once it does.
    """
    settings = settings or Settings.from_env()
    controller = controller or RelayController(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        controller.load_credentials()
        bootstrap = asyncio.create_task(controller.bootstrap(), name="relay-bootstrap")
        try:
            yield
        finally:
            if not bootstrap.done():
                bootstrap.cancel()
                try:
                    await bootstrap
                except asyncio.CancelledError:
                    pass
            await controller.shutdown()

    app = FastAPI(title="Quote Relay", lifespan=lifespan)
    app.state.controller = controller

    @app.get("/", response_class=PlainTextResponse)
    async def index() -> str:
        return f"Quote relay for {settings.epic} is running"

    @app.get("/healthz", response_class=PlainTextResponse)
    async def healthz() -> str:
        return "OK"

    @app.get("/status")
    async def status() -> dict:
        return controller.snapshot()

    app.include_router(create_stream_router(controller.hub))
    return app


def main() -> None:
    import uvicorn
    from dotenv import load_dotenv

    load_dotenv()
    settings = Settings.from_env()
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    logger.info("Starting relay on ws://%s:%d", settings.host, settings.port)
    uvicorn.run(create_app(settings), host=settings.host, port=settings.port)


if __name__ == "__main__":
    main()
