"""Downstream WebSocket endpoint for live quotes."""

from __future__ import annotations

import logging

from fastapi import APIRouter, WebSocket

from .hub import BroadcastHub

logger = logging.getLogger(__name__)


def create_stream_router(hub: BroadcastHub) -> APIRouter:
    """Create the WebSocket router with a reference to the broadcast hub.

    This factory pattern lets us inject the hub without globals.
    """
    router = APIRouter(tags=["streaming"])

    @router.websocket("/")
    @router.websocket("/ws")
    async def stream_quotes(websocket: WebSocket) -> None:
        """Quote stream for any client.

        On connect the client receives ``{"message": ...}``, then one JSON
        object per quote. Anything the client sends is read and discarded.
        """
        await websocket.accept()
        client = websocket.client.host if websocket.client else "unknown"
        await hub.on_subscriber_connect(websocket)
        try:
            while True:
                message = await websocket.receive()
                if message["type"] == "websocket.disconnect":
                    logger.info("Client %s closed, code %s", client, message.get("code"))
                    break
        finally:
            hub.on_subscriber_disconnect(websocket)

    return router
