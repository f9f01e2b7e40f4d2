"""FastAPI WebSocket adapter for the query gateway."""

from __future__ import annotations

import json
import logging
from typing import Any

from fastapi import WebSocket, WebSocketDisconnect

from .gateway import QueryGateway

logger = logging.getLogger(__name__)


class WebSocketChannel:
    """Channel backed by a Starlette WebSocket."""

    def __init__(self, websocket: WebSocket) -> None:
        self.websocket = websocket

    async def send_json(self, frame: dict[str, Any]) -> None:
        await self.websocket.send_text(json.dumps(frame, default=str))

    async def close(self, code: int = 1000) -> None:
        await self.websocket.close(code=code)


async def serve_websocket(gateway: QueryGateway, websocket: WebSocket) -> None:
    """Run one client's receive loop until it disconnects or is terminated.

    Frames are handed to the gateway one at a time in arrival order;
    query execution continues in the background while the next frame is
    awaited.
    """
    await websocket.accept()
    connection = gateway.connect(WebSocketChannel(websocket))
    try:
        while not connection.is_terminated:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                break
            raw = message.get("text")
            if raw is None:
                raw = message.get("bytes") or b""
            await gateway.handle_frame(connection, raw)
    except WebSocketDisconnect:
        logger.info("Client %s disconnected normally", connection.client_id)
    except RuntimeError as e:
        # Raised by Starlette when receiving on a socket the server closed.
        logger.debug("Receive loop for %s ended: %s", connection.client_id, e)
    finally:
        gateway.disconnect(connection)
