"""Live query transport.

Structured into:
- protocol.py: Frame validation and builders
- connection.py: Per-connection liveness state machine
- gateway.py: Dispatch, error containment and heartbeat scheduler
- websocket.py: FastAPI WebSocket adapter
"""

from .connection import Channel, Connection, Liveness
from .gateway import QueryGateway
from .protocol import parse_frame
from .websocket import WebSocketChannel, serve_websocket

__all__ = [
    "Channel",
    "Connection",
    "Liveness",
    "QueryGateway",
    "parse_frame",
    "WebSocketChannel",
    "serve_websocket",
]
