"""Testing utilities for the gateway and spellbook.

Provides a recording channel double, a raw event builder and an async
condition helper for testing background query tasks without fixed sleeps.

Usage:
    from tests.testing_utils import FakeChannel, make_event, wait_for

    channel = FakeChannel()
    conn = gateway.connect(channel)
    await gateway.handle_frame(conn, '{"type": "ping"}')
    assert channel.frames == [{"type": "pong"}]

    event = make_event("starknet", "2024-01-15T10:00:00Z", "transaction", gas_fee_usd=1.2)

    await wait_for(lambda: len(channel.frames) > 0)
"""

from __future__ import annotations

import asyncio
import time
from datetime import datetime, timezone
from typing import Any, Callable

from starklytics.spellbook import RawEvent


class FakeChannel:
    """Channel double that records sent frames and the close code.

    With ``fail_on_send`` set, every send raises ConnectionError, the way
    a socket whose peer vanished does.
    """

    def __init__(self, fail_on_send: bool = False) -> None:
        self.frames: list[dict[str, Any]] = []
        self.closed_code: int | None = None
        self.fail_on_send = fail_on_send

    async def send_json(self, frame: dict[str, Any]) -> None:
        if self.fail_on_send:
            raise ConnectionError("peer went away")
        self.frames.append(frame)

    async def close(self, code: int = 1000) -> None:
        self.closed_code = code

    def of_type(self, frame_type: str) -> list[dict[str, Any]]:
        """Frames sent so far with the given ``type``."""
        return [f for f in self.frames if f.get("type") == frame_type]


def make_event(source: str, ts: str, event_type: str, **fields: Any) -> RawEvent:
    """Build a RawEvent from an ISO timestamp (``Z`` suffix allowed)."""
    timestamp = datetime.fromisoformat(ts.replace("Z", "+00:00"))
    if timestamp.tzinfo is None:
        timestamp = timestamp.replace(tzinfo=timezone.utc)
    return RawEvent(source=source, timestamp=timestamp, event_type=event_type, fields=fields)


async def wait_for(
    condition: Callable[[], bool],
    timeout: float = 1.0,
    interval: float = 0.01,
    message: str | None = None,
) -> None:
    """Wait until condition is True or timeout.

    Args:
        condition: Callable that returns True when condition is met
        timeout: Maximum seconds to wait (default: 1.0)
        interval: How often to check condition (default: 0.01)
        message: Optional message for timeout error

    Raises:
        TimeoutError: If condition not met within timeout
    """
    start = time.time()
    while not condition():
        elapsed = time.time() - start
        if elapsed >= timeout:
            error_msg = message or f"Condition not met within {timeout}s"
            raise TimeoutError(error_msg)
        await asyncio.sleep(interval)
