"""Per-connection liveness state machine.

    connect ──► ALIVE ──tick──► PENDING_CHECK ──tick──► TERMINATED
                  ▲                  │
                  └──────pong────────┘

A connection that answers no ping between two consecutive ticks is
terminated on the second tick. TERMINATED is final.
"""

from __future__ import annotations

import asyncio
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Protocol


class Channel(Protocol):
    """Duplex transport a connection writes to."""

    async def send_json(self, frame: dict[str, Any]) -> None: ...

    async def close(self, code: int = 1000) -> None: ...


class Liveness(Enum):
    ALIVE = "alive"
    PENDING_CHECK = "pending_check"
    TERMINATED = "terminated"


@dataclass
class Connection:
    """One client's channel plus its liveness and in-flight queries."""

    channel: Channel
    client_id: str = field(default_factory=lambda: uuid.uuid4().hex)
    liveness: Liveness = Liveness.ALIVE
    connected_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    last_pong: datetime | None = None
    pending: set[asyncio.Task[None]] = field(default_factory=set)

    @property
    def is_alive(self) -> bool:
        """The ``alive`` flag: true until a ping goes unanswered."""
        return self.liveness is Liveness.ALIVE

    @property
    def is_terminated(self) -> bool:
        return self.liveness is Liveness.TERMINATED

    def record_pong(self) -> None:
        if self.is_terminated:
            return
        self.liveness = Liveness.ALIVE
        self.last_pong = datetime.now(timezone.utc)

    def begin_check(self) -> bool:
        """Advance on a heartbeat tick.

        Returns True when a ping should be sent, False when the connection
        missed the previous ping and must be terminated.
        """
        if self.liveness is Liveness.ALIVE:
            self.liveness = Liveness.PENDING_CHECK
            return True
        return False

    def mark_terminated(self) -> bool:
        """Move to TERMINATED. Returns False if it already was."""
        if self.is_terminated:
            return False
        self.liveness = Liveness.TERMINATED
        return True

    def track(self, task: asyncio.Task[None]) -> None:
        self.pending.add(task)
        task.add_done_callback(self.pending.discard)
