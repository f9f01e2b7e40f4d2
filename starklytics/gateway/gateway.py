"""Live query gateway: one long-lived channel per client.

Responsible for:
- Validating inbound frames and answering malformed ones with an error frame
- Running queries off the event loop so a channel keeps receiving
- Converting every query failure into an error frame on the same channel
- Heartbeat liveness with a single shared scheduler per gateway
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Any

from ..errors import ErrorCode, MalformedMessageError
from ..spellbook.dispatcher import QueryDispatcher
from .connection import Channel, Connection
from .protocol import (
    INVALID_FORMAT_MESSAGE,
    ControlFrame,
    error_frame,
    parse_frame,
    ping_frame,
    pong_frame,
    result_frame,
)

logger = logging.getLogger(__name__)

CLOSE_GOING_AWAY = 1001


class QueryGateway:
    """Accept query submissions from many clients and answer each one.

    Usage:
        gateway = QueryGateway(dispatcher, heartbeat_interval=30.0)
        await gateway.start()
        conn = gateway.connect(channel)
        await gateway.handle_frame(conn, '{"type": "query", "payload": {"query": "..."}}')
        ...
        await gateway.shutdown()

    Every accepted submission yields exactly one result or error frame
    unless the connection is terminated first, in which case the result
    is computed and discarded. Replies carry no request id, so two
    submissions in flight on one channel may be answered in either order.
    """

    def __init__(
        self,
        dispatcher: QueryDispatcher,
        heartbeat_interval: float = 30.0,
        query_timeout: float = 30.0,
    ) -> None:
        self.dispatcher = dispatcher
        self.heartbeat_interval = heartbeat_interval
        self.query_timeout = query_timeout
        self._connections: dict[str, Connection] = {}
        self._heartbeat_task: asyncio.Task[None] | None = None
        self._shut_down = False

    # -- connection registry -------------------------------------------------

    @property
    def connection_count(self) -> int:
        return len(self._connections)

    def connections(self) -> list[Connection]:
        return list(self._connections.values())

    def connect(self, channel: Channel, client_id: str | None = None) -> Connection:
        """Register a channel. The new connection starts ALIVE.

        Raises:
            ValueError: If ``client_id`` is already registered.
        """
        connection = Connection(channel=channel)
        if client_id:
            if client_id in self._connections:
                raise ValueError(f"Client id already connected: {client_id}")
            connection.client_id = client_id
        self._connections[connection.client_id] = connection
        logger.info(
            "Client %s connected. Total connections: %d",
            connection.client_id,
            len(self._connections),
        )
        return connection

    def disconnect(self, connection: Connection) -> None:
        """Unregister after the client closed. In-flight results are discarded."""
        connection.mark_terminated()
        if self._forget(connection):
            logger.info(
                "Client %s disconnected. Total connections: %d",
                connection.client_id,
                len(self._connections),
            )

    async def terminate(self, connection: Connection, code: int = CLOSE_GOING_AWAY) -> None:
        """Close the channel from the server side and forget the connection."""
        if not connection.mark_terminated():
            return
        self._forget(connection)
        try:
            await connection.channel.close(code)
        except Exception as e:
            logger.warning("Error closing channel for %s: %s", connection.client_id, e)

    def _forget(self, connection: Connection) -> bool:
        if self._connections.get(connection.client_id) is not connection:
            return False
        del self._connections[connection.client_id]
        return True

    # -- inbound frames ------------------------------------------------------

    async def handle_frame(self, connection: Connection, raw: str | bytes) -> asyncio.Task[None] | None:
        """Process one inbound frame.

        Query execution is scheduled as a task and not awaited, so the
        caller can go straight back to receiving. Returns that task for
        query submissions, None otherwise.
        """
        if connection.is_terminated:
            return None
        try:
            frame = parse_frame(raw)
        except MalformedMessageError as e:
            logger.warning("Malformed frame from %s: %s", connection.client_id, e)
            await self._send(connection, error_frame(INVALID_FORMAT_MESSAGE, ErrorCode.INVALID_FORMAT))
            return None

        if isinstance(frame, ControlFrame):
            if frame.type == "pong":
                connection.record_pong()
            else:
                await self._send(connection, pong_frame())
            return None

        task = asyncio.create_task(self._run_query(connection, frame.payload.query))
        connection.track(task)
        return task

    async def _run_query(self, connection: Connection, query: str) -> None:
        started = time.perf_counter()
        # Shielded so a timeout abandons the wait, not the computation.
        future = asyncio.ensure_future(asyncio.to_thread(self.dispatcher.execute, query))
        try:
            result = await asyncio.wait_for(asyncio.shield(future), timeout=self.query_timeout)
        except asyncio.TimeoutError:
            logger.warning(
                "Query from %s timed out after %.1fs: %.100s",
                connection.client_id,
                self.query_timeout,
                query,
            )
            future.add_done_callback(_consume_result)
            await self._send(
                connection,
                error_frame(f"Query timed out after {self.query_timeout:g}s", ErrorCode.TIMEOUT),
            )
            return
        except Exception as e:
            logger.exception("Query from %s failed: %.100s", connection.client_id, query)
            await self._send(
                connection,
                error_frame(str(e) or "Query execution failed", ErrorCode.EXECUTION_FAILED),
            )
            return

        duration_ms = (time.perf_counter() - started) * 1000
        await self._send(connection, result_frame(result, duration_ms))

    async def _send(self, connection: Connection, frame: dict[str, Any]) -> None:
        if connection.is_terminated:
            logger.debug("Discarding %s frame for terminated %s", frame.get("type"), connection.client_id)
            return
        try:
            await connection.channel.send_json(frame)
        except Exception as e:
            logger.warning("Failed to send to %s: %s", connection.client_id, e)
            await self.terminate(connection)

    # -- heartbeat -----------------------------------------------------------

    async def tick(self) -> None:
        """One heartbeat round over every open connection.

        A connection still waiting on the previous ping is terminated;
        every other connection is marked pending and pinged.
        """
        for connection in list(self._connections.values()):
            if connection.begin_check():
                await self._send(connection, ping_frame())
            else:
                logger.info("Terminating unresponsive client %s", connection.client_id)
                await self.terminate(connection)

    async def start(self) -> None:
        """Start the shared heartbeat scheduler (no-op if already running)."""
        if self._heartbeat_task is not None or self._shut_down:
            logger.warning("Heartbeat scheduler already started")
            return
        self._heartbeat_task = asyncio.create_task(self._heartbeat_loop())
        logger.info("Heartbeat scheduler started (interval=%.1fs)", self.heartbeat_interval)

    async def _heartbeat_loop(self) -> None:
        while True:
            await asyncio.sleep(self.heartbeat_interval)
            try:
                await self.tick()
            except Exception as e:
                logger.error(f"Heartbeat tick error: {e}")

    @property
    def heartbeat_running(self) -> bool:
        return self._heartbeat_task is not None and not self._heartbeat_task.done()

    async def shutdown(self) -> None:
        """Cancel the heartbeat scheduler and close every connection.

        Safe to call more than once; only the first call does anything.
        """
        if self._shut_down:
            return
        self._shut_down = True
        if self._heartbeat_task is not None:
            self._heartbeat_task.cancel()
            try:
                await self._heartbeat_task
            except asyncio.CancelledError:
                pass
        for connection in list(self._connections.values()):
            await self.terminate(connection)
        logger.info("Gateway shut down")


def _consume_result(future: asyncio.Future[Any]) -> None:
    # Retrieve the late outcome so it is not reported as never retrieved.
    if not future.cancelled() and future.exception() is not None:
        logger.warning("Timed-out query finished with error: %s", future.exception())
