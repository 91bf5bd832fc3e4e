"""Sweep idle connections via application-level pings.

Any decoded frame from a client answers the latest ping. A client with
nothing else to send replies with `{"key": "pong"}`.
"""

from __future__ import annotations

import asyncio
import contextlib
from collections.abc import Awaitable, Callable

import structlog

from bomb.messaging.protocol import ConnectionProtocol
from bomb.messaging.types import PingMessage, wire
from bomb.session.broadcast import send_quietly

DEFAULT_SWEEP_INTERVAL = 30  # seconds between sweeps

logger = structlog.get_logger()

# Called after a stale connection has been closed; removes its binding.
StaleHandler = Callable[[ConnectionProtocol], Awaitable[None]]


class LivenessSweeper:
    """Ping every tracked connection once per interval and drop the silent ones.

    Each sweep, a connection that answered the previous ping is marked
    unanswered and pinged again; one that did not answer is closed. A
    connection gets one full interval to answer before it is dropped.
    """

    def __init__(
        self,
        get_connections: Callable[[], list[ConnectionProtocol]],
        on_stale: StaleHandler,
        interval: float = DEFAULT_SWEEP_INTERVAL,
    ) -> None:
        self._get_connections = get_connections
        self._on_stale = on_stale
        self._interval = interval
        self._answered: dict[str, bool] = {}  # connection_id -> answered since last ping
        self._task: asyncio.Task[None] | None = None

    def record_connect(self, connection_id: str) -> None:
        """Track a new connection as alive."""
        self._answered[connection_id] = True

    def record_disconnect(self, connection_id: str) -> None:
        self._answered.pop(connection_id, None)

    def record_activity(self, connection_id: str) -> None:
        if connection_id in self._answered:
            self._answered[connection_id] = True

    def is_tracked(self, connection_id: str) -> bool:
        return connection_id in self._answered

    def start(self) -> None:
        if self._task is not None and not self._task.done():
            return
        self._task = asyncio.create_task(self._sweep_loop())

    async def stop(self) -> None:
        task, self._task = self._task, None
        if task is not None:
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task

    async def _sweep_loop(self) -> None:
        while True:
            await asyncio.sleep(self._interval)
            try:
                await self.sweep()
            except Exception:
                logger.exception("liveness sweep failed")

    async def sweep(self) -> None:
        """Run one ping pass over all tracked connections."""
        for connection in self._get_connections():
            connection_id = connection.connection_id
            answered = self._answered.get(connection_id)
            if answered is None:
                continue
            if answered:
                self._answered[connection_id] = False
                await send_quietly(connection, wire(PingMessage()))
                continue

            logger.info("heartbeat timeout, disconnecting", connection_id=connection_id)
            self._answered.pop(connection_id, None)
            with contextlib.suppress(RuntimeError, OSError, ConnectionError):
                await connection.close(code=1000, reason="heartbeat_timeout")
            await self._on_stale(connection)
