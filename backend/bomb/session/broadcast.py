"""Shared send helpers for player groups and single connections."""

from __future__ import annotations

import contextlib
from collections.abc import Iterable
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from bomb.messaging.protocol import ConnectionProtocol


async def send_quietly(connection: ConnectionProtocol, message: dict[str, Any]) -> None:
    """Send to one connection, ignoring a socket that is already gone."""
    with contextlib.suppress(RuntimeError, OSError, ConnectionError):
        await connection.send_message(message)


async def broadcast_to_connections(
    connections: Iterable[ConnectionProtocol],
    message: dict[str, Any],
) -> None:
    """Broadcast a message to all connections.

    Snapshot the iterable via list() so a concurrent disconnect mutating the
    underlying table while we yield on send_message is harmless.
    """
    for connection in list(connections):
        await send_quietly(connection, message)
