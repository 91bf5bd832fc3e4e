"""Open matchmaking area.

Connections without a seat wait here and see the list of joinable games.
The list is pushed on admission and re-pushed to every lobby connection
whenever it changes.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import TYPE_CHECKING, Any

import structlog

from bomb.messaging.snapshot import build_available_games
from bomb.messaging.types import wire
from bomb.session.broadcast import broadcast_to_connections, send_quietly

if TYPE_CHECKING:
    from bomb.logic.state import GameSession
    from bomb.messaging.protocol import ConnectionProtocol
    from bomb.session.bindings import ConnectionRegistry

logger = structlog.get_logger()


class LobbyManager:
    def __init__(
        self,
        registry: ConnectionRegistry,
        list_games: Callable[[], list[GameSession]],
    ) -> None:
        self._registry = registry
        self._list_games = list_games

    def is_member(self, connection_id: str) -> bool:
        return self._registry.in_lobby(connection_id)

    @property
    def member_count(self) -> int:
        return self._registry.lobby_count

    def available_games(self) -> dict[str, Any]:
        return wire(build_available_games(self._list_games()))

    async def admit(self, connection: ConnectionProtocol) -> None:
        """Put a connection in the lobby and send it the current list."""
        self._registry.bind_lobby(connection.connection_id)
        logger.debug("connection admitted to lobby", connection_id=connection.connection_id)
        await send_quietly(connection, self.available_games())

    async def broadcast_games(self) -> None:
        """Re-send the joinable games list to every lobby connection."""
        await broadcast_to_connections(self._registry.lobby_connections(), self.available_games())
