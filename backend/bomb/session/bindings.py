"""Connection binding table.

Every open connection is bound to exactly one place: the lobby or one seat in
a game. A seat holds at most one connection; binding a new connection to an
occupied seat hands back the one it displaced so the caller can close it.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from bomb.messaging.protocol import ConnectionProtocol


@dataclass(frozen=True)
class SeatBinding:
    game_id: str
    player_id: str


class ConnectionRegistry:
    def __init__(self) -> None:
        self._connections: dict[str, ConnectionProtocol] = {}  # connection_id -> connection
        self._lobby: set[str] = set()  # connection_ids
        self._seats: dict[str, SeatBinding] = {}  # connection_id -> seat
        self._by_seat: dict[SeatBinding, str] = {}  # seat -> connection_id

    def register(self, connection: ConnectionProtocol) -> None:
        self._connections[connection.connection_id] = connection

    def unregister(self, connection_id: str) -> SeatBinding | None:
        """Forget a connection entirely. Returns the seat it was bound to, if any."""
        self._connections.pop(connection_id, None)
        self._lobby.discard(connection_id)
        return self._unbind_seat(connection_id)

    def is_registered(self, connection_id: str) -> bool:
        return connection_id in self._connections

    # --- Lobby ---

    def bind_lobby(self, connection_id: str) -> None:
        self._unbind_seat(connection_id)
        self._lobby.add(connection_id)

    def in_lobby(self, connection_id: str) -> bool:
        return connection_id in self._lobby

    def lobby_connections(self) -> list[ConnectionProtocol]:
        return [self._connections[cid] for cid in self._lobby if cid in self._connections]

    # --- Seats ---

    def bind_seat(self, connection_id: str, game_id: str, player_id: str) -> ConnectionProtocol | None:
        """Bind a connection to a seat. Returns the connection it displaced, if any."""
        self._lobby.discard(connection_id)
        self._unbind_seat(connection_id)
        seat = SeatBinding(game_id=game_id, player_id=player_id)
        displaced_id = self._by_seat.get(seat)
        displaced = None
        if displaced_id is not None and displaced_id != connection_id:
            self._seats.pop(displaced_id, None)
            displaced = self._connections.get(displaced_id)
        self._by_seat[seat] = connection_id
        self._seats[connection_id] = seat
        return displaced

    def unbind_seat(self, connection_id: str) -> SeatBinding | None:
        return self._unbind_seat(connection_id)

    def _unbind_seat(self, connection_id: str) -> SeatBinding | None:
        seat = self._seats.pop(connection_id, None)
        if seat is not None and self._by_seat.get(seat) == connection_id:
            del self._by_seat[seat]
        return seat

    def seat_of(self, connection_id: str) -> SeatBinding | None:
        return self._seats.get(connection_id)

    def connection_for(self, game_id: str, player_id: str) -> ConnectionProtocol | None:
        connection_id = self._by_seat.get(SeatBinding(game_id=game_id, player_id=player_id))
        return None if connection_id is None else self._connections.get(connection_id)

    def game_connections(self, game_id: str) -> dict[str, ConnectionProtocol]:
        """Return player_id -> connection for every bound seat of a game."""
        return {
            seat.player_id: self._connections[cid]
            for seat, cid in self._by_seat.items()
            if seat.game_id == game_id and cid in self._connections
        }

    def occupied_game_ids(self) -> set[str]:
        """Ids of games with at least one seat bound to an open connection."""
        return {seat.game_id for seat, cid in self._by_seat.items() if cid in self._connections}

    # --- Counts ---

    @property
    def connection_count(self) -> int:
        return len(self._connections)

    @property
    def lobby_count(self) -> int:
        return len(self._lobby)

    def all_connections(self) -> list[ConnectionProtocol]:
        return list(self._connections.values())
