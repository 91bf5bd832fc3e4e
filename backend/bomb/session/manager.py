from __future__ import annotations

import asyncio
import contextlib
import time
import uuid
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

import structlog
from pydantic import ValidationError

from bomb.logic import actions
from bomb.logic.enums import GameAction, GamePhase
from bomb.logic.events import GameEndedEvent, JoinRequestDeniedEvent, ListingChangedEvent, ToastEvent
from bomb.logic.exceptions import GameRuleError
from bomb.logic.state import GameSession
from bomb.messaging.snapshot import build_game_state
from bomb.messaging.types import (
    ErrorMessage,
    InvalidTokenMessage,
    JoinRequestDeniedMessage,
    ToastMessage,
    TokenMessage,
    wire,
)
from bomb.session.bindings import ConnectionRegistry
from bomb.session.broadcast import broadcast_to_connections, send_quietly
from bomb.session.heartbeat import DEFAULT_SWEEP_INTERVAL, LivenessSweeper
from bomb.session.lobby import LobbyManager
from shared.auth import open_seat_token, seal_seat_token

if TYPE_CHECKING:
    from bomb.logic.events import GameEvent
    from bomb.messaging.protocol import ConnectionProtocol
    from shared.auth import SeatToken
    from shared.cache import GameStateCache

DEFAULT_MAX_GAMES = 500
DEFAULT_ABANDONED_GAME_TTL = 300  # seconds a game may sit with no connected player
_REAPER_INTERVAL = 60  # seconds between abandoned-game checks

logger = structlog.get_logger()


@dataclass
class _Fallout:
    """Work left over from a locked mutation that must run after the lock is released."""

    released: list[ConnectionProtocol] = field(default_factory=list)
    listing_changed: bool = False


class SessionManager:
    """Hub owning every registry: games, their locks, bindings, lobby and liveness.

    All mutations of one game, including the sends and the cache write that
    follow them, run under that game's lock. Lobby admission and socket
    closes happen after the lock is released.
    """

    def __init__(
        self,
        *,
        token_secret: str,
        cache: GameStateCache | None = None,
        max_games: int = DEFAULT_MAX_GAMES,
        sweep_interval: float = DEFAULT_SWEEP_INTERVAL,
        abandoned_game_ttl: float = DEFAULT_ABANDONED_GAME_TTL,
    ) -> None:
        self._token_secret = token_secret
        self._cache = cache
        self._max_games = max_games
        self._abandoned_game_ttl = abandoned_game_ttl
        self._abandoned_since: dict[str, float] = {}  # game_id -> monotonic time its last player dropped
        self._reaper_task: asyncio.Task[None] | None = None
        self._games: dict[str, GameSession] = {}  # game_id -> GameSession
        self._game_locks: dict[str, asyncio.Lock] = {}  # game_id -> Lock
        self._registry = ConnectionRegistry()
        self._lobby = LobbyManager(self._registry, self._list_games)
        self._sweeper = LivenessSweeper(
            get_connections=self._registry.all_connections,
            on_stale=self.disconnect,
            interval=sweep_interval,
        )

    @property
    def registry(self) -> ConnectionRegistry:
        return self._registry

    @property
    def lobby(self) -> LobbyManager:
        return self._lobby

    @property
    def sweeper(self) -> LivenessSweeper:
        return self._sweeper

    def get_game(self, game_id: str) -> GameSession | None:
        return self._games.get(game_id)

    @property
    def game_count(self) -> int:
        return len(self._games)

    def _list_games(self) -> list[GameSession]:
        """Games someone is still connected to. Abandoned games stay off the lobby list."""
        occupied = self._registry.occupied_game_ids()
        return [game for game in self._games.values() if game.id in occupied]

    def _is_abandoned(self, game_id: str) -> bool:
        return not self._registry.game_connections(game_id)

    def _register_game(self, game: GameSession) -> asyncio.Lock:
        self._games[game.id] = game
        lock = self._game_locks.setdefault(game.id, asyncio.Lock())
        return lock

    def get_status(self) -> dict[str, Any]:
        """Counts for the status endpoint."""
        pending = sum(1 for game in self._games.values() if game.phase == GamePhase.PENDING)
        return {
            "games": {"pending": pending, "active": len(self._games) - pending},
            "connections": {"lobby": self._lobby.member_count, "total": self._registry.connection_count},
        }

    async def start(self) -> None:
        self._sweeper.start()
        self.start_reaper()

    async def shutdown(self) -> None:
        await self.stop_reaper()
        await self._sweeper.stop()
        if self._cache is not None:
            await self._cache.close()

    async def _send_error(self, connection: ConnectionProtocol, message: str) -> None:
        logger.warning("error sent to client", error_message=message)
        await send_quietly(connection, wire(ErrorMessage(message=message)))

    # --- Connection routing ---

    async def connect(self, connection: ConnectionProtocol, token: str | None) -> None:
        """Route a new connection to its seat if its token resolves, else to the lobby."""
        self._registry.register(connection)
        self._sweeper.record_connect(connection.connection_id)

        if not token:
            await self._lobby.admit(connection)
            return

        seat_token = open_seat_token(token, self._token_secret)
        if seat_token is not None and await self._resume_seat(connection, seat_token):
            return

        logger.info("connection presented an unusable token", connection_id=connection.connection_id, token=token)
        await send_quietly(connection, wire(InvalidTokenMessage()))
        await self._lobby.admit(connection)

    async def disconnect(self, connection: ConnectionProtocol) -> None:
        """Forget a closed connection. The seat it held keeps its player."""
        connection_id = connection.connection_id
        self._sweeper.record_disconnect(connection_id)
        if not self._registry.is_registered(connection_id):
            return
        seat = self._registry.unregister(connection_id)
        if seat is None:
            return
        logger.info("player disconnected", game_id=seat.game_id, player_id=seat.player_id)

        game = self._games.get(seat.game_id)
        lock = self._game_locks.get(seat.game_id)
        if game is None or lock is None:
            return
        listing_changed = False
        async with lock:
            if self._games.get(seat.game_id) is not game:
                return
            await self._broadcast_game_state(game)
            if self._is_abandoned(game.id):
                self._abandoned_since.setdefault(game.id, time.monotonic())
                logger.info("game abandoned", game_id=game.id)
                listing_changed = game.phase == GamePhase.PENDING
        if listing_changed:
            await self._lobby.broadcast_games()

    def record_activity(self, connection: ConnectionProtocol) -> None:
        self._sweeper.record_activity(connection.connection_id)

    async def _resume_seat(self, connection: ConnectionProtocol, seat_token: SeatToken) -> bool:
        game = self._games.get(seat_token.game_id)
        if game is None:
            game = await self._restore_from_cache(seat_token.game_id)
            if game is None:
                return False

        lock = self._game_locks.get(game.id)
        if lock is None:
            return False
        displaced: ConnectionProtocol | None = None
        async with lock:
            if self._games.get(game.id) is not game:
                return False
            player = game.get_player(seat_token.user_id)
            if player is None or player.left:
                return False

            reclaimed = self._is_abandoned(game.id)
            displaced = self._registry.bind_seat(connection.connection_id, game.id, player.id)
            self._abandoned_since.pop(game.id, None)
            logger.info("player reconnected", game_id=game.id, player_id=player.id)
            await self._broadcast_game_state(game)

        if displaced is not None:
            self._sweeper.record_disconnect(displaced.connection_id)
            await self._close_quietly(displaced, reason="replaced_by_reconnect")
        if reclaimed and game.phase == GamePhase.PENDING:
            await self._lobby.broadcast_games()
        return True

    async def _restore_from_cache(self, game_id: str) -> GameSession | None:
        """Read a game back from the cache after a restart. Returns None on any miss."""
        if self._cache is None:
            return None
        try:
            record = await self._cache.load(game_id)
        except Exception:
            logger.exception("failed to read game state cache", game_id=game_id)
            return None
        if record is None:
            return None
        try:
            game = GameSession.model_validate(record)
        except ValidationError:
            logger.warning("discarding invalid cached game", game_id=game_id)
            return None
        if game.phase != GamePhase.ACTIVE:
            return None

        # a concurrent reconnect may have restored it while we awaited the cache
        existing = self._games.get(game_id)
        if existing is not None:
            return existing
        self._register_game(game)
        logger.info("game restored from cache", game_id=game_id)
        return game

    # --- Lobby actions ---

    async def create_game(self, connection: ConnectionProtocol, name: str) -> None:
        if not self._lobby.is_member(connection.connection_id):
            await self._send_error(connection, "You are already in a game")
            return
        if len(self._registry.occupied_game_ids()) >= self._max_games:
            await self._send_error(connection, "Too many games are running, try again later")
            return

        game = actions.create_game(game_id=uuid.uuid4().hex, player_id=uuid.uuid4().hex, name=name)
        player_id = game.players[0].id
        async with self._register_game(game):
            self._registry.bind_seat(connection.connection_id, game.id, player_id)
            logger.info("game created", game_id=game.id, player_id=player_id)
            await self._send_token(connection, game.id, player_id)
            await self._broadcast_game_state(game)
        await self._lobby.broadcast_games()

    async def request_to_join(
        self,
        connection: ConnectionProtocol,
        game_id: str,
        name: str,
        message: str | None,
    ) -> None:
        if not self._lobby.is_member(connection.connection_id):
            await self._send_error(connection, "You are already in a game")
            return
        game = self._games.get(game_id)
        lock = self._game_locks.get(game_id)
        if game is None or lock is None:
            await self._send_error(connection, "Game not found")
            return

        async with lock:
            if self._games.get(game_id) is not game or self._is_abandoned(game_id):
                await self._send_error(connection, "Game not found")
                return
            player_id = uuid.uuid4().hex
            try:
                actions.request_to_join(game, player_id, name, message)
            except GameRuleError as e:
                await self._send_error(connection, str(e))
                return
            self._registry.bind_seat(connection.connection_id, game.id, player_id)
            logger.info("player requested to join", game_id=game.id, player_id=player_id)
            await self._send_token(connection, game.id, player_id)
            await self._broadcast_game_state(game)

    async def _send_token(self, connection: ConnectionProtocol, game_id: str, player_id: str) -> None:
        token = seal_seat_token(game_id, player_id, self._token_secret)
        await send_quietly(connection, wire(TokenMessage(token=token)))

    # --- Game actions ---

    async def handle_game_action(
        self,
        connection: ConnectionProtocol,
        action: GameAction,
        data: dict[str, Any],
    ) -> None:
        seat = self._registry.seat_of(connection.connection_id)
        if seat is None:
            await self._send_error(connection, "You must join a game first")
            return
        game = self._games.get(seat.game_id)
        lock = self._game_locks.get(seat.game_id)
        if game is None or lock is None:
            await self._send_error(connection, "Game not found")
            return

        structlog.contextvars.bind_contextvars(game_id=seat.game_id, player_id=seat.player_id)
        fallout = _Fallout()
        async with lock:
            if self._games.get(seat.game_id) is not game:
                await self._send_error(connection, "Game not found")
                return
            try:
                events = actions.handle_action(game, seat.player_id, action, data)
            except GameRuleError as e:
                await self._send_error(connection, str(e))
                return

            logger.info("game action applied", action=action)
            if action == GameAction.LEAVE_GAME:
                self._registry.unbind_seat(connection.connection_id)
                fallout.released.append(connection)
            await self._apply_events(game, events, fallout)
            await self._settle(game, fallout)

        await self._finish(fallout)

    async def _apply_events(self, game: GameSession, events: list[GameEvent], fallout: _Fallout) -> None:
        """Carry out the side effects of a game action. Runs under the game lock."""
        for event in events:
            if isinstance(event, ToastEvent):
                toast = wire(ToastMessage(message=event.message))
                if event.target is None:
                    await broadcast_to_connections(self._registry.game_connections(game.id).values(), toast)
                else:
                    target = self._registry.connection_for(game.id, event.target)
                    if target is not None:
                        await send_quietly(target, toast)
            elif isinstance(event, JoinRequestDeniedEvent):
                denied = self._registry.connection_for(game.id, event.player_id)
                if denied is not None:
                    self._registry.unbind_seat(denied.connection_id)
                    await send_quietly(denied, wire(JoinRequestDeniedMessage()))
                    await send_quietly(denied, wire(InvalidTokenMessage()))
                    fallout.released.append(denied)
            elif isinstance(event, ListingChangedEvent):
                fallout.listing_changed = True
            elif isinstance(event, GameEndedEvent):
                logger.info("game ended", game_id=game.id, winner_id=event.winner_id)

    async def _settle(self, game: GameSession, fallout: _Fallout) -> None:
        """Broadcast the new state, then persist or destroy the game. Runs under the game lock."""
        if game.is_empty:
            await self._destroy_game(game, fallout)
            fallout.listing_changed = True
            return

        await self._broadcast_game_state(game)
        if game.phase == GamePhase.OVER:
            await self._destroy_game(game, fallout)
            return
        await self._persist(game)
        if self._is_abandoned(game.id) and game.id not in self._abandoned_since:
            self._abandoned_since[game.id] = time.monotonic()
            logger.info("game abandoned", game_id=game.id)
            if game.phase == GamePhase.PENDING:
                fallout.listing_changed = True

    async def _destroy_game(self, game: GameSession, fallout: _Fallout) -> None:
        """Drop a finished or abandoned game and release its connections."""
        for connection in self._registry.game_connections(game.id).values():
            self._registry.unbind_seat(connection.connection_id)
            fallout.released.append(connection)
        self._games.pop(game.id, None)
        self._game_locks.pop(game.id, None)
        self._abandoned_since.pop(game.id, None)
        logger.info("game destroyed", game_id=game.id)
        if self._cache is not None and game.started:
            try:
                await self._cache.delete(game.id)
            except Exception:
                logger.exception("failed to delete cached game", game_id=game.id)

    async def _finish(self, fallout: _Fallout) -> None:
        """Return released connections to the lobby. Runs outside any game lock."""
        for connection in fallout.released:
            if self._registry.is_registered(connection.connection_id):
                await self._lobby.admit(connection)
        if fallout.listing_changed:
            await self._lobby.broadcast_games()

    async def _persist(self, game: GameSession) -> None:
        """Write-through of an active game. Failures are logged and ignored."""
        if self._cache is None or game.phase != GamePhase.ACTIVE:
            return
        try:
            await self._cache.save(game.id, game.model_dump(mode="json"))
        except Exception:
            logger.exception("failed to write game state cache", game_id=game.id)

    # --- Abandoned-game reaper ---

    def start_reaper(self) -> None:
        """Start the periodic abandoned-game reaper. Idempotent. A zero TTL disables it."""
        if self._abandoned_game_ttl <= 0:
            return
        if self._reaper_task is not None and not self._reaper_task.done():
            return
        self._reaper_task = asyncio.create_task(self._reaper_loop())

    async def stop_reaper(self) -> None:
        if self._reaper_task is not None:
            self._reaper_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._reaper_task
            self._reaper_task = None

    async def _reaper_loop(self) -> None:  # pragma: no cover
        while True:
            await asyncio.sleep(_REAPER_INTERVAL)
            try:
                await self._reap_abandoned_games()
            except Exception:
                logger.exception("game reaper encountered an error")

    async def _reap_abandoned_games(self) -> None:
        """Drop games nobody has been connected to for longer than the TTL.

        A pending game is gone for good. An active game only leaves memory: its
        cached copy lives on until the cache TTL, so a seat token can still
        restore it. Each candidate is re-checked under its lock before removal.
        """
        now = time.monotonic()
        for game_id in list(self._games):
            if self._is_abandoned(game_id):
                self._abandoned_since.setdefault(game_id, now)
            else:
                self._abandoned_since.pop(game_id, None)

        expired = [
            game_id
            for game_id, since in list(self._abandoned_since.items())
            if now - since > self._abandoned_game_ttl
        ]
        for game_id in expired:
            lock = self._game_locks.get(game_id)
            if lock is None:
                self._abandoned_since.pop(game_id, None)
                continue
            async with lock:
                game = self._games.get(game_id)
                if game is None or not self._is_abandoned(game_id):
                    self._abandoned_since.pop(game_id, None)
                    continue
                idle = now - self._abandoned_since.pop(game_id, now)
                self._games.pop(game_id, None)
                self._game_locks.pop(game_id, None)
                logger.info("abandoned game reaped", game_id=game_id, phase=game.phase, idle_seconds=round(idle))

    async def _broadcast_game_state(self, game: GameSession) -> None:
        connections = self._registry.game_connections(game.id)
        message = wire(build_game_state(game, connections.keys()))
        await broadcast_to_connections(connections.values(), message)

    @staticmethod
    async def _close_quietly(connection: ConnectionProtocol, reason: str) -> None:
        try:
            await connection.close(code=1000, reason=reason)
        except (RuntimeError, OSError, ConnectionError):
            logger.debug("connection already closed", connection_id=connection.connection_id)
