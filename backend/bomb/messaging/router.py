from __future__ import annotations

from typing import TYPE_CHECKING, Any

import structlog
from pydantic import ValidationError

from bomb.messaging.types import (
    AcceptJoinRequestMessage,
    CreateGameMessage,
    DenyJoinRequestMessage,
    ErrorMessage,
    NoDataActionMessage,
    PlayMoveMessage,
    PongMessage,
    RequestToJoinMessage,
    action_for,
    parse_client_message,
    wire,
)
from bomb.session.broadcast import send_quietly

if TYPE_CHECKING:
    from bomb.messaging.protocol import ConnectionProtocol
    from bomb.session.manager import SessionManager

logger = structlog.get_logger()


_GAME_ACTION_TYPES = (
    AcceptJoinRequestMessage,
    DenyJoinRequestMessage,
    PlayMoveMessage,
    NoDataActionMessage,
)


class MessageRouter:
    """
    Routes incoming messages to appropriate handlers.

    This class contains pure business logic and can be tested
    without real WebSocket connections.
    """

    def __init__(self, session_manager: SessionManager) -> None:
        self._session_manager = session_manager

    async def handle_connect(self, connection: ConnectionProtocol, token: str | None = None) -> None:
        await self._session_manager.connect(connection, token)

    async def handle_message(
        self,
        connection: ConnectionProtocol,
        raw_message: dict[str, Any],
    ) -> None:
        """Dispatch one decoded frame. Any frame, even a rejected one, proves the client is alive."""
        self._session_manager.record_activity(connection)
        try:
            message = parse_client_message(raw_message)
        except (ValidationError, KeyError, TypeError, ValueError) as e:
            logger.warning("invalid message", connection_id=connection.connection_id, error=str(e))
            await send_quietly(connection, wire(ErrorMessage(message=f"Invalid message: {e}")))
            return

        if isinstance(message, PongMessage):
            return
        if isinstance(message, CreateGameMessage):
            await self._session_manager.create_game(connection, message.name)
        elif isinstance(message, RequestToJoinMessage):
            await self._session_manager.request_to_join(
                connection,
                game_id=message.game_id,
                name=message.name,
                message=message.message,
            )
        elif isinstance(message, _GAME_ACTION_TYPES):
            await self._handle_game_action(connection, message)

    async def _handle_game_action(
        self,
        connection: ConnectionProtocol,
        message: AcceptJoinRequestMessage | DenyJoinRequestMessage | PlayMoveMessage | NoDataActionMessage,
    ) -> None:
        """Route a game action message. Unexpected failures stay within this connection."""
        data = {name: getattr(message, name) for name in type(message).model_fields if name != "key"}
        try:
            await self._session_manager.handle_game_action(
                connection=connection,
                action=action_for(message),
                data=data,
            )
        except Exception:
            logger.exception("unexpected error during game action", connection_id=connection.connection_id)
            await send_quietly(connection, wire(ErrorMessage(message="Internal error")))
        finally:
            structlog.contextvars.unbind_contextvars("game_id", "player_id")

    async def handle_disconnect(self, connection: ConnectionProtocol) -> None:
        await self._session_manager.disconnect(connection)
