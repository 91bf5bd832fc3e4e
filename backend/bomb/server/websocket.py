from __future__ import annotations

import contextlib
from typing import TYPE_CHECKING
from uuid import uuid4

import structlog
from starlette.websockets import WebSocket, WebSocketDisconnect

from bomb.messaging.encoder import DecodeError, decode
from bomb.messaging.protocol import ConnectionProtocol
from bomb.messaging.types import ErrorMessage, wire

logger = structlog.get_logger()

if TYPE_CHECKING:
    from bomb.messaging.router import MessageRouter

_MAX_TOKEN_LENGTH = 2000

# Disconnect after this many consecutive decode errors
_MAX_DECODE_ERRORS = 5


class WebSocketConnection(ConnectionProtocol):
    def __init__(self, websocket: WebSocket, connection_id: str | None = None) -> None:
        self._websocket = websocket
        self._connection_id = connection_id or uuid4().hex

    @property
    def connection_id(self) -> str:
        return self._connection_id

    async def send_text(self, data: str) -> None:
        try:
            await self._websocket.send_text(data)
        except WebSocketDisconnect:
            raise ConnectionError("WebSocket already disconnected") from None

    async def receive_text(self) -> str:
        message = await self._websocket.receive()
        if message["type"] == "websocket.disconnect":
            raise ConnectionError("WebSocket already disconnected")
        # binary frames are not part of the protocol; they fail decoding as empty text
        return message.get("text") or ""

    async def close(self, code: int = 1000, reason: str = "") -> None:
        with contextlib.suppress(WebSocketDisconnect):
            await self._websocket.close(code=code, reason=reason)


async def websocket_endpoint(websocket: WebSocket, router: MessageRouter) -> None:
    token = websocket.query_params.get("token") or None
    if token is not None and len(token) > _MAX_TOKEN_LENGTH:
        # oversized tokens cannot be ours; treat them like any unreadable token
        token = "invalid"

    await websocket.accept()

    connection = WebSocketConnection(websocket)
    logger.info("websocket connected", connection_id=connection.connection_id, has_token=token is not None)
    decode_errors = 0

    try:
        await router.handle_connect(connection, token)
        while True:
            raw = await connection.receive_text()

            try:
                data = decode(raw)
            except DecodeError as e:
                decode_errors += 1
                logger.warning("decode error", error=str(e), strikes=decode_errors)
                await connection.send_message(wire(ErrorMessage(message=str(e))))
                if decode_errors >= _MAX_DECODE_ERRORS:
                    logger.info(
                        "too many decode errors, disconnecting",
                        connection_id=connection.connection_id,
                    )
                    await connection.close(code=4004, reason="too_many_decode_errors")
                    return
                continue

            decode_errors = 0
            await router.handle_message(connection, data)
    except (WebSocketDisconnect, RuntimeError, ConnectionError):  # fmt: skip
        pass
    finally:
        logger.info("websocket disconnected", connection_id=connection.connection_id)
        await router.handle_disconnect(connection)
        structlog.contextvars.clear_contextvars()
