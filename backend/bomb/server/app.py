from __future__ import annotations

from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

import structlog
from starlette.applications import Starlette
from starlette.middleware.cors import CORSMiddleware
from starlette.responses import JSONResponse
from starlette.routing import Route, WebSocketRoute

from bomb.messaging.router import MessageRouter
from bomb.server.settings import BombServerSettings
from bomb.server.websocket import websocket_endpoint
from bomb.session.manager import SessionManager
from shared.cache import RedisGameStateCache
from shared.logging import setup_logging

logger = structlog.get_logger()

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator

    from starlette.requests import Request
    from starlette.websockets import WebSocket

    from shared.cache import GameStateCache


async def health(_request: Request) -> JSONResponse:
    return JSONResponse({"status": "ok"})


async def status(request: Request) -> JSONResponse:
    session_manager: SessionManager = request.app.state.session_manager
    settings: BombServerSettings = request.app.state.settings
    return JSONResponse(
        {
            "status": "ok",
            **session_manager.get_status(),
            "max_games": settings.max_games,
        },
    )


def create_app(
    settings: BombServerSettings | None = None,
    session_manager: SessionManager | None = None,
    message_router: MessageRouter | None = None,
) -> Starlette:
    if settings is None:  # pragma: no cover
        settings = BombServerSettings()  # ty: ignore[missing-argument]

    if session_manager is None:
        cache: GameStateCache | None = None
        if settings.cache_url:
            cache = RedisGameStateCache(settings.cache_url, ttl_seconds=settings.cache_ttl_seconds)
        session_manager = SessionManager(
            token_secret=settings.token_secret,
            cache=cache,
            max_games=settings.max_games,
            sweep_interval=settings.sweep_interval_seconds,
            abandoned_game_ttl=settings.abandoned_game_ttl_seconds,
        )

    if message_router is None:
        message_router = MessageRouter(session_manager)

    async def ws_endpoint(websocket: WebSocket) -> None:
        await websocket_endpoint(websocket, message_router)

    routes = [
        Route("/health", health, methods=["GET"]),
        Route("/status", status, methods=["GET"]),
        WebSocketRoute("/ws", ws_endpoint),
    ]

    @asynccontextmanager
    async def lifespan(_app: Starlette) -> AsyncGenerator[None]:
        await session_manager.start()
        yield
        await session_manager.shutdown()

    app = Starlette(routes=routes, lifespan=lifespan)
    app.add_middleware(
        CORSMiddleware,  # type: ignore[arg-type]
        allow_origins=settings.cors_origins,
        allow_methods=["GET"],
        allow_headers=["Content-Type"],
    )
    app.state.settings = settings
    app.state.session_manager = session_manager

    logger.info("game server ready", cache_enabled=settings.cache_url is not None)
    return app


def get_app() -> Starlette:  # pragma: no cover
    """ASGI application factory for production use (e.g., uvicorn --factory)."""
    _settings = BombServerSettings()  # ty: ignore[missing-argument]
    setup_logging(log_dir=_settings.log_dir)
    return create_app(settings=_settings)
