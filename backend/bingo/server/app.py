from __future__ import annotations

import contextlib
from importlib.metadata import PackageNotFoundError, version
from typing import TYPE_CHECKING

import structlog
from starlette.applications import Starlette
from starlette.middleware.cors import CORSMiddleware
from starlette.responses import JSONResponse
from starlette.routing import Route, WebSocketRoute

from bingo.messaging.router import MessageRouter
from bingo.server.settings import BingoServerSettings, StorageBackend
from bingo.server.websocket import websocket_endpoint
from bingo.session.manager import SessionManager
from shared.dal import InMemoryBingoRepository
from shared.db import Database, SqlAlchemyBingoRepository, SqliteBingoRepository
from shared.logging import setup_logging

logger = structlog.get_logger()

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from starlette.requests import Request
    from starlette.websockets import WebSocket

    from shared.dal import BingoRepository


def _app_version() -> str:
    try:
        return version("bingo-server")
    except PackageNotFoundError:
        return "dev"


APP_VERSION = _app_version()


async def health(_request: Request) -> JSONResponse:
    return JSONResponse({"status": "ok", "version": APP_VERSION})


async def status(request: Request) -> JSONResponse:
    session_manager: SessionManager = request.app.state.session_manager
    return JSONResponse(
        {
            "status": "ok",
            "version": APP_VERSION,
            "rooms": session_manager.room_count,
            "sessions": session_manager.session_count,
            "connections": session_manager.connection_count,
            "pendingDeletions": len(session_manager.rooms_pending_deletion),
        },
    )


async def list_rooms(request: Request) -> JSONResponse:
    session_manager: SessionManager = request.app.state.session_manager
    return JSONResponse(
        {
            "rooms": [
                {
                    "name": room.name,
                    "memberCount": room.member_count,
                    "drawnNumbers": list(room.drawn_numbers),
                    "hasStarted": room.has_started,
                    "pendingDeletion": room.pending_deletion,
                }
                for room in session_manager.list_rooms()
            ],
        },
    )


def build_repository(settings: BingoServerSettings) -> BingoRepository:
    """Open the configured storage backend. Raises if it cannot be initialized."""
    if settings.storage_backend is StorageBackend.MEMORY:
        return InMemoryBingoRepository()
    if settings.storage_backend is StorageBackend.SQL:
        return SqlAlchemyBingoRepository.from_url(settings.database_url)
    db = Database(settings.database_path)
    db.connect()
    return SqliteBingoRepository(db)


def create_app(
    settings: BingoServerSettings | None = None,
    session_manager: SessionManager | None = None,
    message_router: MessageRouter | None = None,
) -> Starlette:
    if settings is None:  # pragma: no cover
        settings = BingoServerSettings()

    if session_manager is None:
        session_manager = SessionManager(
            admin_secret=settings.admin_secret,
            repository=build_repository(settings),
            room_grace_seconds=settings.room_grace_seconds,
            lock_started_rooms=settings.lock_started_rooms,
            reconcile_interval_seconds=settings.reconcile_interval_seconds,
        )

    if message_router is None:
        message_router = MessageRouter(session_manager)

    async def ws_endpoint(websocket: WebSocket) -> None:
        await websocket_endpoint(websocket, message_router)

    routes = [
        Route("/health", health, methods=["GET"]),
        Route("/status", status, methods=["GET"]),
        Route("/rooms", list_rooms, methods=["GET"]),
        WebSocketRoute("/ws", ws_endpoint),
    ]

    @contextlib.asynccontextmanager
    async def lifespan(_app: Starlette) -> AsyncIterator[None]:
        await session_manager.start()
        logger.info("bingo server ready", storage_backend=settings.storage_backend.value)
        try:
            yield
        finally:
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
    return app


def get_app() -> Starlette:  # pragma: no cover
    """ASGI application factory for production use (e.g., uvicorn --factory)."""
    settings = BingoServerSettings()
    setup_logging(log_dir=settings.log_dir)
    return create_app(settings=settings)
