from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from market_chat.api.middleware.correlation_id import CorrelationIdMiddleware
from market_chat.api.middleware.timing import RequestTimingMiddleware
from market_chat.api.v1.routers import conversations, health, messages, ws
from market_chat.application.exceptions import (
    AuthenticationError,
    ForbiddenError,
    NotFoundError,
    TransientStoreError,
    ValidationError,
)
from market_chat.config import settings
from market_chat.infrastructure.db.session import engine
from market_chat.infrastructure.ws.gateway import RealtimeGateway
from market_chat.infrastructure.ws.manager import ConnectionManager

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Startup / shutdown lifecycle."""
    logger.info("Chat service starting")

    yield

    manager: ConnectionManager = app.state.manager
    logger.info("Closing %d WebSocket connections", manager.connection_count)
    await manager.close_all()

    await engine.dispose()
    logger.info("Database engine disposed")


def create_app() -> FastAPI:
    app = FastAPI(
        title="Marketplace Chat Service",
        version="0.1.0",
        lifespan=lifespan,
    )

    manager = ConnectionManager()
    app.state.manager = manager
    app.state.gateway = RealtimeGateway(
        manager,
        heartbeat_seconds=settings.WS_HEARTBEAT_SECONDS,
        heartbeat_timeout_seconds=settings.WS_HEARTBEAT_TIMEOUT_SECONDS,
        queue_size=settings.WS_OUTBOUND_QUEUE_SIZE,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(RequestTimingMiddleware)
    app.add_middleware(CorrelationIdMiddleware)

    _register_exception_handlers(app)

    app.include_router(health.router)
    app.include_router(conversations.router)
    app.include_router(messages.router)
    app.include_router(ws.router)

    return app


def _register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(NotFoundError)
    async def _not_found(_req: Request, exc: NotFoundError) -> JSONResponse:
        return JSONResponse(status_code=404, content={"detail": exc.detail})

    @app.exception_handler(ForbiddenError)
    async def _forbidden(_req: Request, exc: ForbiddenError) -> JSONResponse:
        return JSONResponse(status_code=403, content={"detail": exc.detail})

    @app.exception_handler(ValidationError)
    async def _validation(_req: Request, exc: ValidationError) -> JSONResponse:
        return JSONResponse(status_code=422, content={"detail": exc.detail})

    @app.exception_handler(AuthenticationError)
    async def _unauthorized(_req: Request, exc: AuthenticationError) -> JSONResponse:
        return JSONResponse(
            status_code=401,
            content={"detail": exc.detail, "code": exc.code},
            headers={"WWW-Authenticate": "Bearer"},
        )

    @app.exception_handler(TransientStoreError)
    async def _unavailable(_req: Request, exc: TransientStoreError) -> JSONResponse:
        return JSONResponse(status_code=503, content={"detail": exc.detail})
