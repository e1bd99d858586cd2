from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from tenant_messaging.api.middleware.correlation_id import CorrelationIdMiddleware
from tenant_messaging.api.v1.routers import health, messages, presence, ws
from tenant_messaging.application.exceptions import (
    ForbiddenError,
    NotFoundError,
    PersistenceError,
    ValidationError,
)
from tenant_messaging.config import settings
from tenant_messaging.infrastructure.db.session import engine
from tenant_messaging.infrastructure.ws.manager import ConnectionManager
from tenant_messaging.infrastructure.ws.registry import ConnectionRegistry
from tenant_messaging.services.delivery_service import DeliveryCoordinator

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Startup / shutdown lifecycle."""
    logger.info("Messaging gateway listening on %s", settings.WS_PATH)
    yield
    logger.info("Shutting down with %d connected users", len(app.state.manager.registry))
    await engine.dispose()


def create_app() -> FastAPI:
    app = FastAPI(
        title="Tenant Messaging Service",
        version="0.1.0",
        lifespan=lifespan,
    )

    # Presence lives for the lifetime of this process only.
    registry = ConnectionRegistry()
    manager = ConnectionManager(registry)
    app.state.manager = manager
    app.state.coordinator = DeliveryCoordinator(registry, manager)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(CorrelationIdMiddleware)

    _register_exception_handlers(app)

    app.include_router(health.router)
    app.include_router(messages.router)
    app.include_router(presence.router)
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

    @app.exception_handler(PersistenceError)
    async def _persistence(_req: Request, exc: PersistenceError) -> JSONResponse:
        logger.error("Persistence failure: %s", exc.detail)
        return JSONResponse(status_code=503, content={"detail": "Message store unavailable"})
