from __future__ import annotations

import logging

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from tenant_messaging.infrastructure.db.session import engine

logger = logging.getLogger(__name__)
router = APIRouter(tags=["health"])


@router.get("/healthz")
async def healthz(request: Request) -> dict[str, str | int]:
    """Liveness plus the number of users with a registered live connection."""
    return {"status": "ok", "connected_users": len(request.app.state.manager.registry)}


@router.get("/readyz")
async def readyz() -> JSONResponse:
    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
    except (SQLAlchemyError, OSError) as exc:
        logger.warning("Readiness check failed: %s", exc)
        return JSONResponse(
            status_code=503,
            content={"status": "unavailable", "checks": {"message_store": str(exc)}},
        )
    return JSONResponse(content={"status": "ready", "checks": {"message_store": "ok"}})
