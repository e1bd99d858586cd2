"""FastAPI dependency injection helpers."""
from __future__ import annotations

from contextlib import AbstractAsyncContextManager
from typing import Annotated, AsyncIterator, Callable

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from tenant_messaging.application.dto.principal import Principal
from tenant_messaging.application.exceptions import AuthenticationError
from tenant_messaging.application.ports.auth import TokenVerifier
from tenant_messaging.application.uow import UnitOfWork
from tenant_messaging.config import settings
from tenant_messaging.infrastructure.auth.hs256_verifier import HS256Verifier
from tenant_messaging.infrastructure.auth.jwks_verifier import JWKSVerifier
from tenant_messaging.infrastructure.db.session import open_uow
from tenant_messaging.infrastructure.ws.manager import ConnectionManager
from tenant_messaging.services.delivery_service import DeliveryCoordinator

_bearer_scheme = HTTPBearer()

UoWFactory = Callable[[], AbstractAsyncContextManager[UnitOfWork]]


async def get_uow() -> AsyncIterator[UnitOfWork]:
    async with open_uow() as uow:
        yield uow


def get_uow_factory() -> UoWFactory:
    """Per-operation units of work for long-lived WebSocket handlers."""
    return open_uow


UoWDep = Annotated[UnitOfWork, Depends(get_uow)]


def _build_verifier() -> TokenVerifier:
    if settings.JWT_VERIFY_MODE == "jwks":
        if not settings.JWKS_URL:
            raise RuntimeError("JWKS_URL must be set when JWT_VERIFY_MODE=jwks")
        return JWKSVerifier(settings.JWKS_URL)
    return HS256Verifier(settings.JWT_SECRET, settings.JWT_ALGORITHM)


_verifier: TokenVerifier | None = None


def get_verifier() -> TokenVerifier:
    global _verifier  # noqa: PLW0603
    if _verifier is None:
        _verifier = _build_verifier()
    return _verifier


async def get_current_principal(
    credentials: Annotated[HTTPAuthorizationCredentials, Depends(_bearer_scheme)],
) -> Principal:
    try:
        return await get_verifier().verify(credentials.credentials)
    except AuthenticationError as exc:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=exc.detail,
            headers={"WWW-Authenticate": "Bearer"},
        ) from exc


CurrentPrincipal = Annotated[Principal, Depends(get_current_principal)]


def get_manager(request: Request) -> ConnectionManager:
    return request.app.state.manager


def get_coordinator(request: Request) -> DeliveryCoordinator:
    return request.app.state.coordinator


ManagerDep = Annotated[ConnectionManager, Depends(get_manager)]
CoordinatorDep = Annotated[DeliveryCoordinator, Depends(get_coordinator)]
