from __future__ import annotations

from contextlib import asynccontextmanager

import jwt
import pytest
from fastapi.testclient import TestClient

from tenant_messaging.api.deps import get_uow, get_uow_factory
from tenant_messaging.app import create_app
from tenant_messaging.config import settings
from tests.conftest import FakeUoW


def make_token(sub: str, role: str | None = None) -> str:
    claims = {"sub": sub}
    if role:
        claims["role"] = role
    return jwt.encode(claims, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


def auth(sub: str, role: str | None = None) -> dict[str, str]:
    return {"Authorization": f"Bearer {make_token(sub, role)}"}


@pytest.fixture
def uow() -> FakeUoW:
    return FakeUoW()


@pytest.fixture
def app(uow):
    app = create_app()

    async def _override():
        yield uow

    @asynccontextmanager
    async def _open():
        yield uow

    app.dependency_overrides[get_uow] = _override
    app.dependency_overrides[get_uow_factory] = lambda: _open
    return app


@pytest.fixture
def client(app):
    with TestClient(app, raise_server_exceptions=False) as c:
        yield c
