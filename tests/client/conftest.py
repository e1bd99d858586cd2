"""Fixtures for the client package: wire payloads, a fake socket and connector."""
from __future__ import annotations

import asyncio
import json
import uuid
from datetime import datetime, timedelta, timezone
from typing import Any, Callable

import pytest

from tenant_messaging.client.config import ClientSettings
from tenant_messaging.client.models import ChatMessage
from tests.conftest import LANDLORD_ID, TENANT_ID

T0 = datetime(2024, 3, 1, 9, 0, tzinfo=timezone.utc)


def wire_message(
    *,
    minute: int = 0,
    sender_id: str = LANDLORD_ID,
    recipient_id: str = TENANT_ID,
    message_id: uuid.UUID | None = None,
    with_parties: bool = False,
    read: bool = False,
    body: str = "Due Friday",
) -> dict[str, Any]:
    data: dict[str, Any] = {
        "id": str(message_id or uuid.uuid4()),
        "sender_id": sender_id,
        "recipient_id": recipient_id,
        "subject": "Rent reminder",
        "body": body,
        "read": read,
        "created_at": (T0 + timedelta(minutes=minute)).isoformat(),
    }
    if with_parties:
        data["sender"] = {"id": sender_id, "name": "Sender", "email": None, "role": None}
        data["recipient"] = {"id": recipient_id, "name": "Recipient", "email": None, "role": None}
    return data


def chat_message(**kw: Any) -> ChatMessage:
    return ChatMessage.model_validate(wire_message(**kw))


class FakeSocket:
    """Stands in for a websockets client connection."""

    def __init__(self) -> None:
        self.sent: list[dict[str, Any]] = []
        self.closed = False
        self._inbox: asyncio.Queue[str | None] = asyncio.Queue()

    async def send(self, raw: str) -> None:
        if self.closed:
            raise ConnectionResetError("socket closed")
        self.sent.append(json.loads(raw))

    def feed(self, event_type: str, data: dict[str, Any]) -> None:
        self._inbox.put_nowait(json.dumps({"type": event_type, "data": data}))

    def feed_raw(self, raw: str) -> None:
        self._inbox.put_nowait(raw)

    def drop(self) -> None:
        self.closed = True
        self._inbox.put_nowait(None)

    async def close(self) -> None:
        self.drop()

    def sent_of(self, event_type: str) -> list[dict[str, Any]]:
        return [e["data"] for e in self.sent if e["type"] == event_type]

    def __aiter__(self) -> FakeSocket:
        return self

    async def __anext__(self) -> str:
        item = await self._inbox.get()
        if item is None:
            raise StopAsyncIteration
        return item


class FakeConnector:
    """Returns queued sockets in order; raises queued errors; refuses when empty."""

    def __init__(self, *outcomes: FakeSocket | Exception) -> None:
        self._outcomes = list(outcomes)
        self.urls: list[str] = []

    async def __call__(self, url: str) -> FakeSocket:
        self.urls.append(url)
        outcome = self._outcomes.pop(0) if self._outcomes else ConnectionRefusedError("refused")
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


async def eventually(predicate: Callable[[], bool], timeout: float = 2.0) -> None:
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("condition not met in time")
        await asyncio.sleep(0.01)


@pytest.fixture
def client_settings() -> ClientSettings:
    return ClientSettings(
        WS_URL="ws://testserver/ws/messages",
        API_URL="http://testserver",
        TOKEN=None,
        RECONNECT_ATTEMPTS=3,
        RECONNECT_DELAY=0,
        RECONNECT_DELAY_MAX=0,
        ACK_TIMEOUT=0.2,
    )
