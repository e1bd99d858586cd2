"""Shared test fixtures."""
from __future__ import annotations

import uuid
from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta, timezone
from typing import Any
from uuid import UUID

import pytest

from tenant_messaging.application.dto.principal import Principal
from tenant_messaging.application.exceptions import PersistenceError
from tenant_messaging.domain.entities.message import Message, MessageView
from tenant_messaging.domain.entities.party import Party
from tenant_messaging.domain.value_objects.enums import UserRole

LANDLORD_ID = "landlord-1"
TENANT_ID = "tenant-1"
OTHER_TENANT_ID = "tenant-2"

_EPOCH = datetime(2024, 1, 1, tzinfo=timezone.utc)


@pytest.fixture
def landlord() -> Principal:
    return Principal(user_id=LANDLORD_ID, role=UserRole.LANDLORD)


@pytest.fixture
def tenant() -> Principal:
    return Principal(user_id=TENANT_ID, role=UserRole.TENANT)


def default_parties() -> dict[str, Party]:
    return {
        LANDLORD_ID: Party(id=LANDLORD_ID, name="Sarah Johnson", email="landlord@example.com", role=UserRole.LANDLORD),
        TENANT_ID: Party(id=TENANT_ID, name="John Smith", email="tenant@example.com", role=UserRole.TENANT),
        OTHER_TENANT_ID: Party(id=OTHER_TENANT_ID, name="Emma Wilson", email="emma@example.com", role=UserRole.TENANT),
    }


def make_message(
    *,
    sender_id: str = LANDLORD_ID,
    recipient_id: str = TENANT_ID,
    subject: str = "Rent reminder",
    body: str = "Due Friday",
    read: bool = False,
    created_at: datetime | None = None,
) -> Message:
    return Message(
        id=uuid.uuid4(),
        sender_id=sender_id,
        recipient_id=recipient_id,
        subject=subject,
        body=body,
        read=read,
        created_at=created_at or datetime.now(timezone.utc),
    )


@dataclass
class FakeUserReader:
    _users: dict[str, Party] = field(default_factory=default_parties)
    fail_with: Exception | None = None

    async def get_by_id(self, user_id: str) -> Party | None:
        if self.fail_with is not None:
            raise self.fail_with
        return self._users.get(user_id)


@dataclass
class FakeMessageReader:
    """In-memory message store; rows become visible only on commit."""

    _users: FakeUserReader
    _messages: list[Message] = field(default_factory=list)

    def _view(self, m: Message) -> MessageView:
        return MessageView(
            message=m,
            sender=self._users._users.get(m.sender_id),
            recipient=self._users._users.get(m.recipient_id),
        )

    async def get_by_id(self, message_id: UUID) -> Message | None:
        return next((m for m in self._messages if m.id == message_id), None)

    async def list_conversation(
        self,
        user_id: str,
        counterpart_id: str,
        *,
        after: tuple[datetime, UUID] | None = None,
        limit: int = 50,
    ) -> list[MessageView]:
        rows = sorted(
            (m for m in self._messages if m.involves(user_id, counterpart_id)),
            key=lambda m: (m.created_at, m.id),
        )
        if after is not None:
            rows = [m for m in rows if (m.created_at, m.id) > after]
        return [self._view(m) for m in rows[:limit]]

    async def list_inbox(self, recipient_id: str, *, limit: int = 20) -> list[MessageView]:
        rows = sorted(
            (m for m in self._messages if m.recipient_id == recipient_id),
            key=lambda m: (m.created_at, m.id),
            reverse=True,
        )
        return [self._view(m) for m in rows[:limit]]

    async def count_unread(self, recipient_id: str) -> int:
        return sum(1 for m in self._messages if m.recipient_id == recipient_id and not m.read)


@dataclass
class FakeMessageWriter:
    _reader: FakeMessageReader
    fail_with: Exception | None = None
    _pending: list[Message] = field(default_factory=list)
    _tick: int = 0

    def _now(self) -> datetime:
        # Strictly increasing, like a store-assigned clock.
        self._tick += 1
        return _EPOCH + timedelta(milliseconds=self._tick)

    async def create(self, sender_id: str, recipient_id: str, subject: str, body: str) -> Message:
        if self.fail_with is not None:
            raise self.fail_with
        message = Message(
            id=uuid.uuid4(),
            sender_id=sender_id,
            recipient_id=recipient_id,
            subject=subject,
            body=body,
            read=False,
            created_at=self._now(),
        )
        self._pending.append(message)
        return message

    async def mark_read(self, message_id: UUID) -> Message | None:
        for i, m in enumerate(self._reader._messages):
            if m.id == message_id:
                if not m.read:
                    self._reader._messages[i] = replace(m, read=True)
                return self._reader._messages[i]
        return None


@dataclass
class FakeUoW:
    """In-memory UoW for unit tests."""

    users: FakeUserReader = field(default_factory=FakeUserReader)
    messages: FakeMessageReader | None = None
    messages_w: FakeMessageWriter | None = None
    commit_error: Exception | None = None
    commits: int = 0
    rollbacks: int = 0

    def __post_init__(self) -> None:
        if self.messages is None:
            self.messages = FakeMessageReader(self.users)
        if self.messages_w is None:
            self.messages_w = FakeMessageWriter(self.messages)

    @property
    def stored(self) -> list[Message]:
        return self.messages._messages

    async def commit(self) -> None:
        if self.commit_error is not None:
            raise self.commit_error
        self.messages._messages.extend(self.messages_w._pending)
        self.messages_w._pending.clear()
        self.commits += 1

    async def rollback(self) -> None:
        self.messages_w._pending.clear()
        self.rollbacks += 1


def failing_store() -> FakeUoW:
    uow = FakeUoW()
    uow.messages_w.fail_with = PersistenceError("database unavailable")
    return uow


@dataclass
class FakeTransport:
    """Records pushes; connections listed in ``dead`` behave as closed."""

    pushes: list[tuple[str, str, dict[str, Any]]] = field(default_factory=list)
    dead: set[str] = field(default_factory=set)

    async def push(self, connection_id: str, event_type: str, data: dict[str, Any]) -> bool:
        if connection_id in self.dead:
            return False
        self.pushes.append((connection_id, event_type, data))
        return True

    def pushed_to(self, connection_id: str) -> list[dict[str, Any]]:
        return [data for cid, _, data in self.pushes if cid == connection_id]
