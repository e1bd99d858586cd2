from __future__ import annotations

from datetime import datetime
from typing import Protocol
from uuid import UUID

from tenant_messaging.domain.entities.message import Message, MessageView


class MessageReader(Protocol):
    async def get_by_id(self, message_id: UUID) -> Message | None: ...

    async def list_conversation(
        self,
        user_id: str,
        counterpart_id: str,
        *,
        after: tuple[datetime, UUID] | None = None,
        limit: int = 50,
    ) -> list[MessageView]:
        """Messages between the pair, ascending by (created_at, id), strictly after ``after``."""
        ...

    async def list_inbox(self, recipient_id: str, *, limit: int = 20) -> list[MessageView]: ...

    async def count_unread(self, recipient_id: str) -> int: ...


class MessageWriter(Protocol):
    async def create(
        self,
        sender_id: str,
        recipient_id: str,
        subject: str,
        body: str,
    ) -> Message:
        """Insert a message. Id and created_at are assigned by the store."""
        ...

    async def mark_read(self, message_id: UUID) -> Message | None:
        """Set the read flag if unset. Returns the stored message."""
        ...
