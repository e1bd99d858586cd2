from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime
from uuid import UUID

from tenant_messaging.domain.entities.party import Party


@dataclass(frozen=True, slots=True)
class Message:
    """A persisted message. Only ``read`` ever changes after creation."""

    id: UUID
    sender_id: str
    recipient_id: str
    subject: str
    body: str
    read: bool
    created_at: datetime

    def involves(self, user_id: str, counterpart_id: str) -> bool:
        return {self.sender_id, self.recipient_id} == {user_id, counterpart_id}

    def marked_read(self) -> Message:
        if self.read:
            return self
        return replace(self, read=True)


@dataclass(frozen=True, slots=True)
class MessageView:
    """A message with the display attributes of both parties."""

    message: Message
    sender: Party | None = None
    recipient: Party | None = None
