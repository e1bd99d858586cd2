from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from tenant_messaging.domain.entities.message import Message, MessageView


@dataclass(frozen=True, slots=True)
class SendMessageDTO:
    from_id: str
    to_id: str
    subject: str = ""
    body: str = ""
    client_msg_id: str | None = None


@dataclass(frozen=True, slots=True)
class DeliveryResult:
    message: Message
    pushed: bool


@dataclass(frozen=True, slots=True)
class InboxDTO:
    unread_count: int
    messages: list[MessageView] = field(default_factory=list)


def message_payload(message: Message) -> dict[str, Any]:
    """JSON-ready form of a persisted message, as pushed and acknowledged."""
    return {
        "id": str(message.id),
        "sender_id": message.sender_id,
        "recipient_id": message.recipient_id,
        "subject": message.subject,
        "body": message.body,
        "read": message.read,
        "created_at": message.created_at.isoformat(),
    }
