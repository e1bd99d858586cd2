from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field

from tenant_messaging.domain.entities.message import Message, MessageView
from tenant_messaging.domain.entities.party import Party


class SendMessageRequest(BaseModel):
    to_id: str = Field(min_length=1)
    subject: str = ""
    body: str = Field(min_length=1)


class WsSendData(BaseModel):
    """``data`` of a ``message.send`` envelope."""

    from_id: str = Field(min_length=1)
    to_id: str = Field(min_length=1)
    subject: str = ""
    body: str = Field(min_length=1)
    client_msg_id: str | None = None


class WsMarkReadData(BaseModel):
    message_id: UUID


class PartyResponse(BaseModel):
    id: str
    name: str | None
    email: str | None
    role: str | None = None
    display_name: str

    @classmethod
    def from_party(cls, party: Party | None) -> PartyResponse | None:
        if party is None:
            return None
        return cls(
            id=party.id,
            name=party.name,
            email=party.email,
            role=party.role.value if party.role else None,
            display_name=party.display_name,
        )


class MessageResponse(BaseModel):
    id: UUID
    sender_id: str
    recipient_id: str
    subject: str
    body: str
    read: bool
    created_at: datetime
    sender: PartyResponse | None = None
    recipient: PartyResponse | None = None

    model_config = {"from_attributes": True}

    @classmethod
    def from_view(cls, view: MessageView) -> MessageResponse:
        resp = cls.model_validate(view.message, from_attributes=True)
        resp.sender = PartyResponse.from_party(view.sender)
        resp.recipient = PartyResponse.from_party(view.recipient)
        return resp

    @classmethod
    def from_message(cls, message: Message) -> MessageResponse:
        return cls.model_validate(message, from_attributes=True)


class HistoryResponse(BaseModel):
    messages: list[MessageResponse]
    next_cursor: str | None = None


class InboxResponse(BaseModel):
    unread_count: int
    messages: list[MessageResponse]


class PresenceResponse(BaseModel):
    user_id: str
    online: bool
