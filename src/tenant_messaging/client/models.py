from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict


class PartyInfo(BaseModel):
    id: str
    name: str | None = None
    email: str | None = None
    role: str | None = None
    display_name: str | None = None

    model_config = ConfigDict(frozen=True)


class ChatMessage(BaseModel):
    """A persisted message as seen by a client, from history or a live push."""

    id: UUID
    sender_id: str
    recipient_id: str
    subject: str = ""
    body: str
    read: bool = False
    created_at: datetime
    sender: PartyInfo | None = None
    recipient: PartyInfo | None = None

    model_config = ConfigDict(frozen=True)

    @property
    def sort_key(self) -> tuple[datetime, UUID]:
        return self.created_at, self.id

    def involves(self, user_id: str, counterpart_id: str) -> bool:
        return {self.sender_id, self.recipient_id} == {user_id, counterpart_id}


class HistoryPage(BaseModel):
    messages: list[ChatMessage]
    next_cursor: str | None = None
