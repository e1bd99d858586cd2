from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import Boolean, ForeignKey, Index, String, Text, text
from sqlalchemy.dialects.postgresql import TIMESTAMP, UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from tenant_messaging.infrastructure.db.base import Base
from tenant_messaging.infrastructure.db.models.user import UserModel


class MessageModel(Base):
    __tablename__ = "messages"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
        server_default=text("gen_random_uuid()"),
    )
    from_id: Mapped[str] = mapped_column(
        String(64),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )
    to_id: Mapped[str] = mapped_column(
        String(64),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )
    subject: Mapped[str] = mapped_column(Text, nullable=False, default="", server_default="")
    body: Mapped[str] = mapped_column(Text, nullable=False)
    read: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default=text("false"))
    # clock_timestamp() rather than now(): distinct per statement, not per transaction
    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True),
        nullable=False,
        server_default=text("clock_timestamp()"),
    )

    sender: Mapped[UserModel] = relationship(UserModel, foreign_keys=[from_id], lazy="raise")
    recipient: Mapped[UserModel] = relationship(UserModel, foreign_keys=[to_id], lazy="raise")

    __table_args__ = (
        Index("ix_messages_pair_timeline", "from_id", "to_id", "created_at", "id"),
        Index("ix_messages_inbox", "to_id", "read", "created_at"),
    )
