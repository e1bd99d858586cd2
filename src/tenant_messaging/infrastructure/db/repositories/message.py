from __future__ import annotations

from datetime import datetime
from uuid import UUID

from sqlalchemy import and_, func, insert, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import joinedload

from tenant_messaging.domain.entities.message import Message, MessageView
from tenant_messaging.infrastructure.db.errors import store_errors
from tenant_messaging.infrastructure.db.mappers import message as mapper
from tenant_messaging.infrastructure.db.models.message import MessageModel


class MessageReaderRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get_by_id(self, message_id: UUID) -> Message | None:
        with store_errors("Failed to load message"):
            model = await self._session.get(MessageModel, message_id)
        return mapper.model_to_entity(model) if model else None

    async def list_conversation(
        self,
        user_id: str,
        counterpart_id: str,
        *,
        after: tuple[datetime, UUID] | None = None,
        limit: int = 50,
    ) -> list[MessageView]:
        stmt = (
            select(MessageModel)
            .options(joinedload(MessageModel.sender), joinedload(MessageModel.recipient))
            .where(
                or_(
                    and_(MessageModel.from_id == user_id, MessageModel.to_id == counterpart_id),
                    and_(MessageModel.from_id == counterpart_id, MessageModel.to_id == user_id),
                )
            )
            .order_by(MessageModel.created_at.asc(), MessageModel.id.asc())
            .limit(limit)
        )
        if after:
            ts, mid = after
            stmt = stmt.where(
                (MessageModel.created_at > ts)
                | ((MessageModel.created_at == ts) & (MessageModel.id > mid))
            )
        with store_errors("Failed to read messages"):
            result = await self._session.execute(stmt)
        return [mapper.model_to_view(m) for m in result.scalars().all()]

    async def list_inbox(self, recipient_id: str, *, limit: int = 20) -> list[MessageView]:
        stmt = (
            select(MessageModel)
            .options(joinedload(MessageModel.sender), joinedload(MessageModel.recipient))
            .where(MessageModel.to_id == recipient_id)
            .order_by(MessageModel.created_at.desc(), MessageModel.id.desc())
            .limit(limit)
        )
        with store_errors("Failed to read messages"):
            result = await self._session.execute(stmt)
        return [mapper.model_to_view(m) for m in result.scalars().all()]

    async def count_unread(self, recipient_id: str) -> int:
        stmt = select(func.count()).select_from(MessageModel).where(
            MessageModel.to_id == recipient_id,
            MessageModel.read.is_(False),
        )
        with store_errors("Failed to count unread messages"):
            result = await self._session.execute(stmt)
        return int(result.scalar_one())


class MessageWriterRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def create(
        self,
        sender_id: str,
        recipient_id: str,
        subject: str,
        body: str,
    ) -> Message:
        stmt = (
            insert(MessageModel)
            .values(from_id=sender_id, to_id=recipient_id, subject=subject, body=body)
            .returning(MessageModel)
        )
        with store_errors("Failed to store message"):
            result = await self._session.execute(stmt)
            row = result.scalar_one()
        return mapper.model_to_entity(row)

    async def mark_read(self, message_id: UUID) -> Message | None:
        # Only an unread row is updated, so the flag flips at most once.
        stmt = (
            update(MessageModel)
            .where(MessageModel.id == message_id, MessageModel.read.is_(False))
            .values(read=True)
            .returning(MessageModel)
        )
        with store_errors("Failed to mark message read"):
            result = await self._session.execute(stmt)
            row = result.scalar_one_or_none()
            if row is not None:
                return mapper.model_to_entity(row)
            existing = await self._session.get(MessageModel, message_id)
        return mapper.model_to_entity(existing) if existing else None
