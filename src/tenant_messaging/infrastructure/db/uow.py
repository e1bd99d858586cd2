from __future__ import annotations

import logging
from types import TracebackType
from typing import Self

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from tenant_messaging.infrastructure.db.errors import store_errors
from tenant_messaging.infrastructure.db.repositories.message import (
    MessageReaderRepo,
    MessageWriterRepo,
)
from tenant_messaging.infrastructure.db.repositories.user import UserReaderRepo

logger = logging.getLogger(__name__)


class SqlAlchemyUoW:
    """Message and user repositories sharing one AsyncSession."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session
        self.users = UserReaderRepo(session)
        self.messages = MessageReaderRepo(session)
        self.messages_w = MessageWriterRepo(session)

    async def commit(self) -> None:
        with store_errors("Message store rejected the commit"):
            await self._session.commit()

    async def rollback(self) -> None:
        try:
            await self._session.rollback()
        except (SQLAlchemyError, OSError):
            # The connection is already unusable; the pool discards it on close.
            logger.warning("Rollback failed", exc_info=True)

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        if exc_type is not None and self._session.in_transaction():
            await self.rollback()
