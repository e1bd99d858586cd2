from __future__ import annotations

from sqlalchemy.ext.asyncio import AsyncSession

from tenant_messaging.domain.entities.party import Party
from tenant_messaging.infrastructure.db.errors import store_errors
from tenant_messaging.infrastructure.db.mappers.message import user_to_party
from tenant_messaging.infrastructure.db.models.user import UserModel


class UserReaderRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get_by_id(self, user_id: str) -> Party | None:
        with store_errors("Failed to load user"):
            model = await self._session.get(UserModel, user_id)
        return user_to_party(model)
