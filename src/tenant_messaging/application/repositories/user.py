from __future__ import annotations

from typing import Protocol

from tenant_messaging.domain.entities.party import Party


class UserReader(Protocol):
    async def get_by_id(self, user_id: str) -> Party | None: ...
