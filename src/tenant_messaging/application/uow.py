from __future__ import annotations

from typing import Protocol

from tenant_messaging.application.repositories.message import MessageReader, MessageWriter
from tenant_messaging.application.repositories.user import UserReader


class UnitOfWork(Protocol):
    """One store transaction.

    Writes made through ``messages_w`` are durable only once ``commit()``
    returns; a failed commit raises ``PersistenceError``.
    """

    users: UserReader
    messages: MessageReader
    messages_w: MessageWriter

    async def commit(self) -> None: ...
    async def rollback(self) -> None: ...
