"""Seed development data: a landlord, two tenants and a short conversation."""
from __future__ import annotations

import asyncio
import logging

from sqlalchemy.dialects.postgresql import insert as pg_insert

from tenant_messaging.domain.value_objects.enums import UserRole
from tenant_messaging.infrastructure.db.models.user import UserModel
from tenant_messaging.infrastructure.db.session import AsyncSessionLocal
from tenant_messaging.infrastructure.db.uow import SqlAlchemyUoW

logger = logging.getLogger(__name__)

USERS = [
    ("landlord-1", "Sarah Johnson", "landlord@example.com", UserRole.LANDLORD),
    ("tenant-1", "John Smith", "tenant@example.com", UserRole.TENANT),
    ("tenant-2", "Emma Wilson", "emma.wilson@example.com", UserRole.TENANT),
]

MESSAGES = [
    ("landlord-1", "tenant-1", "Rent reminder", "Due Friday"),
    ("tenant-1", "landlord-1", "Re: Rent reminder", "Thanks, paid this morning."),
    ("landlord-1", "tenant-2", "Boiler service", "The engineer is booked for Tuesday at 10am."),
]


async def seed() -> None:
    async with AsyncSessionLocal() as session:
        for user_id, name, email, role in USERS:
            await session.execute(
                pg_insert(UserModel)
                .values(id=user_id, name=name, email=email, role=role.value)
                .on_conflict_do_nothing(index_elements=["id"])
            )

        uow = SqlAlchemyUoW(session)
        for from_id, to_id, subject, body in MESSAGES:
            await uow.messages_w.create(from_id, to_id, subject, body)

        await uow.commit()
        logger.info("Seeded %d users and %d messages", len(USERS), len(MESSAGES))


def main() -> None:
    logging.basicConfig(level=logging.INFO)
    asyncio.run(seed())


if __name__ == "__main__":
    main()
