"""Persist-then-push delivery of landlord/tenant messages."""
from __future__ import annotations

import logging

from tenant_messaging.application.dto.events import RECEIVED
from tenant_messaging.application.dto.message import DeliveryResult, SendMessageDTO, message_payload
from tenant_messaging.application.exceptions import NotFoundError, PersistenceError, ValidationError
from tenant_messaging.application.ports.transport import PresenceLookup, Transport
from tenant_messaging.application.uow import UnitOfWork

logger = logging.getLogger(__name__)


class DeliveryCoordinator:
    """Writes a message to the store, then pushes it to the recipient if online.

    The store write is always awaited before the registry is consulted, so a
    pushed message is always durable and a failed write never reaches the
    recipient. A push that cannot be completed is treated as the recipient
    being offline: they catch up through the history read.
    """

    def __init__(self, registry: PresenceLookup, transport: Transport) -> None:
        self._registry = registry
        self._transport = transport

    async def send(self, dto: SendMessageDTO, uow: UnitOfWork) -> DeliveryResult:
        _validate(dto)

        try:
            recipient = await uow.users.get_by_id(dto.to_id)
            if recipient is None:
                raise NotFoundError(f"Recipient {dto.to_id} not found")
            message = await uow.messages_w.create(dto.from_id, dto.to_id, dto.subject, dto.body)
            await uow.commit()
        except PersistenceError:
            await uow.rollback()
            logger.exception("Failed to persist message %s -> %s", dto.from_id, dto.to_id)
            raise

        pushed = await self._push(message.recipient_id, message_payload(message))
        logger.info(
            "Message %s stored (%s -> %s, pushed=%s)",
            message.id, message.sender_id, message.recipient_id, pushed,
        )
        return DeliveryResult(message=message, pushed=pushed)

    async def _push(self, recipient_id: str, payload: dict) -> bool:
        connection_id = self._registry.lookup(recipient_id)
        if connection_id is None:
            return False
        try:
            return await self._transport.push(connection_id, RECEIVED, {"message": payload})
        except Exception:
            logger.debug("Push to %s failed; recipient treated as offline", recipient_id, exc_info=True)
            return False


def _validate(dto: SendMessageDTO) -> None:
    if not dto.from_id or not dto.from_id.strip():
        raise ValidationError("from_id is required")
    if not dto.to_id or not dto.to_id.strip():
        raise ValidationError("to_id is required")
    if not dto.body or not dto.body.strip():
        raise ValidationError("body must not be empty")
