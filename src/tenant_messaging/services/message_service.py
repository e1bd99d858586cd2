from __future__ import annotations

import uuid

from tenant_messaging.application.dto.message import InboxDTO
from tenant_messaging.application.dto.principal import Principal
from tenant_messaging.application.exceptions import ForbiddenError, NotFoundError, ValidationError
from tenant_messaging.application.pagination import decode_cursor, encode_cursor
from tenant_messaging.application.uow import UnitOfWork
from tenant_messaging.domain.entities.message import Message, MessageView


async def list_history(
    principal: Principal,
    counterpart_id: str,
    cursor: str | None,
    limit: int,
    uow: UnitOfWork,
) -> tuple[list[MessageView], str | None]:
    """One page of the conversation between the principal and a counterpart.

    Returns the page (oldest first) and the cursor for the next page, or
    ``None`` when this page is the last one.
    """
    if not counterpart_id:
        raise ValidationError("contactId is required")
    after = decode_cursor(cursor) if cursor else None

    items = await uow.messages.list_conversation(
        principal.user_id, counterpart_id, after=after, limit=limit + 1,
    )

    next_cursor = None
    if len(items) > limit:
        items = items[:limit]
        last = items[-1].message
        next_cursor = encode_cursor(last.created_at, last.id)
    return items, next_cursor


async def inbox(principal: Principal, limit: int, uow: UnitOfWork) -> InboxDTO:
    messages = await uow.messages.list_inbox(principal.user_id, limit=limit)
    unread = await uow.messages.count_unread(principal.user_id)
    return InboxDTO(unread_count=unread, messages=messages)


async def mark_read(
    principal: Principal,
    message_id: uuid.UUID,
    uow: UnitOfWork,
) -> Message:
    message = await uow.messages.get_by_id(message_id)
    if message is None:
        raise NotFoundError("Message not found")
    if message.recipient_id != principal.user_id:
        raise ForbiddenError("Only the recipient can mark a message as read")
    if message.read:
        return message

    updated = await uow.messages_w.mark_read(message_id)
    await uow.commit()
    return updated or message.marked_read()
