from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Query

from tenant_messaging.api.deps import CoordinatorDep, CurrentPrincipal, UoWDep
from tenant_messaging.api.v1.schemas.message import (
    HistoryResponse,
    InboxResponse,
    MessageResponse,
    SendMessageRequest,
)
from tenant_messaging.application.dto.message import SendMessageDTO
from tenant_messaging.config import settings
from tenant_messaging.services import message_service

router = APIRouter(prefix="/api/v1/messages", tags=["messages"])


@router.get("", response_model=HistoryResponse)
async def list_history(
    principal: CurrentPrincipal,
    uow: UoWDep,
    contact_id: str = Query(..., alias="contactId", min_length=1),
    cursor: str | None = Query(None),
    limit: int = Query(settings.HISTORY_PAGE_SIZE, ge=1, le=settings.HISTORY_MAX_PAGE_SIZE),
) -> HistoryResponse:
    items, next_cursor = await message_service.list_history(
        principal, contact_id, cursor, limit, uow,
    )
    return HistoryResponse(
        messages=[MessageResponse.from_view(v) for v in items],
        next_cursor=next_cursor,
    )


@router.post("", response_model=MessageResponse, status_code=201)
async def send_message(
    body: SendMessageRequest,
    principal: CurrentPrincipal,
    uow: UoWDep,
    coordinator: CoordinatorDep,
) -> MessageResponse:
    result = await coordinator.send(
        SendMessageDTO(
            from_id=principal.user_id,
            to_id=body.to_id,
            subject=body.subject,
            body=body.body,
        ),
        uow,
    )
    return MessageResponse.from_message(result.message)


@router.get("/inbox", response_model=InboxResponse)
async def inbox(
    principal: CurrentPrincipal,
    uow: UoWDep,
    limit: int = Query(settings.INBOX_SIZE, ge=1, le=100),
) -> InboxResponse:
    result = await message_service.inbox(principal, limit, uow)
    return InboxResponse(
        unread_count=result.unread_count,
        messages=[MessageResponse.from_view(v) for v in result.messages],
    )


@router.post("/{message_id}/read", response_model=MessageResponse)
async def mark_read(
    message_id: UUID,
    principal: CurrentPrincipal,
    uow: UoWDep,
) -> MessageResponse:
    message = await message_service.mark_read(principal, message_id, uow)
    return MessageResponse.from_message(message)
