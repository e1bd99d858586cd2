from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any

from fastapi import APIRouter, Depends, Query, WebSocket, WebSocketDisconnect
from pydantic import ValidationError as PayloadError

from tenant_messaging.api.deps import UoWFactory, get_uow_factory, get_verifier
from tenant_messaging.api.v1.schemas.message import WsMarkReadData, WsSendData
from tenant_messaging.application.dto import events
from tenant_messaging.application.dto.message import SendMessageDTO, message_payload
from tenant_messaging.application.dto.principal import Principal
from tenant_messaging.application.exceptions import (
    AppError,
    AuthenticationError,
    ForbiddenError,
    NotFoundError,
    PersistenceError,
    ValidationError,
)
from tenant_messaging.config import settings
from tenant_messaging.infrastructure.ws.manager import ConnectionManager
from tenant_messaging.infrastructure.ws.protocol import WsInbound
from tenant_messaging.services import message_service
from tenant_messaging.services.delivery_service import DeliveryCoordinator

logger = logging.getLogger(__name__)
router = APIRouter(tags=["websocket"])


@dataclass
class _Connection:
    ws: WebSocket
    connection_id: str
    principal: Principal | None
    manager: ConnectionManager
    coordinator: DeliveryCoordinator
    uow_factory: UoWFactory
    joined_as: str | None = None

    @property
    def identity(self) -> str | None:
        # Fixed at join, so a newer connection for the same user cannot unlock it.
        if self.principal is not None:
            return self.principal.user_id
        return self.joined_as

    async def reply(self, event_type: str, data: dict[str, Any]) -> None:
        await self.manager.send(self.ws, event_type, data)


async def _authenticate(token: str) -> Principal | None:
    try:
        return await get_verifier().verify(token)
    except AuthenticationError as exc:
        logger.info("WS token rejected: %s", exc.detail)
        return None


@router.websocket(settings.WS_PATH)
async def ws_messages(
    websocket: WebSocket,
    token: str | None = Query(None),
    uow_factory: UoWFactory = Depends(get_uow_factory),
) -> None:
    principal = await _authenticate(token) if token else None
    if principal is None and (token or settings.WS_AUTH_REQUIRED):
        await websocket.close(code=4001, reason="Authentication failed")
        return

    manager: ConnectionManager = websocket.app.state.manager
    connection_id = await manager.connect(websocket)
    conn = _Connection(
        ws=websocket,
        connection_id=connection_id,
        principal=principal,
        manager=manager,
        coordinator=websocket.app.state.coordinator,
        uow_factory=uow_factory,
    )

    heartbeat_task = asyncio.create_task(
        _heartbeat(conn), name=f"ws-heartbeat-{connection_id}",
    )
    try:
        await conn.reply(events.WELCOME, {
            "message": "Successfully connected to the messaging server.",
            "connection_id": connection_id,
        })
        await _read_loop(conn)
    except WebSocketDisconnect:
        pass
    except Exception:
        logger.exception("WS error on connection %s", connection_id)
        await _close_on_error(websocket)
    finally:
        heartbeat_task.cancel()
        manager.disconnect(connection_id)


async def _close_on_error(websocket: WebSocket) -> None:
    try:
        await websocket.close(code=1011, reason="Internal error")
    except RuntimeError:
        # Already closed by the peer.
        pass


async def _heartbeat(conn: _Connection) -> None:
    interval = settings.WS_HEARTBEAT_SECONDS
    try:
        while True:
            await asyncio.sleep(interval)
            await conn.reply(events.PONG, {})
    except asyncio.CancelledError:
        pass
    except Exception:
        # Socket already gone; the read loop will see the disconnect.
        logger.debug("Heartbeat stopped for %s", conn.connection_id, exc_info=True)


async def _read_loop(conn: _Connection) -> None:
    # One frame is handled to completion before the next is read, so sends
    # from a single connection are stored in the order they were issued.
    while True:
        raw = await conn.ws.receive_text()
        try:
            msg = WsInbound.model_validate_json(raw)
        except PayloadError:
            await conn.reply(events.ERROR, {"code": "invalid_payload"})
            continue

        if msg.type == events.PING:
            await conn.reply(events.PONG, {})

        elif msg.type == events.JOIN:
            await _handle_join(conn, msg.data)

        elif msg.type == events.SEND:
            await _handle_send(conn, msg.data)

        elif msg.type == events.MARK_READ:
            await _handle_mark_read(conn, msg.data)

        else:
            await conn.reply(events.ERROR, {"code": "unknown_type", "type": msg.type})


async def _handle_join(conn: _Connection, data: dict[str, Any]) -> None:
    user_id = data.get("user_id")
    if not isinstance(user_id, str):
        await conn.reply(events.ERROR, {"code": "invalid_identity", "detail": "user_id must be a string"})
        return
    if conn.principal is not None and user_id != conn.principal.user_id:
        await conn.reply(events.ERROR, {"code": "identity_mismatch"})
        return

    try:
        conn.manager.registry.announce(user_id, conn.connection_id)
    except ValidationError as exc:
        await conn.reply(events.ERROR, {"code": "invalid_identity", "detail": exc.detail})
        return
    conn.joined_as = user_id
    await conn.reply(events.JOINED, {"success": True, "user_id": user_id})


async def _handle_send(conn: _Connection, data: dict[str, Any]) -> None:
    client_msg_id = data.get("client_msg_id")
    try:
        payload = WsSendData.model_validate(data)
    except PayloadError as exc:
        await conn.reply(events.SEND_ERROR, {
            "client_msg_id": client_msg_id,
            "code": "invalid_data",
            "detail": str(exc),
        })
        return

    identity = conn.identity
    if identity is not None and payload.from_id != identity:
        await conn.reply(events.SEND_ERROR, {
            "client_msg_id": client_msg_id,
            "code": "sender_mismatch",
            "detail": "from_id does not match the connected user",
        })
        return

    dto = SendMessageDTO(
        from_id=payload.from_id,
        to_id=payload.to_id,
        subject=payload.subject,
        body=payload.body,
        client_msg_id=payload.client_msg_id,
    )
    try:
        async with conn.uow_factory() as uow:
            result = await conn.coordinator.send(dto, uow)
    except AppError as exc:
        await conn.reply(events.SEND_ERROR, {
            "client_msg_id": client_msg_id,
            "code": _send_error_code(exc),
            "detail": exc.detail or "Failed to send message.",
        })
        return
    except Exception:
        logger.exception("Send %s from %s failed", client_msg_id, payload.from_id)
        await conn.reply(events.SEND_ERROR, {
            "client_msg_id": client_msg_id,
            "code": "send_failed",
            "detail": "Failed to send message.",
        })
        return

    await conn.reply(events.SENT, {
        "success": True,
        "client_msg_id": client_msg_id,
        "message": message_payload(result.message),
    })


def _send_error_code(exc: AppError) -> str:
    if isinstance(exc, ValidationError):
        return "invalid_data"
    if isinstance(exc, NotFoundError):
        return "recipient_not_found"
    if isinstance(exc, PersistenceError):
        return "send_failed"
    return "error"


async def _handle_mark_read(conn: _Connection, data: dict[str, Any]) -> None:
    identity = conn.identity
    if identity is None:
        await conn.reply(events.ERROR, {"code": "not_joined"})
        return
    try:
        payload = WsMarkReadData.model_validate(data)
    except PayloadError:
        await conn.reply(events.ERROR, {"code": "invalid_data"})
        return

    principal = conn.principal or Principal(user_id=identity)
    try:
        async with conn.uow_factory() as uow:
            message = await message_service.mark_read(principal, payload.message_id, uow)
    except (NotFoundError, ForbiddenError) as exc:
        await conn.reply(events.ERROR, {"code": "mark_read_rejected", "detail": exc.detail})
        return
    except Exception:
        logger.exception("mark_read failed for %s", payload.message_id)
        await conn.reply(events.ERROR, {"code": "mark_read_failed"})
        return

    await conn.reply(events.READ, {"message": message_payload(message)})
