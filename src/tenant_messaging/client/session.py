"""Client side of the live connection: presence, sends and pushed messages."""
from __future__ import annotations

import asyncio
import json
import logging
import uuid
from enum import StrEnum
from typing import Any, Awaitable, Callable
from urllib.parse import quote

import websockets
from pydantic import ValidationError
from websockets.exceptions import ConnectionClosed, WebSocketException

from tenant_messaging.application.dto import events
from tenant_messaging.client.acks import AckTracker
from tenant_messaging.client.config import ClientSettings
from tenant_messaging.client.exceptions import ClientError
from tenant_messaging.client.models import ChatMessage

logger = logging.getLogger(__name__)

Connector = Callable[[str], Awaitable[Any]]
MessageListener = Callable[[ChatMessage], None]
StateListener = Callable[["ConnectionState"], None]


class ConnectionState(StrEnum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    CLOSED = "closed"


class SessionBridge:
    """One live connection per user session.

    Announces the user on every successful (re)connect, since the server
    forgets presence when a connection drops. Reconnects after a drop; gives
    up after ``RECONNECT_ATTEMPTS`` consecutive failed attempts. ``close()``
    is the only way into the terminal CLOSED state.
    """

    def __init__(
        self,
        user_id: str,
        settings: ClientSettings | None = None,
        *,
        connect: Connector | None = None,
    ) -> None:
        if not user_id:
            raise ClientError("user_id is required")
        self.user_id = user_id
        self.settings = settings or ClientSettings()
        self.state = ConnectionState.DISCONNECTED
        self.connection_id: str | None = None
        self.messages: list[ChatMessage] = []
        self.acks = AckTracker(self.settings.ACK_TIMEOUT)

        self._connect = connect or websockets.connect
        self._ws: Any = None
        self._task: asyncio.Task[None] | None = None
        self._connected = asyncio.Event()
        self._message_listeners: list[MessageListener] = []
        self._state_listeners: list[StateListener] = []
        self._outgoing: set[asyncio.Task[None]] = set()

    # -- lifecycle -----------------------------------------------------------

    async def start(self) -> None:
        if self.state == ConnectionState.CLOSED:
            raise ClientError("Session bridge is closed")
        if self._task is None or self._task.done():
            self._task = asyncio.create_task(self._run(), name=f"session-bridge-{self.user_id}")

    async def close(self) -> None:
        self._set_state(ConnectionState.CLOSED)
        if self._ws is not None:
            await self._ws.close()
        if self._task is not None:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        for task in list(self._outgoing):
            task.cancel()
        self.acks.close()

    async def wait_connected(self, timeout: float | None = None) -> bool:
        try:
            await asyncio.wait_for(self._connected.wait(), timeout)
        except asyncio.TimeoutError:
            return False
        return True

    @property
    def is_connected(self) -> bool:
        return self.state == ConnectionState.CONNECTED

    # -- subscriptions -------------------------------------------------------

    def on_message(self, listener: MessageListener) -> Callable[[], None]:
        self._message_listeners.append(listener)
        return lambda: self._message_listeners.remove(listener)

    def on_state_change(self, listener: StateListener) -> Callable[[], None]:
        self._state_listeners.append(listener)
        return lambda: self._state_listeners.remove(listener)

    # -- sending -------------------------------------------------------------

    def send_message(self, from_id: str, to_id: str, subject: str, body: str) -> str:
        """Queue a send and return its correlation id without waiting for the ack.

        Follow the outcome through ``acks.status()`` or ``await acks.result()``.
        """
        client_msg_id = uuid.uuid4().hex
        self.acks.register(client_msg_id)
        if not self.is_connected or self._ws is None:
            self.acks.fail(client_msg_id, "not_connected")
            return client_msg_id

        envelope = {
            "type": events.SEND,
            "data": {
                "from_id": from_id,
                "to_id": to_id,
                "subject": subject,
                "body": body,
                "client_msg_id": client_msg_id,
            },
        }
        task = asyncio.create_task(self._send_envelope(envelope))
        self._outgoing.add(task)
        task.add_done_callback(self._outgoing.discard)
        return client_msg_id

    async def _send_envelope(self, envelope: dict[str, Any]) -> None:
        ws = self._ws
        if ws is None:
            return
        try:
            await ws.send(json.dumps(envelope))
        except (ConnectionClosed, OSError):
            # The server may or may not have it; the ack timeout decides.
            logger.warning("Connection lost while sending %s", envelope["data"].get("client_msg_id"))

    # -- connection loop -----------------------------------------------------

    def _url(self) -> str:
        url = self.settings.WS_URL
        if self.settings.TOKEN:
            sep = "&" if "?" in url else "?"
            url = f"{url}{sep}token={quote(self.settings.TOKEN)}"
        return url

    async def _run(self) -> None:
        failures = 0
        while self.state != ConnectionState.CLOSED:
            self._set_state(ConnectionState.CONNECTING)
            try:
                ws = await self._connect(self._url())
            except (OSError, asyncio.TimeoutError, WebSocketException) as exc:
                failures += 1
                if failures > self.settings.RECONNECT_ATTEMPTS:
                    logger.error("Giving up after %d failed connection attempts: %s", failures, exc)
                    self._set_state(ConnectionState.DISCONNECTED)
                    return
                logger.warning("Connection attempt %d failed: %s", failures, exc)
                self._set_state(ConnectionState.DISCONNECTED)
                await asyncio.sleep(self._backoff(failures))
                continue

            failures = 0
            await self._session(ws)
            if self.state != ConnectionState.CLOSED:
                await asyncio.sleep(self.settings.RECONNECT_DELAY)

    def _backoff(self, failures: int) -> float:
        return min(self.settings.RECONNECT_DELAY * failures, self.settings.RECONNECT_DELAY_MAX)

    async def _session(self, ws: Any) -> None:
        self._ws = ws
        try:
            await ws.send(json.dumps({"type": events.JOIN, "data": {"user_id": self.user_id}}))
            self._set_state(ConnectionState.CONNECTED)
            async for raw in ws:
                self._dispatch(raw)
        except (ConnectionClosed, OSError) as exc:
            logger.debug("Session ended: %s", exc)
        finally:
            self._ws = None
            if self.state != ConnectionState.CLOSED:
                logger.info("Socket disconnected")
                self._set_state(ConnectionState.DISCONNECTED)

    def _set_state(self, state: ConnectionState) -> None:
        if state == self.state:
            return
        self.state = state
        if state == ConnectionState.CONNECTED:
            self._connected.set()
        else:
            self._connected.clear()
        for listener in list(self._state_listeners):
            try:
                listener(state)
            except Exception:
                logger.exception("State listener failed on %s", state)

    # -- inbound -------------------------------------------------------------

    def _dispatch(self, raw: str | bytes) -> None:
        try:
            envelope = json.loads(raw)
            event_type = envelope["type"]
            data = envelope.get("data") or {}
        except (ValueError, KeyError, TypeError):
            logger.warning("Received malformed frame: %r", raw[:100])
            return

        try:
            self._handle(event_type, data)
        except (ValidationError, KeyError):
            logger.warning("Dropped invalid %s frame", event_type, exc_info=True)

    def _handle(self, event_type: str, data: dict[str, Any]) -> None:
        if event_type == events.RECEIVED:
            message = ChatMessage.model_validate(data["message"])
            self.messages.append(message)
            for listener in list(self._message_listeners):
                try:
                    listener(message)
                except Exception:
                    logger.exception("Message listener failed on %s", message.id)

        elif event_type == events.SENT:
            self.acks.confirm(data.get("client_msg_id"), ChatMessage.model_validate(data["message"]))

        elif event_type == events.SEND_ERROR:
            reason = data.get("detail") or data.get("code") or "unknown"
            logger.warning("Send %s rejected: %s", data.get("client_msg_id"), reason)
            self.acks.fail(data.get("client_msg_id"), reason)

        elif event_type == events.WELCOME:
            self.connection_id = data.get("connection_id")

        elif event_type == events.JOINED:
            logger.info("Joined as %s", data.get("user_id", self.user_id))

        elif event_type == events.ERROR:
            logger.warning("Server error: %s", data)
