"""In-process WebSocket connection manager."""
from __future__ import annotations

import logging
import uuid
from typing import Any

from fastapi import WebSocket

from tenant_messaging.infrastructure.ws.protocol import encode
from tenant_messaging.infrastructure.ws.registry import ConnectionRegistry

logger = logging.getLogger(__name__)


class ConnectionManager:
    """Owns live sockets by connection id and implements the push transport."""

    def __init__(self, registry: ConnectionRegistry | None = None) -> None:
        self.registry = registry if registry is not None else ConnectionRegistry()
        self._connections: dict[str, WebSocket] = {}

    async def connect(self, ws: WebSocket) -> str:
        await ws.accept()
        connection_id = uuid.uuid4().hex
        self._connections[connection_id] = ws
        logger.debug("WS connected: %s (total=%d)", connection_id, len(self._connections))
        return connection_id

    def disconnect(self, connection_id: str) -> None:
        self._connections.pop(connection_id, None)
        self.registry.remove(connection_id)
        logger.debug("WS disconnected: %s", connection_id)

    def is_connected(self, connection_id: str) -> bool:
        return connection_id in self._connections

    async def send(self, ws: WebSocket, event_type: str, data: dict[str, Any]) -> None:
        """Reply on a socket the caller already holds."""
        await ws.send_text(encode(event_type, data))

    async def push(self, connection_id: str, event_type: str, data: dict[str, Any]) -> bool:
        """Send to a registered connection. A dead or unknown one returns False."""
        ws = self._connections.get(connection_id)
        if ws is None:
            return False
        raw = encode(event_type, data)
        try:
            await ws.send_text(raw)
        except Exception:
            logger.debug("Push to %s failed, dropping connection", connection_id, exc_info=True)
            self.disconnect(connection_id)
            return False
        return True
