from __future__ import annotations

from typing import Any, Protocol


class PresenceLookup(Protocol):
    def lookup(self, user_id: str) -> str | None: ...


class Transport(Protocol):
    async def push(self, connection_id: str, event_type: str, data: dict[str, Any]) -> bool:
        """Deliver an event to one live connection. False if it is gone."""
        ...
