"""JSON envelopes exchanged on the live connection: ``{"type": ..., "data": {...}}``."""
from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field


class WsInbound(BaseModel):
    """Client → Server: join | message.send | mark_read | ping."""

    type: str = Field(min_length=1)
    data: dict[str, Any] = Field(default_factory=dict)


class WsOutbound(BaseModel):
    """Server → Client: welcome | joined | message.sent | message.error |
    message.received | message.read | error | pong."""

    type: str
    data: dict[str, Any] = Field(default_factory=dict)


def encode(event_type: str, data: dict[str, Any]) -> str:
    return WsOutbound(type=event_type, data=data).model_dump_json()
