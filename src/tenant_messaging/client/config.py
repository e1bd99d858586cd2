from __future__ import annotations

from pydantic import ConfigDict
from pydantic_settings import BaseSettings


class ClientSettings(BaseSettings):
    """Client-side connection settings, read from ``MESSAGING_*`` variables."""

    WS_URL: str = "ws://localhost:8000/ws/messages"
    API_URL: str = "http://localhost:8000"
    TOKEN: str | None = None

    RECONNECT_ATTEMPTS: int = 5
    RECONNECT_DELAY: float = 1.0
    RECONNECT_DELAY_MAX: float = 5.0

    ACK_TIMEOUT: float = 10.0
    HTTP_TIMEOUT: float = 10.0

    model_config = ConfigDict(
        env_prefix="MESSAGING_",
        env_file=".env",
        extra="ignore",
    )
