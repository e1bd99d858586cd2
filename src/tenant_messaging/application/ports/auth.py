from __future__ import annotations

from typing import Protocol

from tenant_messaging.application.dto.principal import Principal


class TokenVerifier(Protocol):
    """Turns a bearer token into the caller's identity.

    Implementations raise ``AuthenticationError`` for any token they cannot
    accept; the token's ``sub`` claim becomes ``Principal.user_id``.
    """

    async def verify(self, token: str) -> Principal: ...
