from __future__ import annotations

import jwt

from tenant_messaging.application.dto.principal import Principal
from tenant_messaging.application.exceptions import AuthenticationError
from tenant_messaging.infrastructure.auth.claims import principal_from_claims


class HS256Verifier:
    """Shared-secret verification for tokens issued by the main application."""

    def __init__(self, secret: str, algorithm: str = "HS256", *, leeway: float = 0) -> None:
        if not secret:
            raise ValueError("JWT_SECRET must be set when JWT_VERIFY_MODE=hs256")
        self._secret = secret
        self._algorithm = algorithm
        self._leeway = leeway

    async def verify(self, token: str) -> Principal:
        try:
            payload = jwt.decode(
                token,
                self._secret,
                algorithms=[self._algorithm],
                leeway=self._leeway,
            )
        except jwt.PyJWTError as exc:
            raise AuthenticationError(str(exc)) from exc
        return principal_from_claims(payload)
