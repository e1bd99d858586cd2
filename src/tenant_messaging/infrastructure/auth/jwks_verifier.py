from __future__ import annotations

import asyncio
import logging

import jwt
from jwt import PyJWKClient
from jwt.exceptions import PyJWKClientConnectionError

from tenant_messaging.application.dto.principal import Principal
from tenant_messaging.application.exceptions import AuthenticationError
from tenant_messaging.infrastructure.auth.claims import principal_from_claims

logger = logging.getLogger(__name__)

ASYMMETRIC_ALGORITHMS = ("RS256", "ES256")


class JWKSVerifier:
    """Verification against an identity provider's published key set.

    Keys are cached by ``PyJWKClient``; a fetch happens only for an unseen
    ``kid``, off the event loop.
    """

    def __init__(self, jwks_url: str, *, algorithms: tuple[str, ...] = ASYMMETRIC_ALGORITHMS) -> None:
        self._jwks_url = jwks_url
        self._algorithms = list(algorithms)
        self._jwk_client = PyJWKClient(jwks_url, cache_keys=True)

    async def verify(self, token: str) -> Principal:
        try:
            signing_key = await asyncio.to_thread(self._jwk_client.get_signing_key_from_jwt, token)
            payload = jwt.decode(token, signing_key.key, algorithms=self._algorithms)
        except PyJWKClientConnectionError as exc:
            logger.warning("Key set at %s unreachable: %s", self._jwks_url, exc)
            raise AuthenticationError("Signing keys unavailable") from exc
        except jwt.PyJWTError as exc:
            raise AuthenticationError(str(exc)) from exc
        return principal_from_claims(payload)
