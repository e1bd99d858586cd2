from __future__ import annotations

from typing import Any

from tenant_messaging.application.dto.principal import Principal
from tenant_messaging.application.exceptions import AuthenticationError
from tenant_messaging.domain.value_objects.enums import UserRole


def principal_from_claims(payload: dict[str, Any]) -> Principal:
    """Build a principal from verified claims: ``sub`` is the user id."""
    subject = payload.get("sub")
    if not subject:
        raise AuthenticationError("Token has no subject")
    try:
        role = UserRole(str(payload.get("role", "")).upper())
    except ValueError:
        role = None
    return Principal(user_id=str(subject), role=role)
