from __future__ import annotations

from fastapi import APIRouter

from tenant_messaging.api.deps import CurrentPrincipal, ManagerDep
from tenant_messaging.api.v1.schemas.message import PresenceResponse

router = APIRouter(prefix="/api/v1/presence", tags=["presence"])


@router.get("/{user_id}", response_model=PresenceResponse)
async def get_presence(
    user_id: str,
    _principal: CurrentPrincipal,
    manager: ManagerDep,
) -> PresenceResponse:
    return PresenceResponse(user_id=user_id, online=user_id in manager.registry)
