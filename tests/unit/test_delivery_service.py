from __future__ import annotations

import pytest

from tenant_messaging.application.dto.message import SendMessageDTO
from tenant_messaging.application.exceptions import NotFoundError, PersistenceError, ValidationError
from tenant_messaging.infrastructure.ws.registry import ConnectionRegistry
from tenant_messaging.services import message_service
from tenant_messaging.services.delivery_service import DeliveryCoordinator
from tests.conftest import (
    LANDLORD_ID,
    OTHER_TENANT_ID,
    TENANT_ID,
    FakeTransport,
    FakeUoW,
    failing_store,
)


def _dto(to_id: str = TENANT_ID, **kw) -> SendMessageDTO:
    return SendMessageDTO(
        from_id=kw.get("from_id", LANDLORD_ID),
        to_id=to_id,
        subject=kw.get("subject", "Rent reminder"),
        body=kw.get("body", "Due Friday"),
    )


@pytest.fixture
def registry() -> ConnectionRegistry:
    return ConnectionRegistry()


@pytest.fixture
def transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture
def coordinator(registry, transport) -> DeliveryCoordinator:
    return DeliveryCoordinator(registry, transport)


@pytest.mark.asyncio
async def test_send_to_online_recipient_pushes_persisted_record(coordinator, registry, transport):
    registry.announce(TENANT_ID, "conn-tenant")
    uow = FakeUoW()

    result = await coordinator.send(_dto(), uow)

    assert result.pushed is True
    assert uow.stored == [result.message]
    pushes = transport.pushed_to("conn-tenant")
    assert len(pushes) == 1
    payload = pushes[0]["message"]
    assert payload["id"] == str(result.message.id)
    assert payload["created_at"] == result.message.created_at.isoformat()
    assert payload["subject"] == "Rent reminder"
    assert payload["body"] == "Due Friday"
    assert payload["read"] is False


@pytest.mark.asyncio
async def test_message_is_committed_before_push(registry):
    registry.announce(TENANT_ID, "conn-tenant")
    uow = FakeUoW()
    seen_at_push: list[int] = []

    class CheckingTransport(FakeTransport):
        async def push(self, connection_id, event_type, data):
            seen_at_push.append(len(uow.stored))
            return await super().push(connection_id, event_type, data)

    coordinator = DeliveryCoordinator(registry, CheckingTransport())
    await coordinator.send(_dto(), uow)

    assert seen_at_push == [1]


@pytest.mark.asyncio
async def test_offline_recipient_gets_no_push_but_same_result_shape(coordinator, registry, transport):
    registry.announce(TENANT_ID, "conn-tenant")
    online = await coordinator.send(_dto(), FakeUoW())
    offline = await coordinator.send(_dto(to_id=OTHER_TENANT_ID), FakeUoW())

    assert offline.pushed is False
    assert len(transport.pushes) == 1
    assert type(offline) is type(online)
    assert offline.message.recipient_id == OTHER_TENANT_ID


@pytest.mark.asyncio
async def test_severed_recipient_connection_still_durable(coordinator, registry, transport, tenant):
    registry.announce(TENANT_ID, "conn-tenant")
    transport.dead.add("conn-tenant")
    uow = FakeUoW()

    result = await coordinator.send(_dto(), uow)

    assert result.pushed is False
    history, _ = await message_service.list_history(tenant, LANDLORD_ID, None, 50, uow)
    assert [v.message.id for v in history] == [result.message.id]


@pytest.mark.asyncio
async def test_transport_exception_is_treated_as_absent(registry):
    registry.announce(TENANT_ID, "conn-tenant")

    class ExplodingTransport:
        async def push(self, connection_id, event_type, data):
            raise ConnectionResetError("peer gone")

    uow = FakeUoW()
    result = await DeliveryCoordinator(registry, ExplodingTransport()).send(_dto(), uow)

    assert result.pushed is False
    assert uow.stored == [result.message]


@pytest.mark.asyncio
async def test_persistence_failure_raises_and_never_pushes(coordinator, registry, transport):
    registry.announce(TENANT_ID, "conn-tenant")
    uow = failing_store()

    with pytest.raises(PersistenceError):
        await coordinator.send(_dto(), uow)

    assert transport.pushes == []
    assert uow.stored == []
    assert uow.rollbacks == 1


@pytest.mark.asyncio
async def test_commit_failure_raises_and_never_pushes(coordinator, registry, transport):
    registry.announce(TENANT_ID, "conn-tenant")
    uow = FakeUoW(commit_error=PersistenceError("commit failed"))

    with pytest.raises(PersistenceError):
        await coordinator.send(_dto(), uow)

    assert transport.pushes == []
    assert uow.stored == []


@pytest.mark.asyncio
async def test_sends_in_succession_have_non_decreasing_timestamps(coordinator):
    uow = FakeUoW()

    results = [
        await coordinator.send(_dto(body=f"message {i}"), uow)
        for i in range(3)
    ]

    stamps = [r.message.created_at for r in results]
    assert stamps == sorted(stamps)
    assert [m.body for m in uow.stored] == ["message 0", "message 1", "message 2"]


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "overrides",
    [{"body": ""}, {"body": "   "}, {"from_id": ""}],
)
async def test_invalid_send_is_rejected_before_store(coordinator, overrides):
    uow = FakeUoW()

    with pytest.raises(ValidationError):
        await coordinator.send(_dto(**overrides), uow)

    assert uow.stored == []


@pytest.mark.asyncio
async def test_unknown_recipient(coordinator):
    uow = FakeUoW()

    with pytest.raises(NotFoundError):
        await coordinator.send(_dto(to_id="ghost"), uow)

    assert uow.stored == []


@pytest.mark.asyncio
async def test_only_the_latest_connection_receives_the_push(coordinator, registry, transport):
    registry.announce(TENANT_ID, "conn-a")
    registry.announce(TENANT_ID, "conn-b")

    result = await coordinator.send(_dto(), FakeUoW())

    assert result.pushed is True
    assert transport.pushed_to("conn-a") == []
    assert len(transport.pushed_to("conn-b")) == 1


@pytest.mark.asyncio
async def test_store_outage_at_recipient_lookup_never_pushes(coordinator, registry, transport):
    registry.announce(TENANT_ID, "conn-tenant")
    uow = FakeUoW()
    uow.users.fail_with = PersistenceError("connection refused")

    with pytest.raises(PersistenceError):
        await coordinator.send(_dto(), uow)

    assert transport.pushes == []
    assert uow.rollbacks == 1
