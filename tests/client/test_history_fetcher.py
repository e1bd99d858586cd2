from __future__ import annotations

import httpx
import pytest

from tenant_messaging.client.exceptions import HistoryFetchError
from tenant_messaging.client.history import HistoryFetcher
from tests.client.conftest import wire_message
from tests.conftest import LANDLORD_ID


def _fetcher(settings, handler) -> HistoryFetcher:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return HistoryFetcher(settings, client=client)


@pytest.mark.asyncio
async def test_fetch_sends_contact_and_token(client_settings):
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"messages": [wire_message()], "next_cursor": None})

    settings = client_settings.model_copy(update={"TOKEN": "tok"})
    async with _fetcher(settings, handler) as fetcher:
        page = await fetcher.fetch(LANDLORD_ID, limit=10)

    (request,) = seen
    assert request.url.path == "/api/v1/messages"
    assert request.url.params["contactId"] == LANDLORD_ID
    assert request.url.params["limit"] == "10"
    assert request.headers["Authorization"] == "Bearer tok"
    assert len(page.messages) == 1
    assert page.next_cursor is None


@pytest.mark.asyncio
async def test_fetch_all_follows_cursor(client_settings):
    pages = {
        None: {"messages": [wire_message(minute=0), wire_message(minute=1)], "next_cursor": "c1"},
        "c1": {"messages": [wire_message(minute=2)], "next_cursor": None},
    }
    cursors: list[str | None] = []

    def handler(request: httpx.Request) -> httpx.Response:
        cursor = request.url.params.get("cursor")
        cursors.append(cursor)
        return httpx.Response(200, json=pages[cursor])

    async with _fetcher(client_settings, handler) as fetcher:
        messages = await fetcher.fetch_all(LANDLORD_ID)

    assert cursors == [None, "c1"]
    assert [m.created_at.minute for m in messages] == [0, 1, 2]


@pytest.mark.asyncio
async def test_error_status_raises(client_settings):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(401, json={"detail": "Invalid token"})

    async with _fetcher(client_settings, handler) as fetcher:
        with pytest.raises(HistoryFetchError) as exc_info:
            await fetcher.fetch(LANDLORD_ID)

    assert exc_info.value.status_code == 401
    assert exc_info.value.detail == "Invalid token"


@pytest.mark.asyncio
async def test_network_error_raises(client_settings):
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("refused", request=request)

    async with _fetcher(client_settings, handler) as fetcher:
        with pytest.raises(HistoryFetchError) as exc_info:
            await fetcher.fetch(LANDLORD_ID)

    assert exc_info.value.status_code is None


@pytest.mark.asyncio
async def test_malformed_body_raises(client_settings):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"messages": [{"id": "nope"}]})

    async with _fetcher(client_settings, handler) as fetcher:
        with pytest.raises(HistoryFetchError):
            await fetcher.fetch(LANDLORD_ID)
