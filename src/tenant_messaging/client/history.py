"""Paginated reads of persisted conversation history over HTTP."""
from __future__ import annotations

import logging
from types import TracebackType
from typing import Self

import httpx
from pydantic import ValidationError

from tenant_messaging.client.config import ClientSettings
from tenant_messaging.client.exceptions import HistoryFetchError
from tenant_messaging.client.models import ChatMessage, HistoryPage

logger = logging.getLogger(__name__)

HISTORY_PATH = "/api/v1/messages"


class HistoryFetcher:
    def __init__(
        self,
        settings: ClientSettings | None = None,
        *,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.settings = settings or ClientSettings()
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=self.settings.HTTP_TIMEOUT)

    async def fetch(
        self,
        counterpart_id: str,
        *,
        cursor: str | None = None,
        limit: int | None = None,
    ) -> HistoryPage:
        params: dict[str, str | int] = {"contactId": counterpart_id}
        if cursor:
            params["cursor"] = cursor
        if limit:
            params["limit"] = limit

        headers = {}
        if self.settings.TOKEN:
            headers["Authorization"] = f"Bearer {self.settings.TOKEN}"

        url = self.settings.API_URL.rstrip("/") + HISTORY_PATH
        try:
            resp = await self._client.get(url, params=params, headers=headers)
        except httpx.HTTPError as exc:
            raise HistoryFetchError(str(exc)) from exc

        if resp.status_code != 200:
            try:
                detail = resp.json().get("detail", resp.text)
            except ValueError:
                detail = resp.text
            raise HistoryFetchError(str(detail), status_code=resp.status_code)

        try:
            return HistoryPage.model_validate(resp.json())
        except (ValueError, ValidationError) as exc:
            raise HistoryFetchError("Malformed history response", status_code=resp.status_code) from exc

    async def fetch_all(self, counterpart_id: str, *, limit: int | None = None) -> list[ChatMessage]:
        """Follow ``next_cursor`` until the whole conversation is read."""
        messages: list[ChatMessage] = []
        cursor: str | None = None
        while True:
            page = await self.fetch(counterpart_id, cursor=cursor, limit=limit)
            messages.extend(page.messages)
            if not page.next_cursor:
                break
            cursor = page.next_cursor
        logger.debug("Fetched %d messages with %s", len(messages), counterpart_id)
        return messages

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        await self.aclose()
