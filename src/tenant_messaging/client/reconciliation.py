"""Merges fetched history and live pushes into one conversation."""
from __future__ import annotations

import asyncio
import logging
from typing import Callable, Iterable, Iterator
from uuid import UUID

from tenant_messaging.client.exceptions import HistoryFetchError
from tenant_messaging.client.history import HistoryFetcher
from tenant_messaging.client.models import ChatMessage
from tenant_messaging.client.session import ConnectionState, SessionBridge

logger = logging.getLogger(__name__)


class ConversationView:
    """Ordered, duplicate-free messages between a user and one counterpart.

    Keyed by the store-assigned message id and ordered by
    ``(created_at, id)``, so history and pushes can arrive in any order.
    """

    def __init__(self, user_id: str, counterpart_id: str) -> None:
        self.user_id = user_id
        self.counterpart_id = counterpart_id
        self._by_id: dict[UUID, ChatMessage] = {}
        self._ordered: list[ChatMessage] | None = None

    def seed(self, history: Iterable[ChatMessage]) -> int:
        """Merge a history fetch. Returns how many messages were new."""
        return sum(1 for m in history if self._merge(m))

    def apply_push(self, message: ChatMessage) -> bool:
        return self._merge(message)

    @property
    def messages(self) -> list[ChatMessage]:
        if self._ordered is None:
            self._ordered = sorted(self._by_id.values(), key=lambda m: m.sort_key)
        return list(self._ordered)

    @property
    def unread_count(self) -> int:
        return sum(1 for m in self._by_id.values() if m.recipient_id == self.user_id and not m.read)

    def __contains__(self, message_id: object) -> bool:
        return message_id in self._by_id

    def __iter__(self) -> Iterator[ChatMessage]:
        return iter(self.messages)

    def __len__(self) -> int:
        return len(self._by_id)

    def _merge(self, message: ChatMessage) -> bool:
        if not message.involves(self.user_id, self.counterpart_id):
            return False
        existing = self._by_id.get(message.id)
        self._ordered = None
        if existing is None:
            self._by_id[message.id] = message
            return True
        self._by_id[message.id] = _combine(existing, message)
        return False


def _combine(a: ChatMessage, b: ChatMessage) -> ChatMessage:
    # Pushes carry no display attributes and read only moves false -> true.
    return a.model_copy(update={
        "sender": a.sender or b.sender,
        "recipient": a.recipient or b.recipient,
        "read": a.read or b.read,
    })


class ConversationSync:
    """Keeps a ConversationView fed from a bridge and a history fetcher.

    Subscribes to pushes before fetching, so a message pushed while the fetch
    is in flight is kept. Every (re)connect after start triggers a refetch to
    pick up what was stored while no connection was registered.
    """

    def __init__(
        self,
        bridge: SessionBridge,
        fetcher: HistoryFetcher,
        counterpart_id: str,
    ) -> None:
        self.bridge = bridge
        self.fetcher = fetcher
        self.view = ConversationView(bridge.user_id, counterpart_id)
        self._unsubscribe: list[Callable[[], None]] = []
        self._refetch: asyncio.Task[None] | None = None

    async def start(self) -> ConversationView:
        self._unsubscribe.append(self.bridge.on_message(self.view.apply_push))
        self._unsubscribe.append(self.bridge.on_state_change(self._on_state))
        self.view.seed(self.bridge.messages)
        await self.refresh()
        return self.view

    async def refresh(self) -> int:
        history = await self.fetcher.fetch_all(self.view.counterpart_id)
        added = self.view.seed(history)
        logger.debug("History refresh added %d messages", added)
        return added

    def stop(self) -> None:
        for unsubscribe in self._unsubscribe:
            unsubscribe()
        self._unsubscribe.clear()
        if self._refetch is not None:
            self._refetch.cancel()

    def _on_state(self, state: ConnectionState) -> None:
        if state != ConnectionState.CONNECTED:
            return
        if self._refetch is None or self._refetch.done():
            self._refetch = asyncio.create_task(self._safe_refresh())

    async def _safe_refresh(self) -> None:
        try:
            await self.refresh()
        except HistoryFetchError as exc:
            logger.warning("History refresh after reconnect failed: %s", exc)
