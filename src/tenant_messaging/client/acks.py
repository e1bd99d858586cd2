"""Correlates fire-and-forget sends with their server acknowledgements."""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, replace
from enum import StrEnum

from tenant_messaging.client.models import ChatMessage

logger = logging.getLogger(__name__)


class AckStatus(StrEnum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    FAILED = "failed"
    # No ack and no error within the timeout; the message may or may not be stored.
    UNCONFIRMED = "unconfirmed"


@dataclass
class SendOutcome:
    client_msg_id: str
    status: AckStatus
    message: ChatMessage | None = None
    error: str | None = None


class AckTracker:
    """Tracks each send by its client correlation id.

    A send resolves to CONFIRMED or FAILED when the server answers, or to
    UNCONFIRMED when the timeout elapses first. An answer arriving after the
    timeout still updates the recorded status.
    """

    def __init__(self, timeout: float) -> None:
        self._timeout = timeout
        self._outcomes: dict[str, SendOutcome] = {}
        self._waiters: dict[str, asyncio.Future[SendOutcome]] = {}
        self._timers: dict[str, asyncio.TimerHandle] = {}

    def register(self, client_msg_id: str) -> None:
        loop = asyncio.get_running_loop()
        self._outcomes[client_msg_id] = SendOutcome(client_msg_id, AckStatus.PENDING)
        self._waiters[client_msg_id] = loop.create_future()
        self._timers[client_msg_id] = loop.call_later(self._timeout, self._expire, client_msg_id)

    def confirm(self, client_msg_id: str | None, message: ChatMessage) -> bool:
        return self._settle(client_msg_id, AckStatus.CONFIRMED, message=message)

    def fail(self, client_msg_id: str | None, reason: str) -> bool:
        return self._settle(client_msg_id, AckStatus.FAILED, error=reason)

    def status(self, client_msg_id: str) -> AckStatus | None:
        outcome = self._outcomes.get(client_msg_id)
        return outcome.status if outcome else None

    def outcome(self, client_msg_id: str) -> SendOutcome | None:
        return self._outcomes.get(client_msg_id)

    def pending(self) -> list[str]:
        return [k for k, v in self._outcomes.items() if v.status == AckStatus.PENDING]

    async def result(self, client_msg_id: str) -> SendOutcome:
        """Wait for the first resolution: CONFIRMED, FAILED or UNCONFIRMED."""
        waiter = self._waiters.get(client_msg_id)
        if waiter is None:
            raise KeyError(client_msg_id)
        return await asyncio.shield(waiter)

    def close(self) -> None:
        for client_msg_id in self.pending():
            self._expire(client_msg_id)

    def _settle(
        self,
        client_msg_id: str | None,
        status: AckStatus,
        *,
        message: ChatMessage | None = None,
        error: str | None = None,
    ) -> bool:
        if client_msg_id is None or client_msg_id not in self._outcomes:
            logger.debug("Ack for unknown send %s ignored", client_msg_id)
            return False
        outcome = self._outcomes[client_msg_id]
        if outcome.status in (AckStatus.CONFIRMED, AckStatus.FAILED):
            return False

        outcome.status = status
        outcome.message = message
        outcome.error = error
        timer = self._timers.pop(client_msg_id, None)
        if timer is not None:
            timer.cancel()
        self._resolve(client_msg_id, outcome)
        return True

    def _expire(self, client_msg_id: str) -> None:
        self._timers.pop(client_msg_id, None)
        outcome = self._outcomes.get(client_msg_id)
        if outcome is None or outcome.status != AckStatus.PENDING:
            return
        outcome.status = AckStatus.UNCONFIRMED
        logger.warning("Send %s unconfirmed after %.1fs", client_msg_id, self._timeout)
        self._resolve(client_msg_id, outcome)

    def _resolve(self, client_msg_id: str, outcome: SendOutcome) -> None:
        waiter = self._waiters.get(client_msg_id)
        if waiter is not None and not waiter.done():
            waiter.set_result(replace(outcome))
