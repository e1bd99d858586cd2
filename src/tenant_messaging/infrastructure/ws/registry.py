"""In-process presence registry: which live connection represents each user."""
from __future__ import annotations

import logging

from tenant_messaging.application.exceptions import ValidationError

logger = logging.getLogger(__name__)


class ConnectionRegistry:
    """Maps user ids to their single current connection id.

    Last-connected-wins: a second announce for the same user replaces the
    first entry. A reverse index keeps disconnect cleanup O(1). All methods
    are synchronous and must only be called from the event loop thread.
    """

    def __init__(self) -> None:
        self._by_user: dict[str, str] = {}
        self._by_connection: dict[str, str] = {}

    def announce(self, user_id: str, connection_id: str) -> None:
        if not user_id or not user_id.strip():
            raise ValidationError("user_id must be a non-empty string")

        previous = self._by_user.get(user_id)
        if previous is not None and previous != connection_id:
            self._by_connection.pop(previous, None)

        # A connection re-announcing as someone else gives up its old identity.
        old_user = self._by_connection.get(connection_id)
        if old_user is not None and old_user != user_id:
            self._by_user.pop(old_user, None)

        self._by_user[user_id] = connection_id
        self._by_connection[connection_id] = user_id
        logger.info("User %s mapped to connection %s", user_id, connection_id)

    def lookup(self, user_id: str) -> str | None:
        return self._by_user.get(user_id)

    def user_for(self, connection_id: str) -> str | None:
        return self._by_connection.get(connection_id)

    def remove(self, connection_id: str) -> str | None:
        """Drop the entry held by ``connection_id``. Unknown ids are ignored."""
        user_id = self._by_connection.pop(connection_id, None)
        if user_id is None:
            return None
        if self._by_user.get(user_id) == connection_id:
            del self._by_user[user_id]
        logger.info("User %s removed (connection %s)", user_id, connection_id)
        return user_id

    def online_users(self) -> list[str]:
        return list(self._by_user)

    def __contains__(self, user_id: object) -> bool:
        return user_id in self._by_user

    def __len__(self) -> int:
        return len(self._by_user)
