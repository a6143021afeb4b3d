from __future__ import annotations

import logging
from typing import Any, Iterable, Mapping

from ..domain.entities import PendingRequest, User

logger = logging.getLogger(__name__)


class ConsoleCache:
    """Authoritative in-memory copy of the users and requests a session shows.

    Written by reloads, by completed actions, and by the change feed. Read
    only by the view model. Reload failures leave the previous contents in
    place and set ``error`` instead.
    """

    def __init__(self) -> None:
        self._users: dict[str, User] = {}
        self.requests: list[PendingRequest] = []
        self.error: str | None = None

    @property
    def users(self) -> list[User]:
        return list(self._users.values())

    def get_user(self, user_id: str) -> User | None:
        return self._users.get(user_id)

    def replace_users(self, users: Iterable[User]) -> None:
        self._users = {user.id: user for user in users}

    def replace_requests(self, requests: Iterable[PendingRequest]) -> None:
        self.requests = list(requests)

    def merge_user(self, record: Mapping[str, Any]) -> bool:
        """Overlay ``record`` on the cached user with the same id.

        Returns False, leaving the cache untouched, when the id is not cached.
        """
        user_id = record.get("id")
        if user_id is None:
            return False
        current = self._users.get(str(user_id))
        if current is None:
            return False
        self._users[current.id] = current.merged_with(record)
        return True

    def set_error(self, message: str) -> None:
        logger.warning("console_error message=%s", message)
        self.error = message

    def clear_error(self) -> None:
        self.error = None
