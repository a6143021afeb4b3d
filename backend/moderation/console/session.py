"""Per-admin console session over the moderation workflow.

The HTTP surface in ``moderation.api`` is stateless and reads the store on
every request. ``AdminConsole`` is for long-lived clients: the process that
serves one admin's dashboard owns a console, opens it once and closes it when
the admin leaves. Writes made through the HTTP surface reach open consoles in
other workers through ``RedisChangeFeed``.
"""
from __future__ import annotations

import logging
from datetime import datetime
from typing import Any

from ..application.side_effects import ActionOutcome
from ..auth.access_gate import require_console_access, require_superadmin
from ..domain.entities import (
    ApprovalRequest,
    BanType,
    PendingRequest,
    Principal,
    ReviewAction,
    User,
    UserType,
)
from ..domain.ports.notifications import NotificationDispatch
from ..domain.ports.principal import PrincipalProvider
from ..domain.ports.record_store import RecordStore
from ..domain.reconciliation import RequestStatusFilter, filter_requests, resolve_request
from ..errors import NotFoundError, StoreReadError, StoreWriteError
from ..use_cases.approvals.decide_request import decide_request
from ..use_cases.approvals.load_requests import load_approval_requests
from ..use_cases.lookups import list_users
from ..use_cases.moderation.ban_user import ban_user
from ..use_cases.moderation.change_role import change_role
from ..use_cases.moderation.unban_user import unban_user
from .cache import ConsoleCache
from .change_feed import ChangeFeedConsumer
from .view_model import DEFAULT_PAGE_SIZE, PaginationState, RoleFilter, StatusFilter, UserPage

logger = logging.getLogger(__name__)

USERS_LOAD_FAILED = "Failed to load users. Please try again later."
REQUESTS_LOAD_FAILED = "Failed to load approval requests. Please try again later."


class AdminConsole:
    """One admin's working session over the moderation workflow.

    Owns the local cache, the pagination state and the change feed
    subscription. Actions take the acting principal from ``principals`` at
    call time.
    """

    def __init__(
        self,
        store: RecordStore,
        dispatch: NotificationDispatch,
        principals: PrincipalProvider,
        *,
        page_size: int = DEFAULT_PAGE_SIZE,
    ) -> None:
        self._store = store
        self._dispatch = dispatch
        self._principals = principals
        self.cache = ConsoleCache()
        self.pagination = PaginationState(page_size)
        self.feed = ChangeFeedConsumer(store, self.cache)

    async def open(self) -> None:
        require_console_access(await self._principals.current_principal())
        self.cache.clear_error()
        await self.refresh_users()
        await self.refresh_requests()
        await self.feed.start()

    async def close(self) -> None:
        await self.feed.stop()

    async def __aenter__(self) -> "AdminConsole":
        await self.open()
        return self

    async def __aexit__(self, *_exc_info) -> None:
        await self.close()

    async def refresh_users(self) -> bool:
        try:
            users = await list_users(self._store)
        except StoreReadError as exc:
            logger.error("console_refresh_failed target=users error=%s", exc)
            self.cache.set_error(USERS_LOAD_FAILED)
            return False
        self.cache.replace_users(users)
        return True

    async def refresh_requests(self) -> bool:
        try:
            requests = await load_approval_requests(self._store)
        except StoreReadError as exc:
            logger.error("console_refresh_failed target=approval_requests error=%s", exc)
            self.cache.set_error(REQUESTS_LOAD_FAILED)
            return False
        self.cache.replace_requests(requests)
        return True

    # --- Read side ---

    def user_page(self) -> UserPage:
        return self.pagination.derive(self.cache.users)

    def set_filters(
        self,
        *,
        search_term: str | None = None,
        role_filter: RoleFilter | str | None = None,
        status_filter: StatusFilter | str | None = None,
    ) -> UserPage:
        self.pagination.set_filters(
            search_term=search_term,
            role_filter=role_filter,
            status_filter=status_filter,
        )
        return self.user_page()

    def go_to_page(self, page: int) -> UserPage:
        self.pagination.go_to_page(page, self.user_page().total_pages)
        return self.user_page()

    def approval_requests(
        self, status_filter: RequestStatusFilter | str = RequestStatusFilter.PENDING
    ) -> list[PendingRequest]:
        return filter_requests(self.cache.requests, status_filter)

    # --- Actions ---

    async def _begin_action(self) -> Principal:
        principal = require_superadmin(await self._principals.current_principal())
        self.cache.clear_error()
        return principal

    def _cached_user(self, user_id: str) -> User:
        user = self.cache.get_user(user_id)
        if user is None:
            raise NotFoundError("User not found", details={"user_id": user_id})
        return user

    async def decide(
        self,
        request_id: str,
        action: ReviewAction | str,
        notes: str | None = None,
    ) -> ActionOutcome[ApprovalRequest]:
        principal = await self._begin_action()
        request = resolve_request(self.cache.requests, request_id)
        label = getattr(action, "value", action)
        try:
            outcome = await decide_request(
                self._store,
                self._dispatch,
                request,
                action,
                reviewer_id=principal.id,
                notes=notes,
            )
        except StoreWriteError:
            self.cache.set_error(f"Failed to {label} request. Please try again.")
            raise
        await self.refresh_users()
        await self.refresh_requests()
        return outcome

    async def ban(
        self,
        user_id: str,
        ban_type: BanType | str,
        reason: str | None,
        days: Any = None,
        *,
        now: datetime | None = None,
    ) -> ActionOutcome[dict[str, Any]]:
        await self._begin_action()
        user = self._cached_user(user_id)
        try:
            outcome = await ban_user(
                self._store, self._dispatch, user, ban_type, reason, days, now=now
            )
        except StoreWriteError:
            self.cache.set_error("Failed to ban user.")
            raise
        self.cache.merge_user({"id": user_id, **outcome.result})
        return outcome

    async def unban(
        self, user_id: str, message: str | None
    ) -> ActionOutcome[dict[str, Any]]:
        await self._begin_action()
        user = self._cached_user(user_id)
        try:
            outcome = await unban_user(self._store, self._dispatch, user, message)
        except StoreWriteError:
            self.cache.set_error("Failed to unban user.")
            raise
        self.cache.merge_user({"id": user_id, **outcome.result})
        return outcome

    async def change_role(self, user_id: str, new_role: UserType | str) -> dict[str, Any]:
        await self._begin_action()
        user = self._cached_user(user_id)
        try:
            patch = await change_role(self._store, user, new_role)
        except StoreWriteError:
            self.cache.set_error("Failed to update user role. Please try again.")
            raise
        self.cache.merge_user({"id": user_id, **patch})
        return patch
