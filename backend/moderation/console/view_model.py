"""Search, filter, sort and paginate the cached user list.

Everything here is a pure derivation: the cache is never mutated and the same
inputs always give the same page.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, replace
from enum import Enum
from typing import Sequence

from ..domain.entities import User, UserType

DEFAULT_PAGE_SIZE = 15

ROLE_RANK: dict[str, int] = {
    UserType.SUPERADMIN.value: 0,
    UserType.ADMIN.value: 1,
    UserType.USER.value: 2,
}
UNKNOWN_ROLE_RANK = len(ROLE_RANK)


class RoleFilter(str, Enum):
    ALL = "all"
    SUPERADMIN = "superadmin"
    ADMIN = "admin"
    USER = "user"


class StatusFilter(str, Enum):
    ALL = "all"
    ACTIVE = "active"
    BANNED = "banned"


@dataclass(frozen=True)
class ViewFilters:
    search_term: str = ""
    role_filter: RoleFilter = RoleFilter.ALL
    status_filter: StatusFilter = StatusFilter.ALL


@dataclass(frozen=True)
class ShowingRange:
    start: int
    end: int
    total: int


@dataclass(frozen=True)
class UserPage:
    items: list[User]
    total: int
    current_page: int
    total_pages: int
    page_size: int

    @property
    def showing(self) -> ShowingRange:
        if self.total == 0:
            return ShowingRange(0, 0, 0)
        start = (self.current_page - 1) * self.page_size + 1
        end = min(self.total, self.current_page * self.page_size)
        return ShowingRange(start, end, self.total)


def _role_value(user: User) -> str:
    return getattr(user.user_type, "value", user.user_type)


def _full_name(user: User) -> str:
    middle = f"{user.middle_name} " if user.middle_name else ""
    return f"{user.first_name} {middle}{user.last_name}"


def matches(user: User, filters: ViewFilters) -> bool:
    term = filters.search_term.strip().lower()
    if term:
        haystack = (
            _full_name(user).lower(),
            user.email.lower(),
            (user.mobile_number or "").lower(),
        )
        if not any(term in value for value in haystack):
            return False

    if filters.role_filter != RoleFilter.ALL and _role_value(user) != filters.role_filter.value:
        return False

    if filters.status_filter == StatusFilter.BANNED:
        return user.is_banned
    if filters.status_filter == StatusFilter.ACTIVE:
        return not user.is_banned
    return True


def sort_key(user: User) -> tuple[int, str]:
    rank = ROLE_RANK.get(_role_value(user), UNKNOWN_ROLE_RANK)
    return rank, f"{user.first_name} {user.last_name}".casefold()


def total_pages_for(count: int, page_size: int) -> int:
    return max(1, math.ceil(count / page_size))


def clamp_page(page: int, total_pages: int) -> int:
    return min(max(page, 1), total_pages)


def derive_user_page(
    users: Sequence[User],
    filters: ViewFilters,
    page: int = 1,
    page_size: int = DEFAULT_PAGE_SIZE,
) -> UserPage:
    if page_size <= 0:
        raise ValueError("page_size must be greater than 0")

    ordered = sorted((user for user in users if matches(user, filters)), key=sort_key)
    total_pages = total_pages_for(len(ordered), page_size)
    current = clamp_page(page, total_pages)
    start = (current - 1) * page_size
    return UserPage(
        items=ordered[start : start + page_size],
        total=len(ordered),
        current_page=current,
        total_pages=total_pages,
        page_size=page_size,
    )


class PaginationState:
    """Current filters and page of one console session."""

    def __init__(self, page_size: int = DEFAULT_PAGE_SIZE) -> None:
        if page_size <= 0:
            raise ValueError("page_size must be greater than 0")
        self.page_size = page_size
        self.filters = ViewFilters()
        self.page = 1

    def set_filters(
        self,
        *,
        search_term: str | None = None,
        role_filter: RoleFilter | str | None = None,
        status_filter: StatusFilter | str | None = None,
    ) -> ViewFilters:
        updated = replace(
            self.filters,
            search_term=self.filters.search_term if search_term is None else search_term,
            role_filter=(
                self.filters.role_filter if role_filter is None else RoleFilter(role_filter)
            ),
            status_filter=(
                self.filters.status_filter
                if status_filter is None
                else StatusFilter(status_filter)
            ),
        )
        if updated != self.filters:
            self.filters = updated
            self.page = 1
        return self.filters

    def go_to_page(self, page: int, total_pages: int) -> int:
        self.page = clamp_page(page, total_pages)
        return self.page

    def clamp(self, total_pages: int) -> int:
        if self.page > total_pages:
            self.page = total_pages
        return self.page

    def derive(self, users: Sequence[User]) -> UserPage:
        result = derive_user_page(users, self.filters, self.page, self.page_size)
        self.clamp(result.total_pages)
        return result
