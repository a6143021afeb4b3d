from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field

from ..application.side_effects import SideEffectWarning
from ..console.view_model import UserPage
from ..domain.entities import BanType, PendingRequest, ReviewAction, User, UserSummary, UserType


def _raw(value: Any) -> Any:
    return value.value if isinstance(value, Enum) else value


class UserOut(BaseModel):
    id: str
    first_name: str
    middle_name: str | None = None
    last_name: str
    email: str
    mobile_number: str | None = None
    user_type: str
    status: str
    requested_role: str | None = None
    is_banned: bool
    banned_until: datetime | None = None
    ban_reason: str | None = None
    created_at: datetime | None = None

    @classmethod
    def from_entity(cls, user: User) -> "UserOut":
        return cls(
            id=user.id,
            first_name=user.first_name,
            middle_name=user.middle_name,
            last_name=user.last_name,
            email=user.email,
            mobile_number=user.mobile_number,
            user_type=_raw(user.user_type),
            status=_raw(user.status),
            requested_role=user.requested_role,
            is_banned=user.is_banned,
            banned_until=user.banned_until,
            ban_reason=user.ban_reason,
            created_at=user.created_at,
        )


class ShowingOut(BaseModel):
    start: int
    end: int
    total: int


class UserPageOut(BaseModel):
    items: list[UserOut]
    total: int
    page: int
    total_pages: int
    page_size: int
    showing: ShowingOut

    @classmethod
    def from_page(cls, page: UserPage) -> "UserPageOut":
        showing = page.showing
        return cls(
            items=[UserOut.from_entity(user) for user in page.items],
            total=page.total,
            page=page.current_page,
            total_pages=page.total_pages,
            page_size=page.page_size,
            showing=ShowingOut(start=showing.start, end=showing.end, total=showing.total),
        )


class UserSummaryOut(BaseModel):
    first_name: str
    last_name: str
    email: str
    mobile_number: str | None = None

    @classmethod
    def from_summary(cls, summary: UserSummary | None) -> "UserSummaryOut | None":
        if summary is None:
            return None
        return cls(
            first_name=summary.first_name,
            last_name=summary.last_name,
            email=summary.email,
            mobile_number=summary.mobile_number,
        )


class ApprovalRequestOut(BaseModel):
    id: str
    user_id: str
    requested_role: str
    requested_at: datetime
    status: str
    reviewed_at: datetime | None = None
    reviewed_by: str | None = None
    notes: str | None = None
    is_synthetic: bool
    user: UserSummaryOut | None = None

    @classmethod
    def from_entity(cls, request: PendingRequest) -> "ApprovalRequestOut":
        return cls(
            id=request.id,
            user_id=request.user_id,
            requested_role=_raw(request.requested_role),
            requested_at=request.requested_at,
            status=_raw(request.status),
            reviewed_at=request.reviewed_at,
            reviewed_by=request.reviewed_by,
            notes=request.notes,
            is_synthetic=request.is_synthetic,
            user=UserSummaryOut.from_summary(request.user),
        )


class WarningOut(BaseModel):
    effect: str
    error: str

    @classmethod
    def from_warnings(cls, warnings: list[SideEffectWarning]) -> list["WarningOut"]:
        return [cls(effect=warning.effect, error=warning.error) for warning in warnings]


class DecisionIn(BaseModel):
    action: ReviewAction
    notes: str | None = Field(None, max_length=2000)


class DecisionOut(BaseModel):
    request: ApprovalRequestOut
    warnings: list[WarningOut] = Field(default_factory=list)


class BanIn(BaseModel):
    ban_type: BanType
    reason: str | None = Field(None, max_length=2000)
    # Left loose so malformed day counts reach the domain validation message
    days: int | float | str | None = None


class UnbanIn(BaseModel):
    message: str | None = Field(None, max_length=2000)


class RoleIn(BaseModel):
    user_type: UserType


class UserActionOut(BaseModel):
    user: UserOut
    warnings: list[WarningOut] = Field(default_factory=list)
