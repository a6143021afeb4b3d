from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Mapping

Record = dict[str, Any]

SYNTHETIC_ID_PREFIX = "pending-"

# Stands in for a missing request time; undated requests sort last.
UNDATED = datetime.min.replace(tzinfo=timezone.utc)


class UserType(str, Enum):
    SUPERADMIN = "superadmin"
    ADMIN = "admin"
    USER = "user"


class UserStatus(str, Enum):
    ACTIVE = "active"
    PENDING_ADMIN = "pending_admin"


class RequestStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class ReviewAction(str, Enum):
    APPROVE = "approve"
    REJECT = "reject"


class BanType(str, Enum):
    TEMPORARY = "temporary"
    PERMANENT = "permanent"


class EmailTemplate(str, Enum):
    BAN = "ban"
    UNBAN = "unban"


def parse_timestamp(value: Any) -> datetime | None:
    """Normalize a stored timestamp to an aware UTC datetime."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str):
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    else:
        raise ValueError(f"Unsupported timestamp value: {value!r}")
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _user_type(value: Any) -> UserType | str:
    # Unknown roles are kept verbatim so views can rank them last
    try:
        return UserType(value)
    except ValueError:
        return str(value) if value is not None else ""


def _status(value: Any) -> UserStatus | str:
    try:
        return UserStatus(value)
    except ValueError:
        return str(value) if value is not None else ""


@dataclass(frozen=True)
class User:
    id: str
    first_name: str
    last_name: str
    email: str
    user_type: UserType | str
    status: UserStatus | str
    created_at: datetime | None = None
    middle_name: str | None = None
    mobile_number: str | None = None
    requested_role: str | None = None
    is_banned: bool = False
    banned_until: datetime | None = None
    ban_reason: str | None = None

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> "User":
        return cls(
            id=str(record["id"]),
            first_name=record.get("firstName") or "",
            middle_name=record.get("middleName"),
            last_name=record.get("lastName") or "",
            email=record.get("email") or "",
            mobile_number=record.get("mobileNumber"),
            user_type=_user_type(record.get("user_type")),
            status=_status(record.get("status")),
            requested_role=record.get("requested_role"),
            created_at=parse_timestamp(record.get("created_at")),
            is_banned=bool(record.get("is_banned")),
            banned_until=parse_timestamp(record.get("banned_until")),
            ban_reason=record.get("ban_reason"),
        )

    def to_record(self) -> Record:
        return {
            "id": self.id,
            "firstName": self.first_name,
            "middleName": self.middle_name,
            "lastName": self.last_name,
            "email": self.email,
            "mobileNumber": self.mobile_number,
            "user_type": _raw(self.user_type),
            "status": _raw(self.status),
            "requested_role": self.requested_role,
            "created_at": self.created_at,
            "is_banned": self.is_banned,
            "banned_until": self.banned_until,
            "ban_reason": self.ban_reason,
        }

    def merged_with(self, record: Mapping[str, Any]) -> "User":
        """Return a copy with the fields of ``record`` laid over this user."""
        return User.from_record({**self.to_record(), **record, "id": self.id})

    @property
    def display_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    @property
    def is_superadmin(self) -> bool:
        return self.user_type == UserType.SUPERADMIN

    def summary(self) -> "UserSummary":
        return UserSummary(
            first_name=self.first_name,
            last_name=self.last_name,
            email=self.email,
            mobile_number=self.mobile_number,
        )


@dataclass(frozen=True)
class UserSummary:
    first_name: str
    last_name: str
    email: str
    mobile_number: str | None = None


@dataclass(frozen=True)
class ApprovalRequest:
    """A request with a persisted record in ``approval_requests``."""

    id: str
    user_id: str
    requested_role: UserType
    requested_at: datetime
    status: RequestStatus
    reviewed_at: datetime | None = None
    reviewed_by: str | None = None
    notes: str | None = None
    user: UserSummary | None = None

    is_synthetic = False

    @classmethod
    def from_record(
        cls, record: Mapping[str, Any], *, user: UserSummary | None = None
    ) -> "ApprovalRequest":
        requested_at = parse_timestamp(record.get("requested_at"))
        return cls(
            id=str(record["id"]),
            user_id=str(record["user_id"]),
            requested_role=UserType(record.get("requested_role") or UserType.ADMIN),
            requested_at=requested_at or UNDATED,
            status=RequestStatus(record.get("status") or RequestStatus.PENDING),
            reviewed_at=parse_timestamp(record.get("reviewed_at")),
            reviewed_by=record.get("reviewed_by"),
            notes=record.get("notes"),
            user=user,
        )

    def with_user(self, user: UserSummary | None) -> "ApprovalRequest":
        return replace(self, user=user)


@dataclass(frozen=True)
class SyntheticRequest:
    """An inferred request for a ``pending_admin`` user with no record yet."""

    user_id: str
    requested_at: datetime
    user: UserSummary | None = None
    requested_role: UserType = UserType.ADMIN
    status: RequestStatus = field(default=RequestStatus.PENDING, init=False)
    notes: str | None = field(default=None, init=False)
    reviewed_at: datetime | None = field(default=None, init=False)
    reviewed_by: str | None = field(default=None, init=False)

    is_synthetic = True

    @property
    def id(self) -> str:
        return f"{SYNTHETIC_ID_PREFIX}{self.user_id}"


PendingRequest = ApprovalRequest | SyntheticRequest


@dataclass(frozen=True)
class Principal:
    id: str
    role: str


def _raw(value: Any) -> Any:
    return value.value if isinstance(value, Enum) else value
