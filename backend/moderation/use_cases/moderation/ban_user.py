import logging
from datetime import datetime, timedelta, timezone
from typing import Any

from ...application.side_effects import ActionOutcome, SideEffect, run_side_effects
from ...domain.entities import BanType, EmailTemplate, User
from ...domain.invariants import parse_ban_days, require_reason, validate_not_superadmin
from ...domain.ports.notifications import NotificationDispatch
from ...domain.ports.record_store import Collection, RecordStore
from ...errors import ValidationError

logger = logging.getLogger(__name__)

SECONDS_PER_DAY = 86400


def _ban_message(ban_type: BanType, days: int | None, reason: str) -> str:
    if ban_type == BanType.PERMANENT:
        return f"Your account has been permanently banned. Reason: {reason}"
    return f"Your account has been banned for {days} day(s). Reason: {reason}"


async def ban_user(
    store: RecordStore,
    dispatch: NotificationDispatch,
    user: User,
    ban_type: BanType | str,
    reason: str | None,
    days: Any = None,
    *,
    now: datetime | None = None,
) -> ActionOutcome[dict[str, Any]]:
    """
    Ban ``user`` temporarily or permanently.

    All validation happens before the store is touched. When the ban write
    fails nothing else runs; afterwards the in-app notice and the email are
    attempted independently.

    Returns:
        The patch that was written, with any side-effect warnings
    """
    try:
        ban_type = BanType(ban_type)
    except ValueError:
        raise ValidationError(f"Unknown ban type: {ban_type!r}") from None

    reason = require_reason(reason, field="Ban reason")
    ban_days = parse_ban_days(days) if ban_type == BanType.TEMPORARY else None
    validate_not_superadmin(user, operation="ban")

    banned_until = None
    if ban_days is not None:
        start = now or datetime.now(timezone.utc)
        try:
            banned_until = start + timedelta(seconds=ban_days * SECONDS_PER_DAY)
        except OverflowError:
            raise ValidationError(
                "Ban duration is too long.", details={"days": ban_days}
            ) from None

    patch = {"is_banned": True, "banned_until": banned_until, "ban_reason": reason}
    await store.update(Collection.USERS, user.id, patch)
    logger.info(
        "operation=ban action=update user_id=%s type=%s until=%s",
        user.id,
        ban_type.value,
        banned_until.isoformat() if banned_until else "permanent",
    )

    async def notify_in_app() -> None:
        await dispatch.send_in_app(user.id, _ban_message(ban_type, ban_days, reason))

    async def notify_email() -> None:
        await dispatch.send_email(
            EmailTemplate.BAN,
            {
                "to": user.email,
                "name": user.display_name,
                "reason": reason,
                "until": banned_until.isoformat() if banned_until else None,
                "permanent": ban_type == BanType.PERMANENT,
            },
        )

    warnings = await run_side_effects(
        [
            SideEffect("in_app_notification", notify_in_app),
            SideEffect("email", notify_email),
        ],
        operation="ban",
    )
    return ActionOutcome(result=patch, warnings=warnings)
