import logging
from typing import Any

from ...application.side_effects import ActionOutcome, SideEffect, run_side_effects
from ...domain.entities import EmailTemplate, User
from ...domain.invariants import require_reason, validate_not_superadmin
from ...domain.ports.notifications import NotificationDispatch
from ...domain.ports.record_store import Collection, RecordStore

logger = logging.getLogger(__name__)

USER_UNBANNED = "user_unbanned"


async def unban_user(
    store: RecordStore,
    dispatch: NotificationDispatch,
    user: User,
    message: str | None,
) -> ActionOutcome[dict[str, Any]]:
    message = require_reason(message, field="Unban message")
    validate_not_superadmin(user, operation="unban")

    patch = {"is_banned": False, "banned_until": None, "ban_reason": None}
    await store.update(Collection.USERS, user.id, patch)
    logger.info("operation=unban action=update user_id=%s", user.id)

    async def notify_in_app() -> None:
        await dispatch.send_in_app(
            user.id,
            f"Your account ban has been lifted. Message from admin: {message}",
        )

    async def notify_email() -> None:
        await dispatch.send_email(
            EmailTemplate.UNBAN,
            {"to": user.email, "name": user.display_name, "reason": message},
        )

    async def notify_admins() -> None:
        await dispatch.broadcast_admin(
            USER_UNBANNED,
            f"User {user.first_name} {user.last_name} has been unbanned.",
        )

    warnings = await run_side_effects(
        [
            SideEffect("in_app_notification", notify_in_app),
            SideEffect("email", notify_email),
            SideEffect("admin_broadcast", notify_admins),
        ],
        operation="unban",
    )
    return ActionOutcome(result=patch, warnings=warnings)
