import logging
from typing import Any

from ...domain.entities import User, UserType
from ...domain.invariants import validate_grantable_role, validate_not_superadmin
from ...domain.ports.record_store import Collection, RecordStore

logger = logging.getLogger(__name__)


async def change_role(
    store: RecordStore, user: User, new_role: UserType | str
) -> dict[str, Any]:
    role = validate_grantable_role(new_role)
    validate_not_superadmin(user, operation="change the role of")

    patch = {"user_type": role.value}
    await store.update(Collection.USERS, user.id, patch)
    logger.info(
        "operation=role-change action=update user_id=%s from=%s to=%s",
        user.id,
        getattr(user.user_type, "value", user.user_type),
        role.value,
    )
    return patch
