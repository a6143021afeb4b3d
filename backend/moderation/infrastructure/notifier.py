from __future__ import annotations

import logging
from typing import Any, Mapping

from ..domain.entities import EmailTemplate
from ..domain.ports.notifications import EmailSender
from ..domain.ports.record_store import Collection, RecordStore
from ..errors import SideEffectError, StoreWriteError

logger = logging.getLogger(__name__)


class StoreNotificationDispatch:
    """Delivers in-app and admin messages as store records, email via ``mailer``."""

    def __init__(self, store: RecordStore, mailer: EmailSender) -> None:
        self._store = store
        self._mailer = mailer

    async def send_in_app(self, user_id: str, message: str) -> None:
        try:
            await self._store.insert(
                Collection.NOTIFICATIONS,
                {"user_id": user_id, "message": message, "emergency_report_id": None},
            )
        except StoreWriteError as exc:
            raise SideEffectError(
                "Failed to deliver in-app notification",
                details={"user_id": user_id},
            ) from exc
        logger.info("notification_sent user_id=%s", user_id)

    async def send_email(self, template: EmailTemplate, payload: Mapping[str, Any]) -> None:
        await self._mailer.send(template, payload)

    async def broadcast_admin(self, kind: str, message: str) -> None:
        try:
            await self._store.insert(
                Collection.ADMIN_NOTIFICATIONS, {"type": kind, "message": message}
            )
        except StoreWriteError as exc:
            raise SideEffectError(
                "Failed to broadcast admin notification", details={"type": kind}
            ) from exc
        logger.info("admin_broadcast_sent type=%s", kind)
