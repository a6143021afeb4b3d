from __future__ import annotations

from typing import Any, Mapping, Protocol

from ..entities import EmailTemplate


class NotificationDispatch(Protocol):
    async def send_in_app(self, user_id: str, message: str) -> None:
        ...

    async def send_email(self, template: EmailTemplate, payload: Mapping[str, Any]) -> None:
        ...

    async def broadcast_admin(self, kind: str, message: str) -> None:
        ...


class EmailSender(Protocol):
    async def send(self, template: EmailTemplate, payload: Mapping[str, Any]) -> None:
        ...
