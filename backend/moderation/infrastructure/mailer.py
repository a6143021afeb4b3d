from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

import httpx

from ..domain.entities import EmailTemplate
from ..errors import SideEffectError

logger = logging.getLogger(__name__)


class HttpEmailSender:
    """Posts templated emails to the mail service.

    ``ban`` goes to ``{base_url}/send-ban-email`` and ``unban`` to
    ``{base_url}/send-unban-email``. One attempt per email; a
    transport or status failure is raised as ``SideEffectError``.
    """

    def __init__(
        self,
        *,
        base_url: str,
        api_key: str | None = None,
        timeout_seconds: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._timeout_seconds = timeout_seconds
        self._transport = transport
        self._headers = {"Content-Type": "application/json"}
        if api_key:
            self._headers["Authorization"] = f"Bearer {api_key}"

    def url_for(self, template: EmailTemplate) -> str:
        return f"{self._base_url}/send-{template.value}-email"

    async def send(self, template: EmailTemplate, payload: Mapping[str, Any]) -> None:
        url = self.url_for(template)
        try:
            async with httpx.AsyncClient(
                timeout=self._timeout_seconds,
                headers=self._headers,
                transport=self._transport,
            ) as client:
                response = await client.post(url, json=dict(payload))
                response.raise_for_status()
        except httpx.HTTPError as exc:
            raise SideEffectError(
                f"Failed to send {template.value} email",
                details={"template": template.value, "error": str(exc)},
            ) from exc
        logger.info("email_sent template=%s", template.value)


class UnconfiguredEmailSender:
    """Used when MAIL_API_URL is not set; every send fails as a warning."""

    async def send(self, template: EmailTemplate, payload: Mapping[str, Any]) -> None:
        raise SideEffectError(
            "Email delivery is not configured",
            details={"template": template.value},
        )
