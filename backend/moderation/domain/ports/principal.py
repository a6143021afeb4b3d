from __future__ import annotations

from typing import Protocol

from ..entities import Principal


class PrincipalProvider(Protocol):
    async def current_principal(self) -> Principal | None:
        ...
