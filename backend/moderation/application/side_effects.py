"""Best-effort follow-up work executed after a primary write has committed."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Generic, Sequence, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class SideEffect:
    name: str
    run: Callable[[], Awaitable[None]]


@dataclass(frozen=True)
class SideEffectWarning:
    effect: str
    error: str


@dataclass(frozen=True)
class ActionOutcome(Generic[T]):
    result: T
    warnings: list[SideEffectWarning] = field(default_factory=list)

    @property
    def clean(self) -> bool:
        return not self.warnings


async def run_side_effects(
    effects: Sequence[SideEffect], *, operation: str
) -> list[SideEffectWarning]:
    """Run ``effects`` in order; a failure is logged and recorded, never raised.

    Effects are independent: one failing does not stop the next. Nothing is
    retried.
    """
    warnings: list[SideEffectWarning] = []
    for effect in effects:
        try:
            await effect.run()
        except Exception as exc:  # noqa: BLE001
            logger.warning(
                "side_effect_failed operation=%s effect=%s error=%s",
                operation,
                effect.name,
                exc,
                exc_info=exc,
            )
            warnings.append(SideEffectWarning(effect=effect.name, error=str(exc)))
        else:
            logger.debug(
                "side_effect_sent operation=%s effect=%s", operation, effect.name
            )
    return warnings
