"""
Saga step constructors.
"""

from __future__ import annotations

from collections.abc import Callable, Awaitable
from kungfu import LazyCoroResult
from combinators import lift as L

from vitrine.saga._types import SagaStep, Compensator


def step[T, E](
    action: LazyCoroResult[T, E],
    compensate: Compensator[T] | None = None,
    *,
    name: str = "step",
) -> SagaStep[T, E]:
    """
    A compensated step.

        flip = S.step(
            L.call(lambda: toggle.flip()),
            compensate=lambda previous: toggle.restore(previous),
            name="flip",
        )
    """
    return SagaStep(action=action, compensate=compensate, name=name)


def from_async[T, E](
    action: Callable[[], Awaitable[T]],
    on_error: Callable[[Exception], E],
    compensate: Compensator[T] | None = None,
    *,
    name: str = "step",
) -> SagaStep[T, E]:
    """Step from a raising coroutine; on_error maps the exception."""
    return SagaStep(
        action=L.catching_async(action, on_error=on_error),
        compensate=compensate,
        name=name,
    )


__all__ = ("step", "from_async")
