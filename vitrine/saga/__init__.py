"""
Saga — actions with compensation.

    from vitrine import saga as S

    like = (
        S.step(flip_local, compensate=restore_local, name="local")
        .then(lambda previous: S.step(send_like(previous), name="remote"))
    )
    result = await S.run_chain(like)
"""

from __future__ import annotations

from vitrine.saga._types import (
    Compensator,
    SagaStep,
    SagaResult,
    SagaError,
    Then,
)
from vitrine.saga._step import step, from_async
from vitrine.saga._run import run, run_chain

__all__ = (
    "Compensator",
    "SagaStep",
    "SagaResult",
    "SagaError",
    "Then",
    "step",
    "from_async",
    "run",
    "run_chain",
)
