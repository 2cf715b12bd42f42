"""
Saga execution with rollback in reverse order.
"""

from __future__ import annotations

import structlog
from kungfu import Result, Ok, Error

from vitrine.saga._types import (
    SagaStep,
    SagaResult,
    SagaError,
    Then,
    Compensator,
)

log = structlog.get_logger(__name__)

type Recorded[T] = tuple[str, T, Compensator[T]]

# ═══════════════════════════════════════════════════════════════════════════════
# Internals
# ═══════════════════════════════════════════════════════════════════════════════


async def run_step[T, E](
    step: SagaStep[T, E],
    compensators: list[Recorded[T]],
) -> Result[T, E]:
    """Execute one step, recording its compensator on success."""
    match await step.action:
        case Ok(value):
            if step.compensate is not None:
                compensators.append((step.name, value, step.compensate))
            return Ok(value)
        case Error(e):
            log.info("saga.step_failed", step=step.name, error=str(e))
            return Error(e)


async def run_compensators(compensators: list[Recorded[object]]) -> tuple[int, int]:
    """Reverse order. Returns (run, failed); a failing compensator does not stop the rest."""
    comp_run = 0
    comp_failed = 0

    for name, value, comp in reversed(compensators):
        try:
            await comp(value)
            comp_run += 1
        except Exception:
            comp_failed += 1
            log.exception("saga.compensation_failed", step=name)

    return comp_run, comp_failed


def _failed[E](error: E, step_failed: int, comp_run: int, comp_failed: int) -> Error[SagaError[E]]:
    return Error(SagaError(
        error=error,
        step_failed=step_failed,
        compensators_run=comp_run,
        compensators_failed=comp_failed,
        rollback_complete=comp_failed == 0,
    ))


# ═══════════════════════════════════════════════════════════════════════════════
# run() / run_chain()
# ═══════════════════════════════════════════════════════════════════════════════


async def run[T, E](saga: SagaStep[T, E]) -> Result[SagaResult[T], SagaError[E]]:
    """Single step. On failure nothing was recorded, so nothing is undone."""
    compensators: list[Recorded[T]] = []

    match await run_step(saga, compensators):
        case Ok(value):
            return Ok(SagaResult(
                value=value,
                steps_executed=1,
                compensators_recorded=len(compensators),
            ))
        case Error(error):
            comp_run, comp_failed = await run_compensators(compensators)
            return _failed(error, 1, comp_run, comp_failed)


async def run_chain[T, U, E, E2](
    chain: Then[T, U, E, E2],
) -> Result[SagaResult[U], SagaError[E | E2]]:
    """
    Two chained steps.

        toggle = (
            S.step(flip_local, compensate=restore_local, name="local")
            .then(lambda _: S.step(remote_call, name="remote"))
        )
        match await S.run_chain(toggle):
            case Error(e):
                e.rollback_complete  # local state restored
    """
    recorded: list[Recorded[object]] = []

    match await run_step(chain.inner, recorded):
        case Ok(value):
            pass
        case Error(e):
            comp_run, comp_failed = await run_compensators(recorded)
            return _failed(e, 1, comp_run, comp_failed)

    match await run_step(chain.f(value), recorded):
        case Ok(final_value):
            return Ok(SagaResult(
                value=final_value,
                steps_executed=2,
                compensators_recorded=len(recorded),
            ))
        case Error(e2):
            comp_run, comp_failed = await run_compensators(recorded)
            return _failed(e2, 2, comp_run, comp_failed)


__all__ = ("run", "run_chain")
