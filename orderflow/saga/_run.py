"""
Saga execution with automatic rollback.
"""

from __future__ import annotations

import structlog
from kungfu import Result, Ok, Error

from orderflow.saga._types import (
    SagaStep,
    SagaResult,
    SagaError,
    Then,
    Compensator,
)

logger = structlog.get_logger(__name__)

# ═══════════════════════════════════════════════════════════════════════════════
# Recorded Compensator
# ═══════════════════════════════════════════════════════════════════════════════

type RecordedCompensator[T] = tuple[str, T, Compensator[T]]

# ═══════════════════════════════════════════════════════════════════════════════
# run_step() — Execute single step
# ═══════════════════════════════════════════════════════════════════════════════


async def run_step[T, E](
    step: SagaStep[T, E],
    compensators: list[RecordedCompensator[T]],
) -> Result[T, E]:
    """Execute single step, recording compensator on success."""
    result = await step.action
    match result:
        case Ok(value):
            if step.compensate is not None:
                compensators.append((step.name, value, step.compensate))
            return Ok(value)
        case Error(e):
            logger.info("saga_step_failed", step=step.name, error=str(e))
            return Error(e)


# ═══════════════════════════════════════════════════════════════════════════════
# run_compensators() — Rollback
# ═══════════════════════════════════════════════════════════════════════════════


async def run_compensators[T](
    compensators: list[RecordedCompensator[T]],
) -> tuple[int, int]:
    """
    Run compensators in reverse. Returns (run, failed).

    Note: A failing compensator is logged and counted; the remaining ones
    still run.
    """
    comp_run = 0
    comp_failed = 0

    for name, value, comp in reversed(compensators):
        try:
            await comp(value)
            comp_run += 1
        except Exception:
            logger.exception("saga_compensation_failed", step=name)
            comp_failed += 1

    return comp_run, comp_failed


def _saga_error[E](error: E, step_failed: int, comp_run: int, comp_failed: int) -> SagaError[E]:
    return SagaError(
        error=error,
        step_failed=step_failed,
        compensators_run=comp_run,
        compensators_failed=comp_failed,
        rollback_complete=comp_failed == 0,
    )


# ═══════════════════════════════════════════════════════════════════════════════
# run() — Execute Saga Step
# ═══════════════════════════════════════════════════════════════════════════════


async def run[T, E](
    saga: SagaStep[T, E],
) -> Result[SagaResult[T], SagaError[E]]:
    """
    Execute a single saga step.

    A lone step has nothing earlier to roll back, so its own compensator is
    only recorded.
    """
    compensators: list[RecordedCompensator[T]] = []

    match await run_step(saga, compensators):
        case Ok(value):
            return Ok(SagaResult(
                value=value,
                steps_executed=1,
                compensators_recorded=len(compensators),
            ))
        case Error(error):
            return Error(_saga_error(error, 1, 0, 0))


# ═══════════════════════════════════════════════════════════════════════════════
# run_chain() — Execute Then chain
# ═══════════════════════════════════════════════════════════════════════════════


async def run_chain[T, U, E, E2](
    chain: Then[T, U, E, E2],
) -> Result[SagaResult[U], SagaError[E | E2]]:
    """
    Execute chained saga steps.

    Runs the inner step, builds the next step from its value and runs that.
    If the second step fails, the first step's compensator runs. A second
    step that raises is compensated the same way and the exception is then
    re-raised.

    Example:
        match await S.run_chain(place):
            case Ok(r):
                r.value               # the second step's value
            case Error(e):
                e.error               # the failing step's error
                e.rollback_complete   # False if a compensator raised
    """
    compensators_t: list[RecordedCompensator[T]] = []
    compensators_u: list[RecordedCompensator[U]] = []

    match await run_step(chain.inner, compensators_t):
        case Error(e):
            return Error(_saga_error(e, 1, 0, 0))
        case Ok(value):
            pass

    try:
        next_step = chain.f(value)
        second = await run_step(next_step, compensators_u)
    except Exception:
        logger.warning("saga_step_raised", step_failed=2)
        await run_compensators(compensators_t)
        raise

    match second:
        case Ok(final_value):
            return Ok(SagaResult(
                value=final_value,
                steps_executed=2,
                compensators_recorded=len(compensators_t) + len(compensators_u),
            ))
        case Error(e2):
            comp_run, comp_failed = await run_compensators(compensators_t)
            return Error(_saga_error(e2, 2, comp_run, comp_failed))


__all__ = ("run", "run_chain", "run_step", "run_compensators")
