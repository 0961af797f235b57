"""
Saga step creation.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable

from kungfu import Result

from orderflow import lift as L
from orderflow.saga._types import SagaStep, Compensator


def step[T, E](
    action: Callable[[], Awaitable[Result[T, E]]],
    compensate: Compensator[T] | None = None,
    *,
    name: str = "step",
) -> SagaStep[T, E]:
    """
    Create a compensated saga step from an async function returning Result.

    Example:
        from orderflow import saga as S

        place = S.step(
            lambda: engine.create_order(customer_id, lines),
            compensate=release_order,
            name="create_order",
        ).then(lambda view: S.step(
            lambda: engine.confirm_order(view.id, key),
            name="confirm_order",
        ))
    """
    return SagaStep(action=L.from_result_async(action), compensate=compensate, name=name)


__all__ = ("step",)
