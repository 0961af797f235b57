"""
Saga — sequential steps with compensation.

    from orderflow import saga as S

    saga = S.step(action, compensate).then(lambda v: S.step(action2, compensate2))
    result = await S.run_chain(saga)
"""

from orderflow.saga._types import (
    Compensator,
    SagaStep,
    SagaResult,
    SagaError,
    Then,
)
from orderflow.saga._step import step
from orderflow.saga._run import run, run_chain

__all__ = (
    "Compensator",
    "SagaStep",
    "SagaResult",
    "SagaError",
    "Then",
    "step",
    "run",
    "run_chain",
)
