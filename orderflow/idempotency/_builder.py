"""
Idempotency builder — fluent API over graph.
"""

from __future__ import annotations

from contextlib import nullcontext
from dataclasses import dataclass
from collections.abc import Callable
from typing import Any

from kungfu import LazyCoroResult, Result

from orderflow.idempotency._types import (
    IdempotencyTarget,
    IdempotencyResult,
    IdempotencyError,
)
from orderflow.idempotency._store import Ledger
from orderflow.idempotency._policy import Policy
from orderflow.idempotency._graph import (
    IdempotencySpec,
    Operation,
    UnitFactory,
    run_idempotent,
)


# ═══════════════════════════════════════════════════════════════════════════════
# Extraction Function Types
# ═══════════════════════════════════════════════════════════════════════════════

type KeyFn[K] = Callable[[K], str]
type TargetFn[K] = Callable[[K], IdempotencyTarget]


def _no_unit() -> nullcontext[None]:
    return nullcontext()


# ═══════════════════════════════════════════════════════════════════════════════
# Idempotent Builder
# ═══════════════════════════════════════════════════════════════════════════════

@dataclass(slots=True, frozen=True)
class Idempotent[K]:
    """
    Fluent idempotency builder.
    """
    _operation: Operation
    _key_fn: KeyFn[K] | None
    _target_fn: TargetFn[K] | None
    _ledger: Ledger | None
    _unit: UnitFactory
    _policy: Policy

    def key(self, fn: KeyFn[K]) -> Idempotent[K]:
        """Set key extraction function."""
        return Idempotent(
            _operation=self._operation,
            _key_fn=fn,
            _target_fn=self._target_fn,
            _ledger=self._ledger,
            _unit=self._unit,
            _policy=self._policy,
        )

    def target(self, fn: TargetFn[K]) -> Idempotent[K]:
        """Set which entity the key is bound to."""
        return Idempotent(
            _operation=self._operation,
            _key_fn=self._key_fn,
            _target_fn=fn,
            _ledger=self._ledger,
            _unit=self._unit,
            _policy=self._policy,
        )

    def ledger(self, ledger: Ledger) -> Idempotent[K]:
        """Set storage backend."""
        return Idempotent(
            _operation=self._operation,
            _key_fn=self._key_fn,
            _target_fn=self._target_fn,
            _ledger=ledger,
            _unit=self._unit,
            _policy=self._policy,
        )

    def unit(self, factory: UnitFactory) -> Idempotent[K]:
        """Set the atomic unit shared by the operation and the COMPLETED write."""
        return Idempotent(
            _operation=self._operation,
            _key_fn=self._key_fn,
            _target_fn=self._target_fn,
            _ledger=self._ledger,
            _unit=factory,
            _policy=self._policy,
        )

    def policy(self, p: Policy) -> Idempotent[K]:
        """Set idempotency policy."""
        return Idempotent(
            _operation=self._operation,
            _key_fn=self._key_fn,
            _target_fn=self._target_fn,
            _ledger=self._ledger,
            _unit=self._unit,
            _policy=p,
        )

    def build(self) -> IdempotentExecutor[K]:
        """Build executable."""
        if self._key_fn is None:
            raise ValueError("key() is required")
        if self._target_fn is None:
            raise ValueError("target() is required")
        if self._ledger is None:
            raise ValueError("ledger() is required")

        return IdempotentExecutor(
            operation=self._operation,
            key_fn=self._key_fn,
            target_fn=self._target_fn,
            ledger=self._ledger,
            unit=self._unit,
            policy=self._policy,
        )


# ═══════════════════════════════════════════════════════════════════════════════
# Idempotent Executor
# ═══════════════════════════════════════════════════════════════════════════════

@dataclass(slots=True, frozen=True)
class IdempotentExecutor[K]:
    """
    Compiled idempotent executor.

    Note: Thin wrapper — creates IdempotencySpec and runs graph.
    """
    operation: Operation
    key_fn: KeyFn[K]
    target_fn: TargetFn[K]
    ledger: Ledger
    unit: UnitFactory
    policy: Policy

    def run(self, input_val: K) -> LazyCoroResult[IdempotencyResult, IdempotencyError]:
        """Execute with idempotency via graph."""
        spec = IdempotencySpec(
            key=self.key_fn(input_val),
            target=self.target_fn(input_val),
            input_value=input_val,
            operation=self.operation,
            ledger=self.ledger,
            unit=self.unit,
            policy=self.policy,
        )

        async def execute() -> Result[IdempotencyResult, IdempotencyError]:
            return await run_idempotent(spec)

        return LazyCoroResult(execute)


# ═══════════════════════════════════════════════════════════════════════════════
# idempotent() — Entry Point
# ═══════════════════════════════════════════════════════════════════════════════

def idempotent[K](operation: Callable[[K, Any], Any]) -> Idempotent[K]:
    """
    Create idempotent wrapper for an operation.

    Example:
        executor = (
            I.idempotent(confirm_in_unit)
            .key(lambda req: req.key)
            .target(lambda req: I.IdempotencyTarget(I.ORDER_CONFIRMATION, req.order_id))
            .ledger(ledger)
            .unit(db.unit)
            .policy(I.Policy().with_ttl(hours=24))
            .build()
        )

        result = await executor.run(request)
    """
    return Idempotent(
        _operation=operation,
        _key_fn=None,
        _target_fn=None,
        _ledger=None,
        _unit=_no_unit,
        _policy=Policy(),
    )


__all__ = (
    "Idempotent",
    "IdempotentExecutor",
    "idempotent",
)
