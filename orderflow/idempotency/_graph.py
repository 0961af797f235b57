"""
Idempotency graph — the key state machine as nodnod nodes.

No if/else ladder. Each record state is a node that validates or raises
NodeError; a polymorphic node routes on whichever one validated.

Architecture:
    IdempotencySpec (injected)
         │
         ▼
    SpecNode
         │
         ▼
    FetchRecordNode
         │
         ├── StoreErrorNode ─────────┐
         ├── TargetMismatchNode ─────┤
         ├── CompletedRecordNode ────┤
         ├── PendingRecordNode ──────┼── IdempotencyOutcome (@polymorphic)
         ├── FailedRecordNode ───────┤             │
         └── NoRecordNode ───────────┘             ▼
                                            FinalResultNode

Note: No 'from __future__ import annotations' here; nodnod reads the
type hints at runtime for dependency resolution.
"""

from contextlib import AbstractAsyncContextManager
from dataclasses import dataclass
from collections.abc import Callable, Awaitable
from typing import Any

import structlog
from nodnod import NodeError, polymorphic, case

from kungfu import Result, Ok, Error

from orderflow import graph as G
from orderflow.idempotency._types import (
    RecordState,
    IdempotencyRecord,
    IdempotencyTarget,
    IdempotencyResult,
    IdempotencyError,
    IdempotencyErrorKind,
)
from orderflow.idempotency._store import Ledger, StoreError
from orderflow.idempotency._policy import Policy

logger = structlog.get_logger(__name__)


type UnitFactory = Callable[[], AbstractAsyncContextManager[Any]]
"""Opens the atomic unit the operation and the COMPLETED write share."""

type Operation = Callable[[Any, Any], Awaitable[Result[str, Any]]]
"""(input_value, unit) → Ok(serialized response) | Error(domain error)."""


# ═══════════════════════════════════════════════════════════════════════════════
# Input — Spec (injected)
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True)
class IdempotencySpec:
    """
    Everything one idempotent execution needs.

    operation runs inside unit(); on Ok the ledger record is completed in the
    same unit, so the business effect and the cached body commit together.
    On Error (or an exception) the unit rolls back and the record is marked
    FAILED in a separate write.
    """

    key: str
    target: IdempotencyTarget
    input_value: Any
    operation: Operation
    ledger: Ledger
    unit: UnitFactory
    policy: Policy


# ═══════════════════════════════════════════════════════════════════════════════
# Entry Node
# ═══════════════════════════════════════════════════════════════════════════════


@G.node
class SpecNode:
    """Wraps IdempotencySpec for graph."""

    def __init__(self, spec: IdempotencySpec) -> None:
        self.spec = spec

    @classmethod
    def __compose__(cls, spec: IdempotencySpec) -> "SpecNode":
        return cls(spec)


# ═══════════════════════════════════════════════════════════════════════════════
# Fetch Record
# ═══════════════════════════════════════════════════════════════════════════════


@G.node
class FetchRecordNode:
    """Fetches existing record from the ledger."""

    def __init__(
        self,
        record: IdempotencyRecord | None,
        spec: IdempotencySpec,
        store_error: StoreError | None = None,
    ) -> None:
        self.record = record
        self.spec = spec
        self.store_error = store_error

    @classmethod
    async def __compose__(cls, spec_node: SpecNode) -> "FetchRecordNode":
        spec = spec_node.spec
        result = await spec.ledger.get(spec.key)

        match result:
            case Ok(record):
                return cls(record, spec)
            case Error(err):
                return cls(None, spec, store_error=err)


# ═══════════════════════════════════════════════════════════════════════════════
# State Nodes — exactly one validates for any fetch
# ═══════════════════════════════════════════════════════════════════════════════


def _matching_record(fetch: FetchRecordNode, state: RecordState) -> IdempotencyRecord:
    record = fetch.record
    if record is None:
        raise NodeError("No record")
    if record.target != fetch.spec.target:
        raise NodeError("Target mismatch")
    if record.state != state:
        raise NodeError(f"Not {state.value}")
    return record


@G.node
class StoreErrorNode:
    """Validates: ledger returned error."""

    def __init__(self, error: StoreError, spec: IdempotencySpec) -> None:
        self.error = error
        self.spec = spec

    @classmethod
    def __compose__(cls, fetch: FetchRecordNode) -> "StoreErrorNode":
        if fetch.store_error is None:
            raise NodeError("No store error")
        return cls(fetch.store_error, fetch.spec)


@G.node
class TargetMismatchNode:
    """Validates: record exists but is bound to another target."""

    def __init__(self, record: IdempotencyRecord, spec: IdempotencySpec) -> None:
        self.record = record
        self.spec = spec

    @classmethod
    def __compose__(cls, fetch: FetchRecordNode) -> "TargetMismatchNode":
        record = fetch.record
        if record is None:
            raise NodeError("No record")
        if record.target == fetch.spec.target:
            raise NodeError("Target matches")
        return cls(record, fetch.spec)


@G.node
class CompletedRecordNode:
    """Validates: record exists, same target, COMPLETED."""

    def __init__(self, record: IdempotencyRecord, spec: IdempotencySpec) -> None:
        self.record = record
        self.spec = spec

    @classmethod
    def __compose__(cls, fetch: FetchRecordNode) -> "CompletedRecordNode":
        return cls(_matching_record(fetch, RecordState.COMPLETED), fetch.spec)


@G.node
class PendingRecordNode:
    """Validates: record exists, same target, PROCESSING."""

    def __init__(self, record: IdempotencyRecord, spec: IdempotencySpec) -> None:
        self.record = record
        self.spec = spec

    @classmethod
    def __compose__(cls, fetch: FetchRecordNode) -> "PendingRecordNode":
        return cls(_matching_record(fetch, RecordState.PROCESSING), fetch.spec)


@G.node
class FailedRecordNode:
    """Validates: record exists, same target, FAILED."""

    def __init__(self, record: IdempotencyRecord, spec: IdempotencySpec) -> None:
        self.record = record
        self.spec = spec

    @classmethod
    def __compose__(cls, fetch: FetchRecordNode) -> "FailedRecordNode":
        return cls(_matching_record(fetch, RecordState.FAILED), fetch.spec)


@G.node
class NoRecordNode:
    """Validates: no record for the key."""

    def __init__(self, spec: IdempotencySpec) -> None:
        self.spec = spec

    @classmethod
    def __compose__(cls, fetch: FetchRecordNode) -> "NoRecordNode":
        if fetch.store_error is not None:
            raise NodeError("Store error")
        if fetch.record is not None:
            raise NodeError("Record exists")
        return cls(fetch.spec)


# ═══════════════════════════════════════════════════════════════════════════════
# Outcome Types
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True)
class OutcomeOk:
    """Successful outcome."""

    value: str
    from_cache: bool
    key: str


@dataclass(frozen=True)
class OutcomeError:
    """Error outcome."""

    kind: IdempotencyErrorKind
    message: str
    original_error: Any | None


type Outcome = OutcomeOk | OutcomeError


def _store_failure(err: StoreError) -> OutcomeError:
    return OutcomeError(
        kind=IdempotencyErrorKind.STORE_ERROR,
        message=err.message,
        original_error=err.cause,
    )


def _conflict(key: str) -> OutcomeError:
    return OutcomeError(
        kind=IdempotencyErrorKind.CONFLICT,
        message=f"Idempotency key in progress: {key}",
        original_error=None,
    )


# ═══════════════════════════════════════════════════════════════════════════════
# Execution — operation + COMPLETED write in one unit
# ═══════════════════════════════════════════════════════════════════════════════


class _OperationFailed(Exception):
    """Unwinds the unit when the operation returns Error."""

    def __init__(self, error: Any) -> None:
        super().__init__(str(error))
        self.error = error


class _CompleteFailed(Exception):
    """Unwinds the unit when the COMPLETED write fails."""

    def __init__(self, error: StoreError) -> None:
        super().__init__(error.message)
        self.error = error


async def _mark_failed(spec: IdempotencySpec, reason: str) -> None:
    result = await spec.ledger.fail(spec.key, reason)
    match result:
        case Error(err):
            logger.error(
                "idempotency_fail_write_failed",
                key=spec.key,
                reason=reason,
                store_error=err.message,
            )
        case Ok(_):
            logger.info("idempotency_key_failed", key=spec.key, reason=reason)


async def _execute(spec: IdempotencySpec) -> Outcome:
    """Run the operation while this request owns the PROCESSING record."""
    try:
        async with spec.unit() as unit:
            result = await spec.operation(spec.input_value, unit)
            match result:
                case Ok(value):
                    stored = await spec.ledger.complete(spec.key, value, unit=unit)
                    match stored:
                        case Error(err):
                            raise _CompleteFailed(err)
                        case Ok(_):
                            pass
                case Error(err):
                    raise _OperationFailed(err)

    except _OperationFailed as e:
        await _mark_failed(spec, str(e.error))
        return OutcomeError(
            kind=IdempotencyErrorKind.EXECUTION,
            message="Operation returned Error",
            original_error=e.error,
        )
    except _CompleteFailed as e:
        await _mark_failed(spec, e.error.message)
        return _store_failure(e.error)
    except Exception as e:
        await _mark_failed(spec, repr(e))
        return OutcomeError(
            kind=IdempotencyErrorKind.EXECUTION,
            message=str(e),
            original_error=e,
        )

    return OutcomeOk(value=value, from_cache=False, key=spec.key)


# ═══════════════════════════════════════════════════════════════════════════════
# Polymorphic Outcome — Each case uses validated state nodes
# ═══════════════════════════════════════════════════════════════════════════════


@polymorphic[Outcome]
class IdempotencyOutcome:
    """
    Polymorphic router — each @case depends on a validated state node.

    Note: Checks already happened in the state nodes; only logic here.
    """

    @case
    def store_error(cls, node: StoreErrorNode) -> Outcome:
        """STORE_ERROR — ledger read failed."""
        return _store_failure(node.error)

    @case
    def target_mismatch(cls, node: TargetMismatchNode) -> Outcome:
        """INPUT_MISMATCH — key already used for another target."""
        return OutcomeError(
            kind=IdempotencyErrorKind.INPUT_MISMATCH,
            message=(
                f"Key {node.spec.key} is bound to {node.record.target.fingerprint}, "
                f"not {node.spec.target.fingerprint}"
            ),
            original_error=None,
        )

    @case
    def cached_completed(cls, node: CompletedRecordNode) -> Outcome:
        """Replay cached COMPLETED body verbatim."""
        if node.record.value is None:
            raise NodeError("Completed without body")
        return OutcomeOk(
            value=node.record.value,
            from_cache=True,
            key=node.spec.key,
        )

    @case
    def pending_conflict(cls, node: PendingRecordNode) -> Outcome:
        """CONFLICT — another request owns the key."""
        return _conflict(node.spec.key)

    @case
    def failed_blocked(cls, node: FailedRecordNode) -> Outcome:
        """KEY_FAILED — a failed key is not re-attempted."""
        if node.spec.policy.retry_failed:
            raise NodeError("Policy allows retry")
        return OutcomeError(
            kind=IdempotencyErrorKind.KEY_FAILED,
            message=f"Idempotency key previously failed: {node.spec.key}",
            original_error=node.record.error,
        )

    @case
    async def failed_retry(cls, node: FailedRecordNode) -> Outcome:
        """Re-open a FAILED key and execute again."""
        spec = node.spec
        if not spec.policy.retry_failed:
            raise NodeError("Policy forbids retry")

        reopened = await spec.ledger.reopen(spec.key)
        match reopened:
            case Error(err):
                return _store_failure(err)
            case Ok(False):
                return _conflict(spec.key)
            case Ok(_):
                return await _execute(spec)

    @case
    async def execute_new(cls, node: NoRecordNode) -> Outcome:
        """Acquire the key and execute."""
        spec = node.spec

        acquired = await spec.ledger.acquire(spec.key, spec.target, spec.policy.record_ttl)
        match acquired:
            case Error(err):
                return _store_failure(err)
            case Ok(True):
                return await _execute(spec)
            case Ok(_):
                pass

        # Lost the insert race; replay if the winner already finished
        current = await spec.ledger.get(spec.key)
        match current:
            case Ok(rec) if (
                rec is not None
                and rec.state == RecordState.COMPLETED
                and rec.target == spec.target
                and rec.value is not None
            ):
                return OutcomeOk(value=rec.value, from_cache=True, key=spec.key)
            case Error(err):
                return _store_failure(err)
            case _:
                return _conflict(spec.key)


# ═══════════════════════════════════════════════════════════════════════════════
# Final Node
# ═══════════════════════════════════════════════════════════════════════════════


@G.node
class FinalResultNode:
    """Converts Outcome to typed Result."""

    def __init__(self, outcome: Outcome) -> None:
        self.outcome = outcome

    @classmethod
    def __compose__(cls, outcome: IdempotencyOutcome) -> "FinalResultNode":
        return cls(outcome.value)

    def to_result(self) -> Result[IdempotencyResult, IdempotencyError]:
        match self.outcome:
            case OutcomeOk(value=v, from_cache=fc, key=k):
                return Ok(IdempotencyResult(value=v, from_cache=fc, key=k))
            case OutcomeError(kind=kind, message=msg, original_error=orig):
                return Error(
                    IdempotencyError(kind=kind, message=msg, original_error=orig)
                )


# ═══════════════════════════════════════════════════════════════════════════════
# Public API
# ═══════════════════════════════════════════════════════════════════════════════


async def run_idempotent(
    spec: IdempotencySpec,
) -> Result[IdempotencyResult, IdempotencyError]:
    """Execute idempotent operation via graph."""
    node = await G.run(FinalResultNode).inject(spec)
    return node.to_result()


# ═══════════════════════════════════════════════════════════════════════════════
# Exports
# ═══════════════════════════════════════════════════════════════════════════════

__all__ = (
    "IdempotencySpec",
    "UnitFactory",
    "Operation",
    "Outcome",
    "OutcomeOk",
    "OutcomeError",
    "SpecNode",
    "FetchRecordNode",
    "StoreErrorNode",
    "TargetMismatchNode",
    "CompletedRecordNode",
    "PendingRecordNode",
    "FailedRecordNode",
    "NoRecordNode",
    "IdempotencyOutcome",
    "FinalResultNode",
    "run_idempotent",
)
