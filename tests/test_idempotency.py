"""The key state machine, run over MemoryLedger without a database."""

from __future__ import annotations

from datetime import timedelta
from typing import Any

import pytest
from kungfu import Result, Ok, Error

from orderflow import idempotency as I
from tests.helpers import err, ok

TARGET = I.IdempotencyTarget(I.ORDER_CONFIRMATION, 42)


class Recorder:
    """Operation that records its calls and answers from a script."""

    def __init__(self, *answers: Any) -> None:
        self.answers = list(answers)
        self.calls = 0

    async def __call__(self, request: dict[str, Any], unit: Any) -> Result[str, str]:
        self.calls += 1
        answer = self.answers.pop(0)
        if isinstance(answer, Exception):
            raise answer
        return answer


def _executor(
    op: Recorder,
    ledger: I.Ledger,
    policy: I.Policy | None = None,
) -> I.IdempotentExecutor[dict[str, Any]]:
    return (
        I.idempotent(op)
        .key(lambda req: req["key"])
        .target(lambda req: I.IdempotencyTarget(I.ORDER_CONFIRMATION, req["order_id"]))
        .ledger(ledger)
        .policy(policy if policy is not None else I.Policy())
        .build()
    )


async def test_executes_once_then_replays() -> None:
    ledger = I.MemoryLedger()
    op = Recorder(Ok('{"id":42}'))
    executor = _executor(op, ledger)

    first = ok(await executor.run({"key": "k", "order_id": 42}))
    second = ok(await executor.run({"key": "k", "order_id": 42}))

    assert (first.value, first.from_cache) == ('{"id":42}', False)
    assert (second.value, second.from_cache) == ('{"id":42}', True)
    assert op.calls == 1
    record = ok(await ledger.get("k"))
    assert record is not None and record.is_completed


async def test_operation_error_marks_key_failed() -> None:
    ledger = I.MemoryLedger()
    op = Recorder(Error("not confirmable"), Ok("unused"))
    executor = _executor(op, ledger)

    failure = err(await executor.run({"key": "k", "order_id": 42}))
    blocked = err(await executor.run({"key": "k", "order_id": 42}))

    assert failure.kind is I.IdempotencyErrorKind.EXECUTION
    assert failure.original_error == "not confirmable"
    assert blocked.kind is I.IdempotencyErrorKind.KEY_FAILED
    assert op.calls == 1
    record = ok(await ledger.get("k"))
    assert record is not None and record.is_failed
    assert record.error == "not confirmable"


async def test_exception_marks_key_failed_and_is_carried() -> None:
    ledger = I.MemoryLedger()
    boom = RuntimeError("disk full")
    executor = _executor(Recorder(boom), ledger)

    failure = err(await executor.run({"key": "k", "order_id": 42}))

    assert failure.kind is I.IdempotencyErrorKind.EXECUTION
    assert failure.original_error is boom
    record = ok(await ledger.get("k"))
    assert record is not None and record.is_failed


async def test_retry_failed_policy_reexecutes() -> None:
    ledger = I.MemoryLedger()
    op = Recorder(Error("transient"), Ok("done"))
    executor = _executor(op, ledger, I.Policy().with_retry_failed())

    err(await executor.run({"key": "k", "order_id": 42}))
    result = ok(await executor.run({"key": "k", "order_id": 42}))

    assert result.value == "done"
    assert result.from_cache is False
    assert op.calls == 2


async def test_processing_key_conflicts() -> None:
    ledger = I.MemoryLedger()
    ok(await ledger.acquire("k", TARGET, timedelta(hours=1)))
    op = Recorder(Ok("unused"))

    failure = err(await _executor(op, ledger).run({"key": "k", "order_id": 42}))

    assert failure.kind is I.IdempotencyErrorKind.CONFLICT
    assert op.calls == 0


async def test_key_bound_to_another_target_is_mismatch() -> None:
    ledger = I.MemoryLedger()
    op = Recorder(Ok("order 42"), Ok("unused"))
    executor = _executor(op, ledger)
    ok(await executor.run({"key": "k", "order_id": 42}))

    failure = err(await executor.run({"key": "k", "order_id": 43}))

    assert failure.kind is I.IdempotencyErrorKind.INPUT_MISMATCH
    assert op.calls == 1


async def test_operation_receives_the_unit() -> None:
    seen: list[Any] = []

    class Unit:
        async def __aenter__(self) -> str:
            return "session"

        async def __aexit__(self, *exc: object) -> None:
            return None

    async def op(request: dict[str, Any], unit: Any) -> Result[str, str]:
        seen.append(unit)
        return Ok("done")

    executor = (
        I.idempotent(op)
        .key(lambda req: req["key"])
        .target(lambda req: TARGET)
        .ledger(I.MemoryLedger())
        .unit(Unit)
        .build()
    )
    ok(await executor.run({"key": "k"}))

    assert seen == ["session"]


def test_builder_requires_key_target_and_ledger() -> None:
    builder = I.idempotent(Recorder())
    with pytest.raises(ValueError, match="key"):
        builder.build()
    with pytest.raises(ValueError, match="target"):
        builder.key(lambda req: "k").build()
    with pytest.raises(ValueError, match="ledger"):
        builder.key(lambda req: "k").target(lambda req: TARGET).build()


def test_policy_ttl_must_be_positive() -> None:
    with pytest.raises(ValueError):
        I.Policy().with_ttl(seconds=0)
    assert I.Policy().with_ttl(hours=2).record_ttl == timedelta(hours=2)
    assert I.Policy().with_retry_failed().retry_failed is True


def test_target_fingerprint() -> None:
    assert TARGET.fingerprint == "ORDER_CONFIRMATION:42"


async def test_memory_ledger_transitions_only_from_processing() -> None:
    ledger = I.MemoryLedger()

    assert "No PROCESSING record" in err(await ledger.complete("k", "body")).message

    assert ok(await ledger.acquire("k", TARGET, timedelta(hours=1))) is True
    ok(await ledger.complete("k", "body"))

    assert "No PROCESSING record" in err(await ledger.fail("k", "late")).message
    assert "No PROCESSING record" in err(await ledger.complete("k", "other")).message
    record = ok(await ledger.get("k"))
    assert record is not None and record.is_completed and record.value == "body"
