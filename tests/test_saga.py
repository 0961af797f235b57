from __future__ import annotations

import pytest
from kungfu import Result, Ok, Error

from orderflow import saga as S
from tests.helpers import err, ok


def _ok(value):
    async def action() -> Result:
        return Ok(value)
    return action


def _fail(error):
    async def action() -> Result:
        return Error(error)
    return action


async def test_chain_runs_both_steps() -> None:
    undone: list[int] = []

    async def undo(value: int) -> None:
        undone.append(value)

    chain = S.step(_ok(1), undo, name="first").then(lambda v: S.step(_ok(v + 1), name="second"))
    result = ok(await S.run_chain(chain))

    assert result.value == 2
    assert result.steps_executed == 2
    assert result.compensators_recorded == 1
    assert undone == []


async def test_second_step_failure_compensates_first() -> None:
    undone: list[int] = []

    async def undo(value: int) -> None:
        undone.append(value)

    chain = S.step(_ok(1), undo).then(lambda v: S.step(_fail("nope")))
    failure = err(await S.run_chain(chain))

    assert failure.error == "nope"
    assert failure.step_failed == 2
    assert failure.compensators_run == 1
    assert failure.rollback_complete is True
    assert undone == [1]


async def test_second_step_raising_compensates_first() -> None:
    undone: list[int] = []

    async def undo(value: int) -> None:
        undone.append(value)

    async def explode() -> Result:
        raise ConnectionError("ledger offline")

    chain = S.step(_ok(1), undo).then(lambda v: S.step(explode))

    with pytest.raises(ConnectionError):
        await S.run_chain(chain)
    assert undone == [1]


async def test_first_step_failure_skips_second() -> None:
    reached: list[int] = []

    def next_step(value: int):
        reached.append(value)
        return S.step(_ok(value))

    failure = err(await S.run_chain(S.step(_fail("early")).then(next_step)))

    assert failure.step_failed == 1
    assert failure.compensators_run == 0
    assert reached == []


async def test_failing_compensator_marks_rollback_incomplete() -> None:
    async def undo(value: int) -> None:
        raise RuntimeError("cannot undo")

    failure = err(await S.run_chain(S.step(_ok(1), undo).then(lambda v: S.step(_fail("nope")))))

    assert failure.compensators_failed == 1
    assert failure.rollback_complete is False


async def test_single_step() -> None:
    assert ok(await S.run(S.step(_ok("v")))).value == "v"
    assert err(await S.run(S.step(_fail("e")))).error == "e"
