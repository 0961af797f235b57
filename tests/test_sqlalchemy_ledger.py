from __future__ import annotations

from datetime import timedelta

from orderflow import idempotency as I
from orderflow.db import Database
from tests.helpers import FrozenClock, err, ok

TARGET = I.IdempotencyTarget(I.ORDER_CONFIRMATION, 1)
DAY = timedelta(hours=24)


async def test_acquire_is_first_writer_wins(db: Database, clock: FrozenClock) -> None:
    ledger = I.SQLAlchemyLedger(db, clock)

    assert ok(await ledger.acquire("k", TARGET, DAY)) is True
    assert ok(await ledger.acquire("k", TARGET, DAY)) is False

    record = ok(await ledger.get("k"))
    assert record is not None
    assert record.state is I.RecordState.PROCESSING
    assert record.target == TARGET
    assert record.expires_at == clock.now + DAY


async def test_get_unknown_key(db: Database) -> None:
    assert ok(await I.SQLAlchemyLedger(db).get("missing")) is None


async def test_complete_inside_callers_unit(db: Database, clock: FrozenClock) -> None:
    ledger = I.SQLAlchemyLedger(db, clock)
    ok(await ledger.acquire("k", TARGET, DAY))

    async with db.unit() as session:
        ok(await ledger.complete("k", "body", unit=session))

    record = ok(await ledger.get("k"))
    assert record is not None
    assert record.state is I.RecordState.COMPLETED
    assert record.value == "body"


async def test_complete_rolls_back_with_callers_unit(db: Database, clock: FrozenClock) -> None:
    ledger = I.SQLAlchemyLedger(db, clock)
    ok(await ledger.acquire("k", TARGET, DAY))

    class Abort(Exception):
        pass

    try:
        async with db.unit() as session:
            ok(await ledger.complete("k", "body", unit=session))
            raise Abort
    except Abort:
        pass

    record = ok(await ledger.get("k"))
    assert record is not None and record.is_processing


async def test_complete_requires_processing(db: Database, clock: FrozenClock) -> None:
    ledger = I.SQLAlchemyLedger(db, clock)

    assert "No PROCESSING record" in err(await ledger.complete("k", "body")).message


async def test_fail_then_reopen(db: Database, clock: FrozenClock) -> None:
    ledger = I.SQLAlchemyLedger(db, clock)
    ok(await ledger.acquire("k", TARGET, DAY))

    ok(await ledger.fail("k", "boom"))
    failed = ok(await ledger.get("k"))
    assert failed is not None and failed.is_failed and failed.error == "boom"

    assert ok(await ledger.reopen("k")) is True
    assert ok(await ledger.reopen("k")) is False
    reopened = ok(await ledger.get("k"))
    assert reopened is not None and reopened.is_processing and reopened.error is None


async def test_purge_expired(db: Database, clock: FrozenClock) -> None:
    ledger = I.SQLAlchemyLedger(db, clock)
    ok(await ledger.acquire("old", TARGET, timedelta(hours=1)))
    ok(await ledger.acquire("new", TARGET, DAY))

    clock.advance(hours=2)
    assert ok(await ledger.purge_expired()) == 1

    assert ok(await ledger.get("old")) is None
    assert ok(await ledger.get("new")) is not None
