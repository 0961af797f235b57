"""
SQLAlchemy ledger — the idempotency_keys table as a Ledger.

Usage:

    ledger = SQLAlchemyLedger(db)

    # first writer wins; the loser sees Ok(False)
    await ledger.acquire("key-1", IdempotencyTarget(ORDER_CONFIRMATION, 42), ttl)

    # commit the cached body together with the business effect
    async with db.unit() as session:
        ...
        await ledger.complete("key-1", body, unit=session)
"""

from datetime import datetime, timedelta
from typing import Any, cast

from sqlalchemy import select, update, delete, insert
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.engine import CursorResult
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from kungfu import Result, Ok, Error

from orderflow._types import Clock, utcnow
from orderflow.db import Database, IdempotencyKeyTable
from orderflow.idempotency._types import (
    IdempotencyRecord,
    IdempotencyTarget,
    RecordState,
)
from orderflow.idempotency._store import StoreError


class SQLAlchemyLedger:
    """
    Idempotency ledger over the idempotency_keys table.

    Note: Each method runs in its own short transaction, except complete()
    with `unit=`, which joins the caller's transaction and leaves the commit
    to it.
    """

    def __init__(self, db: Database, clock: Clock = utcnow) -> None:
        self._db = db
        self._clock = clock

    async def get(self, key: str) -> Result[IdempotencyRecord | None, StoreError]:
        """Get record by key."""
        try:
            async with self._db.reader() as session:
                row = (
                    await session.execute(
                        select(IdempotencyKeyTable).where(IdempotencyKeyTable.key == key)
                    )
                ).scalar_one_or_none()

                if row is None:
                    return Ok(None)
                return Ok(_to_record(row))

        except Exception as e:
            return Error(StoreError(f"Failed to get: {e}", e))

    async def acquire(
        self,
        key: str,
        target: IdempotencyTarget,
        ttl: timedelta,
    ) -> Result[bool, StoreError]:
        """Insert PROCESSING record unless the key exists."""
        now = self._clock()
        values = {
            "key": key,
            "target_type": target.type,
            "target_id": target.id,
            "status": RecordState.PROCESSING.value,
            "response_body": None,
            "error": None,
            "created_at": now,
            "expires_at": now + ttl,
        }
        try:
            async with self._db.unit() as session:
                cursor = cast(
                    CursorResult[Any], await session.execute(self._insert_ignore(values))
                )
                return Ok(cursor.rowcount > 0)

        except IntegrityError:
            # dialects without INSERT ... ON CONFLICT report the loser this way
            return Ok(False)
        except Exception as e:
            return Error(StoreError(f"Failed to acquire: {e}", e))

    async def reopen(self, key: str) -> Result[bool, StoreError]:
        """FAILED → PROCESSING, compare-and-set."""
        try:
            async with self._db.unit() as session:
                cursor = cast(
                    CursorResult[Any],
                    await session.execute(
                        update(IdempotencyKeyTable)
                        .where(
                            IdempotencyKeyTable.key == key,
                            IdempotencyKeyTable.status == RecordState.FAILED.value,
                        )
                        .values(status=RecordState.PROCESSING.value, error=None)
                    ),
                )
                return Ok(cursor.rowcount > 0)

        except Exception as e:
            return Error(StoreError(f"Failed to reopen: {e}", e))

    async def complete(
        self,
        key: str,
        value: str,
        *,
        unit: AsyncSession | None = None,
    ) -> Result[None, StoreError]:
        """Mark record COMPLETED with the cached body."""
        stmt = (
            update(IdempotencyKeyTable)
            .where(
                IdempotencyKeyTable.key == key,
                IdempotencyKeyTable.status == RecordState.PROCESSING.value,
            )
            .values(status=RecordState.COMPLETED.value, response_body=value)
        )
        try:
            if unit is not None:
                cursor = cast(CursorResult[Any], await unit.execute(stmt))
            else:
                async with self._db.unit() as session:
                    cursor = cast(CursorResult[Any], await session.execute(stmt))

            if cursor.rowcount == 0:
                return Error(StoreError(f"No PROCESSING record for key: {key}"))
            return Ok(None)

        except Exception as e:
            return Error(StoreError(f"Failed to complete: {e}", e))

    async def fail(self, key: str, error: str) -> Result[None, StoreError]:
        """Mark record FAILED."""
        try:
            async with self._db.unit() as session:
                cursor = cast(
                    CursorResult[Any],
                    await session.execute(
                        update(IdempotencyKeyTable)
                        .where(
                            IdempotencyKeyTable.key == key,
                            IdempotencyKeyTable.status == RecordState.PROCESSING.value,
                        )
                        .values(status=RecordState.FAILED.value, error=error)
                    ),
                )
                if cursor.rowcount == 0:
                    return Error(StoreError(f"No PROCESSING record for key: {key}"))
                return Ok(None)

        except Exception as e:
            return Error(StoreError(f"Failed to fail: {e}", e))

    async def purge_expired(self, now: datetime | None = None) -> Result[int, StoreError]:
        """
        Delete records past expires_at. Returns how many were removed.

        Maintenance only; the engine never calls this.
        """
        cutoff = now if now is not None else self._clock()
        try:
            async with self._db.unit() as session:
                cursor = cast(
                    CursorResult[Any],
                    await session.execute(
                        delete(IdempotencyKeyTable).where(
                            IdempotencyKeyTable.expires_at < cutoff
                        )
                    ),
                )
                return Ok(cursor.rowcount)

        except Exception as e:
            return Error(StoreError(f"Failed to purge: {e}", e))

    def _insert_ignore(self, values: dict[str, Any]) -> Any:
        """INSERT that affects zero rows when the key already exists."""
        match self._db.dialect:
            case "sqlite":
                return (
                    sqlite_insert(IdempotencyKeyTable)
                    .values(**values)
                    .on_conflict_do_nothing(index_elements=["key"])
                )
            case "postgresql":
                return (
                    pg_insert(IdempotencyKeyTable)
                    .values(**values)
                    .on_conflict_do_nothing(index_elements=["key"])
                )
            case "mysql" | "mariadb":
                return insert(IdempotencyKeyTable).values(**values).prefix_with("IGNORE")
            case _:
                return insert(IdempotencyKeyTable).values(**values)


def _to_record(row: IdempotencyKeyTable) -> IdempotencyRecord:
    return IdempotencyRecord(
        key=row.key,
        target=IdempotencyTarget(type=row.target_type, id=row.target_id),
        state=RecordState(row.status),
        value=row.response_body,
        error=row.error,
        created_at=row.created_at,
        expires_at=row.expires_at,
    )


__all__ = ("SQLAlchemyLedger",)
