"""Test helpers shared across modules."""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Any

import pytest
from sqlalchemy import func, select
from kungfu import Result, Ok, Error

from orderflow.db import Database, ProductTable

CUSTOMER_ID = 7


def ok[T](result: Result[T, Any]) -> T:
    match result:
        case Ok(value):
            return value
        case Error(err):
            pytest.fail(f"expected Ok, got Error({err!r})")


def err[E](result: Result[Any, E]) -> E:
    match result:
        case Error(e):
            return e
        case Ok(value):
            pytest.fail(f"expected Error, got Ok({value!r})")


class FrozenClock:
    """Clock that only moves when told to."""

    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now += timedelta(**kwargs)


async def stock_of(db: Database, product_id: int) -> int:
    async with db.reader() as session:
        row = await session.get(ProductTable, product_id, populate_existing=True)
        assert row is not None
        return row.stock


async def count_rows(db: Database, table: type) -> int:
    async with db.reader() as session:
        return (await session.execute(select(func.count()).select_from(table))).scalar_one()
