"""
Order repository — statements against orders and order_items.

Runs on a caller-owned session and never commits.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from datetime import datetime
from typing import Any, cast

from sqlalchemy import select, update
from sqlalchemy.engine import CursorResult
from sqlalchemy.ext.asyncio import AsyncSession

from orderflow.catalog import LOCKING_DIALECTS
from orderflow.db import OrderTable, OrderItemTable
from orderflow.orders._types import OrderFilter, OrderStatus


@dataclass(frozen=True, slots=True)
class PricedLine:
    product_id: int
    qty: int
    unit_price_cents: int

    @property
    def subtotal_cents(self) -> int:
        return self.qty * self.unit_price_cents


class OrderRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get(self, order_id: int, *, for_update: bool = False) -> OrderTable | None:
        """
        Point read, always from the database.

        Note: populate_existing so a row already in the identity map is
        refreshed rather than served stale.
        """
        lock = for_update and self._session.get_bind().dialect.name in LOCKING_DIALECTS
        return await self._session.get(
            OrderTable,
            order_id,
            populate_existing=True,
            with_for_update=True if lock else None,
        )

    async def items(self, order_id: int) -> Sequence[OrderItemTable]:
        return (
            await self._session.execute(
                select(OrderItemTable)
                .where(OrderItemTable.order_id == order_id)
                .order_by(OrderItemTable.id.asc())
            )
        ).scalars().all()

    async def insert(self, customer_id: int, total_cents: int, created_at: datetime) -> OrderTable:
        row = OrderTable(
            customer_id=customer_id,
            status=OrderStatus.CREATED.value,
            total_cents=total_cents,
            created_at=created_at,
        )
        self._session.add(row)
        await self._session.flush()
        return row

    async def insert_items(self, order_id: int, lines: Iterable[PricedLine]) -> None:
        self._session.add_all(
            OrderItemTable(
                order_id=order_id,
                product_id=line.product_id,
                qty=line.qty,
                unit_price_cents=line.unit_price_cents,
                subtotal_cents=line.subtotal_cents,
            )
            for line in lines
        )
        await self._session.flush()

    async def transition(self, order_id: int, expected: OrderStatus, new: OrderStatus) -> bool:
        """Compare-and-set on status. False means the status was not `expected`."""
        cursor = cast(
            CursorResult[Any],
            await self._session.execute(
                update(OrderTable)
                .where(OrderTable.id == order_id, OrderTable.status == expected.value)
                .values(status=new.value)
                .execution_options(synchronize_session=False)
            ),
        )
        return cursor.rowcount > 0

    async def list(
        self,
        filters: OrderFilter,
        *,
        after_id: int | None,
        limit: int,
    ) -> Sequence[OrderTable]:
        """Filters ANDed, then the cursor bound; ascending id, limit + 1 rows."""
        stmt = select(OrderTable)
        if filters.status is not None:
            stmt = stmt.where(OrderTable.status == filters.status.value)
        if filters.customer_id is not None:
            stmt = stmt.where(OrderTable.customer_id == filters.customer_id)
        if filters.created_from is not None:
            stmt = stmt.where(OrderTable.created_at >= filters.created_from)
        if filters.created_to is not None:
            stmt = stmt.where(OrderTable.created_at <= filters.created_to)
        if after_id is not None:
            stmt = stmt.where(OrderTable.id > after_id)
        stmt = stmt.order_by(OrderTable.id.asc()).limit(limit + 1)
        return (await self._session.execute(stmt)).scalars().all()


__all__ = ("OrderRepo", "PricedLine")
