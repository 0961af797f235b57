"""
Product repository — statements against the products table.

Every method runs on a session the caller owns; the repository never
commits. Stock changes are conditional UPDATEs, so the non-negative
invariant holds whatever the isolation level.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from datetime import datetime
from typing import Any, cast

from sqlalchemy import select, update, or_
from sqlalchemy.engine import CursorResult
from sqlalchemy.ext.asyncio import AsyncSession

from orderflow.db import ProductTable
from orderflow.catalog._types import NewProduct

# dialects where SELECT ... FOR UPDATE takes a row lock
LOCKING_DIALECTS = frozenset({"postgresql", "mysql", "mariadb", "oracle", "mssql"})


class ProductRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    @property
    def _locks_rows(self) -> bool:
        return self._session.get_bind().dialect.name in LOCKING_DIALECTS

    async def get(self, product_id: int) -> ProductTable | None:
        return await self._session.get(ProductTable, product_id)

    async def get_many(
        self,
        product_ids: Iterable[int],
        *,
        for_update: bool = False,
    ) -> dict[int, ProductTable]:
        """Batch read by id set. Missing ids are simply absent from the map."""
        ids = sorted(set(product_ids))
        if not ids:
            return {}
        stmt = select(ProductTable).where(ProductTable.id.in_(ids))
        if for_update and self._locks_rows:
            stmt = stmt.with_for_update()
        rows = (await self._session.execute(stmt)).scalars().all()
        return {row.id: row for row in rows}

    async def insert(self, product: NewProduct, created_at: datetime) -> ProductTable:
        row = ProductTable(
            sku=product.sku,
            name=product.name,
            price_cents=product.price_cents,
            stock=product.stock,
            created_at=created_at,
        )
        self._session.add(row)
        await self._session.flush()
        return row

    async def update_price(self, product_id: int, price_cents: int) -> bool:
        cursor = cast(
            CursorResult[Any],
            await self._session.execute(
                update(ProductTable)
                .where(ProductTable.id == product_id)
                .values(price_cents=price_cents)
                .execution_options(synchronize_session=False)
            ),
        )
        return cursor.rowcount > 0

    async def decrement_stock(self, product_id: int, qty: int) -> bool:
        """stock -= qty only if stock >= qty. False means nothing changed."""
        cursor = cast(
            CursorResult[Any],
            await self._session.execute(
                update(ProductTable)
                .where(ProductTable.id == product_id, ProductTable.stock >= qty)
                .values(stock=ProductTable.stock - qty)
                .execution_options(synchronize_session=False)
            ),
        )
        return cursor.rowcount > 0

    async def increment_stock(self, product_id: int, qty: int) -> None:
        await self._session.execute(
            update(ProductTable)
            .where(ProductTable.id == product_id)
            .values(stock=ProductTable.stock + qty)
            .execution_options(synchronize_session=False)
        )

    async def list(
        self,
        *,
        search: str | None,
        after_id: int | None,
        limit: int,
    ) -> Sequence[ProductTable]:
        """Ascending by id; fetches limit + 1 so the caller can detect a next page."""
        stmt = select(ProductTable)
        if search:
            pattern = f"%{search}%"
            stmt = stmt.where(
                or_(ProductTable.name.ilike(pattern), ProductTable.sku.ilike(pattern))
            )
        if after_id is not None:
            stmt = stmt.where(ProductTable.id > after_id)
        stmt = stmt.order_by(ProductTable.id.asc()).limit(limit + 1)
        return (await self._session.execute(stmt)).scalars().all()


__all__ = ("ProductRepo", "LOCKING_DIALECTS")
