"""
Catalog service — product admin operations.

Stock is not editable here; only order creation and cancellation move it.
"""

from __future__ import annotations

import structlog
from sqlalchemy.exc import IntegrityError
from kungfu import Result, Ok, Error

from orderflow._pagination import Page, clamp_limit, parse_cursor
from orderflow._types import Clock, utcnow
from orderflow.catalog._repo import ProductRepo
from orderflow.catalog._types import NewProduct, Product
from orderflow.config import OrderflowConfig
from orderflow.db import Database
from orderflow.errors import OrderError

logger = structlog.get_logger(__name__)


class CatalogService:
    def __init__(
        self,
        db: Database,
        config: OrderflowConfig | None = None,
        clock: Clock = utcnow,
    ) -> None:
        self._db = db
        self._config = config if config is not None else OrderflowConfig()
        self._clock = clock

    async def create_product(
        self,
        sku: str,
        name: str,
        price_cents: int,
        stock: int = 0,
    ) -> Result[Product, OrderError]:
        """Insert a product. A taken SKU is DUPLICATE_SKU."""
        new = NewProduct(sku=sku, name=name, price_cents=price_cents, stock=stock)
        try:
            async with self._db.unit() as session:
                row = await ProductRepo(session).insert(new, self._clock())
                product = Product.from_row(row)
        except IntegrityError:
            logger.info("product_duplicate_sku", sku=sku)
            return Error(OrderError.duplicate_sku(sku))

        logger.info("product_created", product_id=product.id, sku=sku)
        return Ok(product)

    async def get_product(self, product_id: int) -> Product | None:
        async with self._db.reader() as session:
            row = await ProductRepo(session).get(product_id)
            return Product.from_row(row) if row is not None else None

    async def list_products(
        self,
        *,
        search: str | None = None,
        cursor: str | int | None = None,
        limit: int | None = None,
    ) -> Page[Product]:
        """Cursor page of products, optional substring search over name and sku."""
        size = clamp_limit(
            limit,
            default=self._config.default_page_size,
            maximum=self._config.max_page_size,
        )
        async with self._db.reader() as session:
            rows = await ProductRepo(session).list(
                search=search.strip() if search else None,
                after_id=parse_cursor(cursor),
                limit=size,
            )
            products = [Product.from_row(r) for r in rows]
        return Page.from_rows(products, size, id_of=lambda p: p.id)

    async def patch_price(self, product_id: int, price_cents: int) -> Product | None:
        """
        Change a product's price. Returns None when the product does not exist.

        Existing order items keep the price they were created with.
        """
        if price_cents < 0:
            raise ValueError(f"price_cents must be >= 0, got {price_cents}")

        async with self._db.unit() as session:
            repo = ProductRepo(session)
            if not await repo.update_price(product_id, price_cents):
                return None
            row = await repo.get(product_id)
            if row is None:
                return None
            await session.refresh(row)
            product = Product.from_row(row)

        logger.info("product_price_patched", product_id=product_id, price_cents=price_cents)
        return product


__all__ = ("CatalogService",)
