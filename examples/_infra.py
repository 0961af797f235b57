"""Shared infrastructure for examples."""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Coroutine

from kungfu import Ok, Error

from orderflow import (
    CatalogService,
    Customer,
    Database,
    OrderflowConfig,
    Product,
    StaticCustomerLookup,
    configure_logging,
    create_database,
)


CUSTOMERS = StaticCustomerLookup([
    Customer(id=1, name="Alice", email="alice@example.com"),
    Customer(id=2, name="Bob", email="bob@example.com", phone="+1-555-0199"),
])


async def seeded_database(config: OrderflowConfig) -> tuple[Database, dict[str, Product]]:
    """Fresh database with a small catalog."""
    db = await create_database(config.database_url)
    catalog = CatalogService(db, config)
    products: dict[str, Product] = {}
    for sku, name, price, stock in (
        ("KB-01", "Keyboard", 4900, 5),
        ("MS-01", "Mouse", 1900, 3),
    ):
        match await catalog.create_product(sku, name, price, stock=stock):
            case Ok(product):
                products[sku] = product
            case Error(e):
                raise RuntimeError(e.message)
    return db, products


# Helpers
def banner(title: str) -> None:
    print(f"\n{'─' * 50}\n{title}\n{'─' * 50}")


def run(main: Callable[[], Coroutine[object, object, None]]) -> None:
    configure_logging("WARNING")
    asyncio.run(main())
