"""
Persistence — SQLAlchemy asyncio tables and the atomic-unit primitive.

    from orderflow.db import create_database

    db = await create_database("sqlite+aiosqlite:///orders.db")
    async with db.unit() as session:
        ...
"""

from orderflow.db._tables import (
    Base,
    ProductTable,
    OrderTable,
    OrderItemTable,
    IdempotencyKeyTable,
)
from orderflow.db._database import Database, create_database

__all__ = (
    "Base",
    "ProductTable",
    "OrderTable",
    "OrderItemTable",
    "IdempotencyKeyTable",
    "Database",
    "create_database",
)
