from __future__ import annotations

from collections.abc import AsyncIterator
from datetime import datetime

import pytest

from orderflow.catalog import CatalogService, Product
from orderflow.config import OrderflowConfig
from orderflow.customers import Customer, StaticCustomerLookup
from orderflow.db import Database, create_database
from orderflow.orders import OrderEngine
from tests.helpers import CUSTOMER_ID, FrozenClock, ok


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock(datetime(2026, 3, 2, 12, 0, 0))


@pytest.fixture
def config() -> OrderflowConfig:
    return OrderflowConfig()


@pytest.fixture
async def db(tmp_path) -> AsyncIterator[Database]:
    database = await create_database(f"sqlite+aiosqlite:///{tmp_path / 'orderflow.db'}")
    yield database
    await database.dispose()


@pytest.fixture
def customers() -> StaticCustomerLookup:
    return StaticCustomerLookup([
        Customer(id=CUSTOMER_ID, name="Ada Lovelace", email="ada@example.com"),
        Customer(id=8, name="Grace Hopper", email="grace@example.com", phone="+1-555-0100"),
    ])


@pytest.fixture
def catalog(db: Database, config: OrderflowConfig, clock: FrozenClock) -> CatalogService:
    return CatalogService(db, config, clock)


@pytest.fixture
async def products(catalog: CatalogService) -> dict[str, Product]:
    """widget: 10.00 x10, gadget: 2.50 x5, gizmo: 0.99 x0."""
    return {
        "widget": ok(await catalog.create_product("WID-1", "Widget", 1000, stock=10)),
        "gadget": ok(await catalog.create_product("GAD-1", "Gadget", 250, stock=5)),
        "gizmo": ok(await catalog.create_product("GIZ-1", "Gizmo", 99, stock=0)),
    }


@pytest.fixture
def engine(
    db: Database,
    customers: StaticCustomerLookup,
    config: OrderflowConfig,
    clock: FrozenClock,
) -> OrderEngine:
    return OrderEngine(db, customers, config, clock)
