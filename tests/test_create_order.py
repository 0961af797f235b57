from __future__ import annotations

import pytest
from kungfu import Result, Error

from orderflow.catalog import CatalogService, Product
from orderflow.customers import Customer, UpstreamError
from orderflow.db import Database, OrderTable, OrderItemTable
from orderflow.errors import OrderErrorKind
from orderflow.orders import OrderEngine, OrderLine, OrderStatus
from tests.helpers import CUSTOMER_ID, count_rows, err, ok, stock_of


class UnreachableCustomers:
    async def resolve(self, customer_id: int) -> Result[Customer | None, UpstreamError]:
        return Error(UpstreamError("connection refused"))


async def test_create_prices_lines_and_reserves_stock(
    engine: OrderEngine, db: Database, products: dict[str, Product]
) -> None:
    widget, gadget = products["widget"], products["gadget"]

    view = ok(await engine.create_order(CUSTOMER_ID, [OrderLine(widget.id, 2), OrderLine(gadget.id, 3)]))

    assert view.status is OrderStatus.CREATED
    assert view.order.customer_id == CUSTOMER_ID
    assert view.total_cents == 2 * 1000 + 3 * 250
    assert view.total_cents == sum(i.qty * i.unit_price_cents for i in view.items)
    assert [(i.product_id, i.qty, i.unit_price_cents, i.subtotal_cents) for i in view.items] == [
        (widget.id, 2, 1000, 2000),
        (gadget.id, 3, 250, 750),
    ]
    assert await stock_of(db, widget.id) == 8
    assert await stock_of(db, gadget.id) == 2


async def test_insufficient_stock_rolls_back_everything(
    engine: OrderEngine, db: Database, products: dict[str, Product]
) -> None:
    widget, gadget = products["widget"], products["gadget"]

    error = err(await engine.create_order(CUSTOMER_ID, [OrderLine(widget.id, 2), OrderLine(gadget.id, 6)]))

    assert error.kind is OrderErrorKind.INSUFFICIENT_STOCK
    assert error.product_id == gadget.id
    assert await count_rows(db, OrderTable) == 0
    assert await count_rows(db, OrderItemTable) == 0
    assert await stock_of(db, widget.id) == 10
    assert await stock_of(db, gadget.id) == 5


async def test_stock_is_checked_across_repeated_lines(
    engine: OrderEngine, db: Database, products: dict[str, Product]
) -> None:
    widget = products["widget"]

    error = err(await engine.create_order(CUSTOMER_ID, [OrderLine(widget.id, 6), OrderLine(widget.id, 5)]))

    assert error.kind is OrderErrorKind.INSUFFICIENT_STOCK
    assert await stock_of(db, widget.id) == 10


async def test_repeated_lines_within_stock_decrement_the_sum(
    engine: OrderEngine, db: Database, products: dict[str, Product]
) -> None:
    widget = products["widget"]

    view = ok(await engine.create_order(CUSTOMER_ID, [OrderLine(widget.id, 6), OrderLine(widget.id, 4)]))

    assert len(view.items) == 2
    assert await stock_of(db, widget.id) == 0


async def test_zero_stock_product_is_rejected(engine: OrderEngine, products: dict[str, Product]) -> None:
    error = err(await engine.create_order(CUSTOMER_ID, [OrderLine(products["gizmo"].id, 1)]))

    assert error.kind is OrderErrorKind.INSUFFICIENT_STOCK


async def test_unknown_product(engine: OrderEngine, db: Database, products: dict[str, Product]) -> None:
    error = err(
        await engine.create_order(CUSTOMER_ID, [OrderLine(products["widget"].id, 1), OrderLine(999, 1)])
    )

    assert error.kind is OrderErrorKind.PRODUCT_NOT_FOUND
    assert error.product_id == 999
    assert await stock_of(db, products["widget"].id) == 10


async def test_unknown_customer(engine: OrderEngine, db: Database, products: dict[str, Product]) -> None:
    error = err(await engine.create_order(404, [OrderLine(products["widget"].id, 1)]))

    assert error.kind is OrderErrorKind.CUSTOMER_NOT_FOUND
    assert await count_rows(db, OrderTable) == 0


async def test_customer_transport_failure_is_upstream_unavailable(
    db: Database, config, clock, products: dict[str, Product]
) -> None:
    engine = OrderEngine(db, UnreachableCustomers(), config, clock)

    error = err(await engine.create_order(CUSTOMER_ID, [OrderLine(products["widget"].id, 1)]))

    assert error.kind is OrderErrorKind.UPSTREAM_UNAVAILABLE
    assert await count_rows(db, OrderTable) == 0


async def test_customer_is_resolved_once(engine: OrderEngine, customers, products: dict[str, Product]) -> None:
    ok(await engine.create_order(CUSTOMER_ID, [OrderLine(products["widget"].id, 1)]))

    assert customers.calls == 1


async def test_unit_price_is_a_snapshot(
    engine: OrderEngine, catalog: CatalogService, products: dict[str, Product]
) -> None:
    widget = products["widget"]
    view = ok(await engine.create_order(CUSTOMER_ID, [OrderLine(widget.id, 1)]))

    await catalog.patch_price(widget.id, 5000)

    stored = await engine.get_order(view.id)
    assert stored is not None
    assert stored.items[0].unit_price_cents == 1000
    assert stored.total_cents == 1000


async def test_created_at_comes_from_the_clock(engine: OrderEngine, clock, products: dict[str, Product]) -> None:
    view = ok(await engine.create_order(CUSTOMER_ID, [OrderLine(products["widget"].id, 1)]))

    assert view.order.created_at == clock.now


async def test_empty_order_is_rejected(engine: OrderEngine) -> None:
    with pytest.raises(ValueError):
        await engine.create_order(CUSTOMER_ID, [])


@pytest.mark.parametrize("qty", [0, -1])
def test_order_line_requires_positive_qty(qty: int) -> None:
    with pytest.raises(ValueError):
        OrderLine(product_id=1, qty=qty)
