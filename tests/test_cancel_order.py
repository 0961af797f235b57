from __future__ import annotations

from orderflow.catalog import Product
from orderflow.config import OrderflowConfig
from orderflow.db import Database
from orderflow.errors import OrderErrorKind
from orderflow.orders import OrderEngine, OrderLine, OrderStatus, OrderView
from tests.helpers import CUSTOMER_ID, FrozenClock, err, ok, stock_of


async def _two_line_order(engine: OrderEngine, products: dict[str, Product]) -> OrderView:
    return ok(
        await engine.create_order(
            CUSTOMER_ID,
            [OrderLine(products["widget"].id, 3), OrderLine(products["gadget"].id, 2)],
        )
    )


async def test_cancel_created_order_restores_stock(
    engine: OrderEngine, db: Database, products: dict[str, Product]
) -> None:
    view = await _two_line_order(engine, products)

    canceled = ok(await engine.cancel_order(view.id))

    assert canceled is not None
    assert canceled.status is OrderStatus.CANCELED
    assert canceled.items == view.items
    assert await stock_of(db, products["widget"].id) == 10
    assert await stock_of(db, products["gadget"].id) == 5


async def test_cancel_twice_restores_once(
    engine: OrderEngine, db: Database, products: dict[str, Product]
) -> None:
    view = await _two_line_order(engine, products)
    first = ok(await engine.cancel_order(view.id))

    second = ok(await engine.cancel_order(view.id))

    assert second == first
    assert await stock_of(db, products["widget"].id) == 10
    assert await stock_of(db, products["gadget"].id) == 5


async def test_created_order_cancels_regardless_of_age(
    engine: OrderEngine, clock: FrozenClock, products: dict[str, Product]
) -> None:
    view = await _two_line_order(engine, products)
    clock.advance(days=3)

    canceled = ok(await engine.cancel_order(view.id))

    assert canceled is not None and canceled.status is OrderStatus.CANCELED


async def test_confirmed_order_cancels_inside_window(
    engine: OrderEngine, db: Database, clock: FrozenClock, products: dict[str, Product]
) -> None:
    view = await _two_line_order(engine, products)
    ok(await engine.confirm_order(view.id, "key-1"))
    clock.advance(minutes=9)

    canceled = ok(await engine.cancel_order(view.id))

    assert canceled is not None and canceled.status is OrderStatus.CANCELED
    assert await stock_of(db, products["widget"].id) == 10
    assert await stock_of(db, products["gadget"].id) == 5


async def test_confirmed_order_window_is_inclusive(
    engine: OrderEngine, clock: FrozenClock, products: dict[str, Product]
) -> None:
    view = await _two_line_order(engine, products)
    ok(await engine.confirm_order(view.id, "key-1"))
    clock.advance(minutes=10)

    canceled = ok(await engine.cancel_order(view.id))

    assert canceled is not None and canceled.status is OrderStatus.CANCELED


async def test_confirmed_order_past_window_is_rejected(
    engine: OrderEngine, db: Database, clock: FrozenClock, products: dict[str, Product]
) -> None:
    view = await _two_line_order(engine, products)
    ok(await engine.confirm_order(view.id, "key-1"))
    clock.advance(minutes=11)

    error = err(await engine.cancel_order(view.id))

    assert error.kind is OrderErrorKind.CANCEL_WINDOW_EXPIRED
    assert error.order_id == view.id
    stored = await engine.get_order(view.id)
    assert stored is not None and stored.status is OrderStatus.CONFIRMED
    assert await stock_of(db, products["widget"].id) == 7
    assert await stock_of(db, products["gadget"].id) == 3


async def test_cancel_window_is_configurable(
    db: Database, customers, clock: FrozenClock, products: dict[str, Product]
) -> None:
    engine = OrderEngine(db, customers, OrderflowConfig().with_cancel_window(minutes=5), clock)
    view = await _two_line_order(engine, products)
    ok(await engine.confirm_order(view.id, "key-1"))
    clock.advance(minutes=6)

    assert err(await engine.cancel_order(view.id)).kind is OrderErrorKind.CANCEL_WINDOW_EXPIRED


async def test_cancel_missing_order_is_none(engine: OrderEngine) -> None:
    assert ok(await engine.cancel_order(404)) is None
