from __future__ import annotations

import pytest
import structlog
from structlog.testing import capture_logs

from orderflow.catalog import Product
from orderflow.log import configure_logging
from orderflow.orders import OrderEngine, OrderLine
from tests.helpers import CUSTOMER_ID, ok


@pytest.fixture
def reset_structlog():
    yield
    structlog.reset_defaults()


async def test_lifecycle_events_are_logged(engine: OrderEngine, products: dict[str, Product]) -> None:
    with capture_logs() as logs:
        view = ok(await engine.create_order(CUSTOMER_ID, [OrderLine(products["widget"].id, 1)]))
        ok(await engine.confirm_order(view.id, "key-1"))
        ok(await engine.confirm_order(view.id, "key-1"))
        ok(await engine.cancel_order(view.id))

    events = [entry["event"] for entry in logs]
    assert events.index("order_created") < events.index("order_confirmed")
    assert "confirmation_replayed" in events
    assert "order_canceled" in events
    created = next(entry for entry in logs if entry["event"] == "order_created")
    assert created["order_id"] == view.id
    assert created["total_cents"] == 1000


@pytest.mark.parametrize("json", [True, False])
def test_configure_logging(json: bool, reset_structlog) -> None:
    configure_logging("debug", json=json)
    structlog.get_logger("orderflow.test").info("configured", json=json)


def test_configure_logging_rejects_unknown_level(reset_structlog) -> None:
    with pytest.raises(ValueError):
        configure_logging("chatty")
