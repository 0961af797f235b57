"""
Checkout Example — create + confirm as one saga, replayed by key.

Run: uv run python -m examples.checkout_example
"""

from kungfu import Ok, Error

from orderflow import Checkout, OrderEngine, OrderLine, OrderflowConfig
from examples._infra import CUSTOMERS, banner, run, seeded_database


async def main() -> None:
    banner("Checkout")
    config = OrderflowConfig()
    db, products = await seeded_database(config)
    engine = OrderEngine(db, CUSTOMERS, config)
    checkout = Checkout(engine)
    lines = [OrderLine(products["KB-01"].id, 1), OrderLine(products["MS-01"].id, 1)]

    # 1. First submit — creates and confirms
    # 2. Client retry with the same key — replayed, no second order
    for label in ("submit", "retry"):
        print(f"\n{label}:")
        match await checkout.place_order(2, lines, "checkout-42"):
            case Ok(r):
                order = r.confirmation.order
                print(f"   order={order.id} status={order.status} replayed={r.replayed}")
            case Error(e):
                print(f"   error: {e.kind}")

    page = await engine.list_orders()
    print(f"\norders in store: {[o.id for o in page.items]}")

    await db.dispose()


if __name__ == "__main__":
    run(main)
