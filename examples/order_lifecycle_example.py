"""
Order Lifecycle Example — create, confirm twice, cancel.

Run: uv run python -m examples.order_lifecycle_example
"""

from kungfu import Ok, Error

from orderflow import OrderEngine, OrderLine, OrderflowConfig
from examples._infra import CUSTOMERS, banner, run, seeded_database


async def main() -> None:
    banner("Order lifecycle")
    config = OrderflowConfig()
    db, products = await seeded_database(config)
    engine = OrderEngine(db, CUSTOMERS, config)

    # 1. Create — prices lines, reserves stock
    print("\n1. Create:")
    match await engine.create_order(1, [OrderLine(products["KB-01"].id, 2)]):
        case Ok(view):
            print(f"   order={view.id} status={view.status} total={view.total_cents}")
        case Error(e):
            print(f"   error: {e.kind}")
            return

    # 2. Not enough stock — nothing is written
    print("\n2. Too many mice:")
    match await engine.create_order(1, [OrderLine(products["MS-01"].id, 10)]):
        case Ok(_):
            print("   unexpected success")
        case Error(e):
            print(f"   error: {e.kind} ({e.message})")

    # 3. Confirm twice with one key — second is a replay
    print("\n3. Confirm (same key twice):")
    for attempt in (1, 2):
        match await engine.confirm_order(view.id, "confirm-abc"):
            case Ok(c):
                print(f"   attempt {attempt}: status={c.order.status} from_cache={c.from_cache}")
            case Error(e):
                print(f"   attempt {attempt}: error {e.kind}")

    # 4. A different key cannot confirm again
    print("\n4. Confirm (new key):")
    match await engine.confirm_order(view.id, "confirm-xyz"):
        case Ok(_):
            print("   unexpected success")
        case Error(e):
            print(f"   error: {e.kind}")

    # 5. Cancel inside the window — stock comes back
    print("\n5. Cancel:")
    match await engine.cancel_order(view.id):
        case Ok(canceled) if canceled is not None:
            print(f"   status={canceled.status}")
        case Ok(_):
            print("   no such order")
        case Error(e):
            print(f"   error: {e.kind}")

    await db.dispose()


if __name__ == "__main__":
    run(main)
