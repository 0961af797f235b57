"""
Checkout — create and confirm an order as one compensated flow.

    checkout = Checkout(engine)
    match await checkout.place_order(7, [OrderLine(1, 2)], "key-1"):
        case Ok(CheckoutResult(confirmation, replayed=True)): ...   # seen this key
        case Ok(CheckoutResult(confirmation, replayed=False)): ...
        case Error(err): ...

Flow:

    find_confirmation(key) ──found──▶ replay
            │
          absent
            ▼
    create_order ──▶ confirm_order(key)
         ▲                 │
         └── cancel ◀── Error
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass

import structlog
from kungfu import Result, Ok, Error

from orderflow import saga as S
from orderflow.errors import OrderError
from orderflow.orders import Confirmation, OrderEngine, OrderLine, OrderView

logger = structlog.get_logger(__name__)


@dataclass(frozen=True, slots=True)
class CheckoutResult:
    confirmation: Confirmation
    replayed: bool


class CompensationFailed(RuntimeError):
    """Canceling the created order did not succeed."""


class Checkout:
    def __init__(self, engine: OrderEngine) -> None:
        self._engine = engine

    async def place_order(
        self,
        customer_id: int,
        lines: Iterable[OrderLine],
        idempotency_key: str,
    ) -> Result[CheckoutResult, OrderError]:
        """
        Replay a finished checkout for this key, or create and confirm a new order.

        When confirmation fails the new order is canceled (its stock
        restored) and the confirmation error is returned. If confirmation
        raises (LedgerUnavailable), the order is canceled before the
        exception propagates.
        """
        idempotency_key = idempotency_key.strip()
        if not idempotency_key:
            raise ValueError("Idempotency key must not be empty")

        existing = await self._engine.find_confirmation(idempotency_key)
        if existing is not None:
            logger.info("checkout_replayed", key=idempotency_key, order_id=existing.order.id)
            return Ok(CheckoutResult(confirmation=existing, replayed=True))

        requested = tuple(lines)
        saga = S.step(
            lambda: self._engine.create_order(customer_id, requested),
            compensate=self._release,
            name="create_order",
        ).then(
            lambda view: S.step(
                lambda: self._engine.confirm_order(view.id, idempotency_key),
                name="confirm_order",
            )
        )

        match await S.run_chain(saga):
            case Ok(done):
                confirmation = done.value
                return Ok(
                    CheckoutResult(confirmation=confirmation, replayed=confirmation.from_cache)
                )
            case Error(failed):
                if failed.step_failed > 1:
                    logger.warning(
                        "checkout_compensated",
                        key=idempotency_key,
                        kind=failed.error.kind.value,
                        rollback_complete=failed.rollback_complete,
                    )
                return Error(failed.error)

    async def _release(self, view: OrderView) -> None:
        match await self._engine.cancel_order(view.id):
            case Ok(_):
                return
            case Error(err):
                raise CompensationFailed(err.message) from err


__all__ = ("Checkout", "CheckoutResult", "CompensationFailed")
