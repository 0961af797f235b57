"""
Order engine — create, read, confirm and cancel orders.

Every mutation runs in one Database.unit(). Domain failures are raised as
OrderError inside the unit (so it rolls back) and returned as Error(...)
at the method boundary. Infrastructure failures propagate as raised.

    engine = OrderEngine(db, customers, config)

    match await engine.create_order(7, [OrderLine(1, 2)]):
        case Ok(view): ...
        case Error(OrderError(kind=OrderErrorKind.INSUFFICIENT_STOCK)): ...

    match await engine.confirm_order(view.id, "key-1"):
        case Ok(confirmation) if confirmation.from_cache: ...  # replay
        case Ok(confirmation): ...
        case Error(err): ...
"""

from __future__ import annotations

from collections import Counter
from collections.abc import Iterable, Sequence
from dataclasses import dataclass

import structlog
from sqlalchemy.ext.asyncio import AsyncSession
from kungfu import Result, Ok, Error

from orderflow._pagination import Page, clamp_limit, parse_cursor
from orderflow._types import Clock, utcnow
from orderflow.catalog import ProductRepo
from orderflow.config import OrderflowConfig
from orderflow.customers import CustomerLookup
from orderflow.db import Database
from orderflow.errors import OrderError, LedgerUnavailable
from orderflow import idempotency as I
from orderflow.orders._codec import encode_order, decode_order
from orderflow.orders._repo import OrderRepo, PricedLine
from orderflow.orders._types import (
    Confirmation,
    Order,
    OrderFilter,
    OrderItem,
    OrderLine,
    OrderStatus,
    OrderView,
)

logger = structlog.get_logger(__name__)

# CREATED → CONFIRMED → CANCELED: a status can change under us at most twice
_CANCEL_ATTEMPTS = 3


@dataclass(frozen=True, slots=True)
class ConfirmRequest:
    order_id: int
    key: str


class OrderEngine:
    """
    The order lifecycle.

    Note: Only this class writes Product.stock, Order.status and the
    idempotency ledger's status column.
    """

    def __init__(
        self,
        db: Database,
        customers: CustomerLookup,
        config: OrderflowConfig | None = None,
        clock: Clock = utcnow,
        ledger: I.Ledger | None = None,
    ) -> None:
        self._db = db
        self._customers = customers
        self._config = config if config is not None else OrderflowConfig()
        self._clock = clock
        self._ledger = ledger if ledger is not None else I.SQLAlchemyLedger(db, clock)

        policy = I.Policy().with_ttl(delta=self._config.idempotency_ttl)
        self._confirm = (
            I.idempotent(self._confirm_in_unit)
            .key(lambda req: req.key)
            .target(lambda req: I.IdempotencyTarget(I.ORDER_CONFIRMATION, req.order_id))
            .ledger(self._ledger)
            .unit(db.unit)
            .policy(policy.with_retry_failed(self._config.retry_failed_keys))
            .build()
        )

    @property
    def config(self) -> OrderflowConfig:
        return self._config

    # ═══════════════════════════════════════════════════════════════════════
    # Create
    # ═══════════════════════════════════════════════════════════════════════

    async def create_order(
        self,
        customer_id: int,
        lines: Iterable[OrderLine],
    ) -> Result[OrderView, OrderError]:
        """
        Price the lines, reserve stock and insert the order, all or nothing.

        The customer is resolved before the unit opens; a transport failure
        is UPSTREAM_UNAVAILABLE and is not retried.
        """
        requested = tuple(lines)
        if not requested:
            raise ValueError("An order needs at least one line")

        match await self._customers.resolve(customer_id):
            case Error(upstream):
                logger.warning(
                    "customer_lookup_failed",
                    customer_id=customer_id,
                    status_code=upstream.status_code,
                )
                return Error(OrderError.upstream_unavailable(upstream.message))
            case Ok(None):
                return Error(OrderError.customer_not_found(customer_id))
            case Ok(_):
                pass

        try:
            async with self._db.unit() as session:
                view = await self._create_in_unit(session, customer_id, requested)
        except OrderError as e:
            logger.info("order_rejected", customer_id=customer_id, kind=e.kind.value)
            return Error(e)

        logger.info(
            "order_created",
            order_id=view.id,
            customer_id=customer_id,
            total_cents=view.total_cents,
            lines=len(view.items),
        )
        return Ok(view)

    async def _create_in_unit(
        self,
        session: AsyncSession,
        customer_id: int,
        lines: Sequence[OrderLine],
    ) -> OrderView:
        products = ProductRepo(session)
        found = await products.get_many((line.product_id for line in lines), for_update=True)

        wanted: Counter[int] = Counter()
        for line in lines:
            product = found.get(line.product_id)
            if product is None:
                raise OrderError.product_not_found(line.product_id)
            wanted[line.product_id] += line.qty
            if product.stock < wanted[line.product_id]:
                raise OrderError.insufficient_stock(
                    line.product_id, wanted[line.product_id], product.stock
                )

        priced = [
            PricedLine(line.product_id, line.qty, found[line.product_id].price_cents)
            for line in lines
        ]
        total = sum(p.subtotal_cents for p in priced)

        orders = OrderRepo(session)
        row = await orders.insert(customer_id, total, self._clock())
        await orders.insert_items(row.id, priced)

        # lock order follows product id
        for product_id in sorted(wanted):
            if not await products.decrement_stock(product_id, wanted[product_id]):
                raise OrderError.insufficient_stock(product_id, wanted[product_id])

        return await self._load_view(orders, row.id)

    # ═══════════════════════════════════════════════════════════════════════
    # Read
    # ═══════════════════════════════════════════════════════════════════════

    async def get_order(self, order_id: int) -> OrderView | None:
        async with self._db.reader() as session:
            orders = OrderRepo(session)
            if await orders.get(order_id) is None:
                return None
            return await self._load_view(orders, order_id)

    async def list_orders(
        self,
        filters: OrderFilter | None = None,
        *,
        cursor: str | int | None = None,
        limit: int | None = None,
    ) -> Page[Order]:
        size = clamp_limit(
            limit,
            default=self._config.default_page_size,
            maximum=self._config.max_page_size,
        )
        async with self._db.reader() as session:
            rows = await OrderRepo(session).list(
                filters if filters is not None else OrderFilter(),
                after_id=parse_cursor(cursor),
                limit=size,
            )
            orders = [Order.from_row(r) for r in rows]
        return Page.from_rows(orders, size, id_of=lambda o: o.id)

    async def _load_view(self, orders: OrderRepo, order_id: int) -> OrderView:
        row = await orders.get(order_id)
        if row is None:
            raise OrderError.order_not_found(order_id)
        items = await orders.items(order_id)
        return OrderView(
            order=Order.from_row(row),
            items=tuple(OrderItem.from_row(i) for i in items),
        )

    # ═══════════════════════════════════════════════════════════════════════
    # Confirm
    # ═══════════════════════════════════════════════════════════════════════

    async def confirm_order(self, order_id: int, key: str) -> Result[Confirmation, OrderError]:
        """
        CREATED → CONFIRMED, at most once per idempotency key.

        A repeated key replays the cached payload byte for byte and touches
        no order state. Surrounding whitespace is not part of the key.
        """
        key = key.strip()
        if not key:
            raise ValueError("Idempotency key must not be empty")

        result = await self._confirm.run(ConfirmRequest(order_id=order_id, key=key))
        match result:
            case Ok(done):
                confirmation = Confirmation(
                    order=decode_order(done.value),
                    payload=done.value,
                    from_cache=done.from_cache,
                )
                event = "confirmation_replayed" if done.from_cache else "order_confirmed"
                logger.info(event, order_id=order_id, key=key)
                return Ok(confirmation)
            case Error(err):
                return Error(self._confirm_error(err, order_id, key))

    async def _confirm_in_unit(
        self,
        req: ConfirmRequest,
        session: AsyncSession,
    ) -> Result[str, OrderError]:
        """Runs inside the unit that also writes the ledger record COMPLETED."""
        orders = OrderRepo(session)
        row = await orders.get(req.order_id, for_update=True)
        if row is None:
            return Error(OrderError.order_not_found(req.order_id))
        if row.status != OrderStatus.CREATED:
            return Error(OrderError.not_confirmable(req.order_id, row.status))

        if not await orders.transition(req.order_id, OrderStatus.CREATED, OrderStatus.CONFIRMED):
            current = await orders.get(req.order_id)
            status = current.status if current is not None else "absent"
            return Error(OrderError.not_confirmable(req.order_id, status))

        view = await self._load_view(orders, req.order_id)
        return Ok(encode_order(view))

    def _confirm_error(self, err: I.IdempotencyError, order_id: int, key: str) -> OrderError:
        """Map the ledger's error kinds onto order error kinds."""
        match err.kind:
            case I.IdempotencyErrorKind.EXECUTION:
                original = err.original_error
                if isinstance(original, OrderError):
                    logger.info("confirm_rejected", order_id=order_id, key=key, kind=original.kind.value)
                    return original
                if isinstance(original, BaseException):
                    raise original
                raise RuntimeError(err.message)
            case I.IdempotencyErrorKind.CONFLICT:
                logger.info("confirmation_in_progress", order_id=order_id, key=key)
                return OrderError.confirmation_in_progress(key)
            case I.IdempotencyErrorKind.KEY_FAILED:
                logger.info("idempotency_key_failed", order_id=order_id, key=key)
                return OrderError.key_failed(key)
            case I.IdempotencyErrorKind.INPUT_MISMATCH:
                logger.warning("idempotency_key_reused", order_id=order_id, key=key)
                return OrderError.key_reused(key, err.message)
            case I.IdempotencyErrorKind.STORE_ERROR:
                cause = err.original_error if isinstance(err.original_error, BaseException) else None
                raise LedgerUnavailable(err.message) from cause

    async def find_confirmation(self, key: str) -> Confirmation | None:
        """
        The cached confirmation for a key, or None.

        Only a COMPLETED order confirmation counts. A ledger failure raises
        LedgerUnavailable rather than reading as absence.
        """
        key = key.strip()
        if not key:
            return None
        match await self._ledger.get(key):
            case Ok(record) if (
                record is not None
                and record.is_completed
                and record.target.type == I.ORDER_CONFIRMATION
                and record.value is not None
            ):
                return Confirmation(
                    order=decode_order(record.value),
                    payload=record.value,
                    from_cache=True,
                )
            case Ok(_):
                return None
            case Error(err):
                raise LedgerUnavailable(err.message) from err.cause

    # ═══════════════════════════════════════════════════════════════════════
    # Cancel
    # ═══════════════════════════════════════════════════════════════════════

    async def cancel_order(self, order_id: int) -> Result[OrderView | None, OrderError]:
        """
        Cancel and restore stock for every line.

        Absent order ⇒ Ok(None). Already CANCELED ⇒ returned unchanged, no
        stock moves. CONFIRMED orders cancel only inside the cancel window.
        """
        try:
            async with self._db.unit() as session:
                view, restored = await self._cancel_in_unit(session, order_id)
        except OrderError as e:
            logger.info("cancel_rejected", order_id=order_id, kind=e.kind.value)
            return Error(e)

        if restored:
            logger.info("order_canceled", order_id=order_id, lines=len(restored))
        return Ok(view)

    async def _cancel_in_unit(
        self,
        session: AsyncSession,
        order_id: int,
    ) -> tuple[OrderView | None, list[OrderItem]]:
        orders = OrderRepo(session)

        for _ in range(_CANCEL_ATTEMPTS):
            row = await orders.get(order_id, for_update=True)
            if row is None:
                return None, []

            status = OrderStatus(row.status)
            if status is OrderStatus.CANCELED:
                return await self._load_view(orders, order_id), []
            if status is OrderStatus.CONFIRMED and self._clock() - row.created_at > self._config.cancel_window:
                raise OrderError.cancel_window_expired(order_id)

            if await orders.transition(order_id, status, OrderStatus.CANCELED):
                view = await self._load_view(orders, order_id)
                products = ProductRepo(session)
                for item in view.items:
                    await products.increment_stock(item.product_id, item.qty)
                return view, list(view.items)

        raise RuntimeError(f"Order {order_id} status changed {_CANCEL_ATTEMPTS} times during cancel")


__all__ = ("OrderEngine", "ConfirmRequest")
