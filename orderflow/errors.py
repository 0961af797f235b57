"""
Errors — a closed set of tagged domain failures.

Callers branch on `OrderError.kind`, never on message text:

    match await engine.create_order(7, lines):
        case Error(OrderError(kind=OrderErrorKind.INSUFFICIENT_STOCK, product_id=pid)):
            ...

OrderError is an exception so that raising it inside Database.unit() rolls
the unit back; public operations catch it at the boundary and return it as
Error(...).
"""

from __future__ import annotations

from enum import StrEnum


class OrderErrorKind(StrEnum):
    CUSTOMER_NOT_FOUND = "CUSTOMER_NOT_FOUND"
    PRODUCT_NOT_FOUND = "PRODUCT_NOT_FOUND"
    INSUFFICIENT_STOCK = "INSUFFICIENT_STOCK"
    UPSTREAM_UNAVAILABLE = "UPSTREAM_UNAVAILABLE"
    ORDER_NOT_FOUND = "ORDER_NOT_FOUND"
    ORDER_NOT_CONFIRMABLE = "ORDER_NOT_CONFIRMABLE"
    CONFIRMATION_IN_PROGRESS = "CONFIRMATION_IN_PROGRESS"
    IDEMPOTENCY_KEY_FAILED = "IDEMPOTENCY_KEY_FAILED"
    IDEMPOTENCY_KEY_REUSED = "IDEMPOTENCY_KEY_REUSED"
    CANCEL_WINDOW_EXPIRED = "CANCEL_WINDOW_EXPIRED"
    DUPLICATE_SKU = "DUPLICATE_SKU"


class OrderError(Exception):
    """Expected domain failure. `product_id`/`order_id` set where they apply."""

    __match_args__ = ("kind", "message", "product_id")

    def __init__(
        self,
        kind: OrderErrorKind,
        message: str,
        *,
        product_id: int | None = None,
        order_id: int | None = None,
    ) -> None:
        super().__init__(message)
        self.kind = kind
        self.message = message
        self.product_id = product_id
        self.order_id = order_id

    def __repr__(self) -> str:
        return f"OrderError({self.kind.value}, {self.message!r})"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, OrderError):
            return NotImplemented
        return (
            self.kind == other.kind
            and self.message == other.message
            and self.product_id == other.product_id
            and self.order_id == other.order_id
        )

    def __hash__(self) -> int:
        return hash((self.kind, self.message, self.product_id, self.order_id))

    # ═══════════════════════════════════════════════════════════════════════
    # Constructors
    # ═══════════════════════════════════════════════════════════════════════

    @classmethod
    def customer_not_found(cls, customer_id: int) -> OrderError:
        return cls(OrderErrorKind.CUSTOMER_NOT_FOUND, f"Customer not found: {customer_id}")

    @classmethod
    def product_not_found(cls, product_id: int) -> OrderError:
        return cls(
            OrderErrorKind.PRODUCT_NOT_FOUND,
            f"Product not found: {product_id}",
            product_id=product_id,
        )

    @classmethod
    def insufficient_stock(
        cls,
        product_id: int,
        requested: int,
        available: int | None = None,
    ) -> OrderError:
        detail = f"requested {requested}"
        if available is not None:
            detail += f", available {available}"
        return cls(
            OrderErrorKind.INSUFFICIENT_STOCK,
            f"Insufficient stock for product {product_id}: {detail}",
            product_id=product_id,
        )

    @classmethod
    def upstream_unavailable(cls, detail: str) -> OrderError:
        return cls(OrderErrorKind.UPSTREAM_UNAVAILABLE, f"Customers service unavailable: {detail}")

    @classmethod
    def order_not_found(cls, order_id: int) -> OrderError:
        return cls(OrderErrorKind.ORDER_NOT_FOUND, f"Order not found: {order_id}", order_id=order_id)

    @classmethod
    def not_confirmable(cls, order_id: int, status: str) -> OrderError:
        return cls(
            OrderErrorKind.ORDER_NOT_CONFIRMABLE,
            f"Order {order_id} cannot be confirmed from status {status}",
            order_id=order_id,
        )

    @classmethod
    def confirmation_in_progress(cls, key: str) -> OrderError:
        return cls(OrderErrorKind.CONFIRMATION_IN_PROGRESS, f"Confirmation in progress for key {key}")

    @classmethod
    def key_failed(cls, key: str) -> OrderError:
        return cls(
            OrderErrorKind.IDEMPOTENCY_KEY_FAILED,
            f"Idempotency key {key} previously failed; use a new key",
        )

    @classmethod
    def key_reused(cls, key: str, detail: str) -> OrderError:
        return cls(OrderErrorKind.IDEMPOTENCY_KEY_REUSED, f"Idempotency key {key} reused: {detail}")

    @classmethod
    def cancel_window_expired(cls, order_id: int) -> OrderError:
        return cls(
            OrderErrorKind.CANCEL_WINDOW_EXPIRED,
            f"Order {order_id} is past its cancel window",
            order_id=order_id,
        )

    @classmethod
    def duplicate_sku(cls, sku: str) -> OrderError:
        return cls(OrderErrorKind.DUPLICATE_SKU, f"SKU already exists: {sku}")


class LedgerUnavailable(RuntimeError):
    """
    The idempotency ledger could not be read or written.

    Infrastructure failure, raised (not returned) and chained to the store
    error's cause.
    """


__all__ = ("OrderErrorKind", "OrderError", "LedgerUnavailable")
