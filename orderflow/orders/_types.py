"""
Order types.

    Order       header row (status, total, created_at)
    OrderItem   priced line, written once with its order
    OrderView   order + items, what the engine hands back
    OrderLine   one requested {product_id, qty}
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import StrEnum

from orderflow.db import OrderTable, OrderItemTable


class OrderStatus(StrEnum):
    """CREATED → CONFIRMED → CANCELED, or CREATED → CANCELED."""

    CREATED = "CREATED"
    CONFIRMED = "CONFIRMED"
    CANCELED = "CANCELED"


# ═══════════════════════════════════════════════════════════════════════════════
# Input
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class OrderLine:
    product_id: int
    qty: int

    def __post_init__(self) -> None:
        if self.qty <= 0:
            raise ValueError(f"qty must be positive, got {self.qty}")


@dataclass(frozen=True, slots=True)
class OrderFilter:
    """Conjunctive filters for list_orders. None means no constraint."""

    status: OrderStatus | None = None
    created_from: datetime | None = None
    created_to: datetime | None = None
    customer_id: int | None = None


# ═══════════════════════════════════════════════════════════════════════════════
# Stored
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class Order:
    id: int
    customer_id: int
    status: OrderStatus
    total_cents: int
    created_at: datetime

    @classmethod
    def from_row(cls, row: OrderTable) -> Order:
        return cls(
            id=row.id,
            customer_id=row.customer_id,
            status=OrderStatus(row.status),
            total_cents=row.total_cents,
            created_at=row.created_at,
        )


@dataclass(frozen=True, slots=True)
class OrderItem:
    id: int
    order_id: int
    product_id: int
    qty: int
    unit_price_cents: int
    subtotal_cents: int

    @classmethod
    def from_row(cls, row: OrderItemTable) -> OrderItem:
        return cls(
            id=row.id,
            order_id=row.order_id,
            product_id=row.product_id,
            qty=row.qty,
            unit_price_cents=row.unit_price_cents,
            subtotal_cents=row.subtotal_cents,
        )


@dataclass(frozen=True, slots=True)
class OrderView:
    order: Order
    items: tuple[OrderItem, ...]

    @property
    def id(self) -> int:
        return self.order.id

    @property
    def status(self) -> OrderStatus:
        return self.order.status

    @property
    def total_cents(self) -> int:
        return self.order.total_cents


@dataclass(frozen=True, slots=True)
class Confirmation:
    """
    Result of confirm_order.

    payload is the serialized order exactly as cached in the ledger;
    a replay returns the same bytes with from_cache=True.
    """

    order: OrderView
    payload: str
    from_cache: bool


__all__ = (
    "OrderStatus",
    "OrderLine",
    "OrderFilter",
    "Order",
    "OrderItem",
    "OrderView",
    "Confirmation",
)
