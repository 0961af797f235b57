"""
Orders — the order lifecycle engine.

    CREATED ──confirm(key)──▶ CONFIRMED ──cancel (within window)──▶ CANCELED
       │                                                              ▲
       └────────────────────────cancel────────────────────────────────┘

Creation reserves stock, cancellation gives it back, confirmation is
idempotent per caller-supplied key.
"""

from orderflow.errors import OrderError, OrderErrorKind, LedgerUnavailable
from orderflow.orders._types import (
    OrderStatus,
    OrderLine,
    OrderFilter,
    Order,
    OrderItem,
    OrderView,
    Confirmation,
)
from orderflow.orders._codec import encode_order, decode_order
from orderflow.orders._repo import OrderRepo, PricedLine
from orderflow.orders._engine import OrderEngine, ConfirmRequest

__all__ = (
    # Errors
    "OrderError",
    "OrderErrorKind",
    "LedgerUnavailable",
    # Types
    "OrderStatus",
    "OrderLine",
    "OrderFilter",
    "Order",
    "OrderItem",
    "OrderView",
    "Confirmation",
    # Codec
    "encode_order",
    "decode_order",
    # Repository
    "OrderRepo",
    "PricedLine",
    # Engine
    "OrderEngine",
    "ConfirmRequest",
)
