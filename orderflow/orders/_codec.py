"""JSON codec for the confirmation payload cached in the ledger."""

from __future__ import annotations

import json
from datetime import datetime
from typing import Any

from orderflow.orders._types import Order, OrderItem, OrderStatus, OrderView


def encode_order(view: OrderView) -> str:
    """Serialize deterministically (sorted keys, compact separators)."""
    body = {
        "id": view.order.id,
        "customer_id": view.order.customer_id,
        "status": view.order.status.value,
        "total_cents": view.order.total_cents,
        "created_at": view.order.created_at.isoformat(),
        "items": [
            {
                "id": item.id,
                "product_id": item.product_id,
                "qty": item.qty,
                "unit_price_cents": item.unit_price_cents,
                "subtotal_cents": item.subtotal_cents,
            }
            for item in view.items
        ],
    }
    return json.dumps(body, sort_keys=True, separators=(",", ":"))


def decode_order(payload: str) -> OrderView:
    body: dict[str, Any] = json.loads(payload)
    order_id = int(body["id"])
    return OrderView(
        order=Order(
            id=order_id,
            customer_id=int(body["customer_id"]),
            status=OrderStatus(body["status"]),
            total_cents=int(body["total_cents"]),
            created_at=datetime.fromisoformat(body["created_at"]),
        ),
        items=tuple(
            OrderItem(
                id=int(item["id"]),
                order_id=order_id,
                product_id=int(item["product_id"]),
                qty=int(item["qty"]),
                unit_price_cents=int(item["unit_price_cents"]),
                subtotal_cents=int(item["subtotal_cents"]),
            )
            for item in body["items"]
        ),
    )


__all__ = ("encode_order", "decode_order")
