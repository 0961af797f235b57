"""Catalog types."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from orderflow.db import ProductTable


@dataclass(frozen=True, slots=True)
class Product:
    id: int
    sku: str
    name: str
    price_cents: int
    stock: int
    created_at: datetime

    @classmethod
    def from_row(cls, row: ProductTable) -> Product:
        return cls(
            id=row.id,
            sku=row.sku,
            name=row.name,
            price_cents=row.price_cents,
            stock=row.stock,
            created_at=row.created_at,
        )


@dataclass(frozen=True, slots=True)
class NewProduct:
    """Product to insert. Validated on construction."""

    sku: str
    name: str
    price_cents: int
    stock: int = 0

    def __post_init__(self) -> None:
        if not self.sku.strip():
            raise ValueError("sku must not be blank")
        if not self.name.strip():
            raise ValueError("name must not be blank")
        if self.price_cents < 0:
            raise ValueError(f"price_cents must be >= 0, got {self.price_cents}")
        if self.stock < 0:
            raise ValueError(f"stock must be >= 0, got {self.stock}")


__all__ = ("Product", "NewProduct")
