from __future__ import annotations

import pytest

from orderflow.catalog import CatalogService, NewProduct, Product
from orderflow.errors import OrderErrorKind
from tests.helpers import FrozenClock, err, ok


async def test_create_and_get(catalog: CatalogService, clock: FrozenClock) -> None:
    product = ok(await catalog.create_product("SKU-9", "Sprocket", 1299, stock=4))

    assert product.sku == "SKU-9"
    assert product.price_cents == 1299
    assert product.stock == 4
    assert product.created_at == clock.now
    assert await catalog.get_product(product.id) == product
    assert await catalog.get_product(product.id + 100) is None


async def test_duplicate_sku(catalog: CatalogService, products: dict[str, Product]) -> None:
    error = err(await catalog.create_product("WID-1", "Another widget", 1))

    assert error.kind is OrderErrorKind.DUPLICATE_SKU


async def test_list_search_matches_name_or_sku(
    catalog: CatalogService, products: dict[str, Product]
) -> None:
    by_name = await catalog.list_products(search="gadg")
    by_sku = await catalog.list_products(search="giz-")

    assert [p.id for p in by_name.items] == [products["gadget"].id]
    assert [p.id for p in by_sku.items] == [products["gizmo"].id]


async def test_list_pages(catalog: CatalogService, products: dict[str, Product]) -> None:
    first = await catalog.list_products(limit=2)
    assert [p.sku for p in first.items] == ["WID-1", "GAD-1"]
    assert first.next_cursor == str(products["gadget"].id)

    rest = await catalog.list_products(cursor=first.next_cursor, limit=2)
    assert [p.sku for p in rest.items] == ["GIZ-1"]
    assert rest.next_cursor is None


async def test_patch_price(catalog: CatalogService, products: dict[str, Product]) -> None:
    widget = products["widget"]

    patched = await catalog.patch_price(widget.id, 1500)

    assert patched is not None
    assert patched.price_cents == 1500
    assert patched.stock == widget.stock
    assert await catalog.patch_price(9999, 1) is None
    with pytest.raises(ValueError):
        await catalog.patch_price(widget.id, -1)


@pytest.mark.parametrize(
    "fields",
    [
        {"sku": "", "name": "x", "price_cents": 1},
        {"sku": "s", "name": " ", "price_cents": 1},
        {"sku": "s", "name": "x", "price_cents": -1},
        {"sku": "s", "name": "x", "price_cents": 1, "stock": -1},
    ],
)
def test_new_product_validation(fields: dict) -> None:
    with pytest.raises(ValueError):
        NewProduct(**fields)
