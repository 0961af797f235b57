"""
Catalog — products with price and stock.

    catalog = CatalogService(db, config)
    match await catalog.create_product("SKU-1", "Widget", 1299, stock=10):
        case Ok(product): ...
        case Error(err): ...  # OrderErrorKind.DUPLICATE_SKU
"""

from orderflow.catalog._types import Product, NewProduct
from orderflow.catalog._repo import ProductRepo, LOCKING_DIALECTS
from orderflow.catalog._service import CatalogService

__all__ = (
    "Product",
    "NewProduct",
    "ProductRepo",
    "LOCKING_DIALECTS",
    "CatalogService",
)
