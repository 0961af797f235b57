"""
orderflow — order lifecycle engine with idempotent confirmation.

    from orderflow import idempotency as I   # Exactly-once effects per key
    from orderflow import saga as S          # Compensated step chains
    from orderflow import graph as G         # Decision graphs

    db = await create_database(config.database_url)
    engine = OrderEngine(db, HttpCustomerLookup(config.customers), config)
"""

from orderflow import saga
from orderflow import graph
from orderflow import idempotency
from orderflow import lift
from orderflow._types import (
    Lazy,
    Clock,
    utcnow,
)
from orderflow._pagination import Page
from orderflow.config import ConfigError, CustomersConfig, OrderflowConfig
from orderflow.db import Database, create_database
from orderflow.errors import OrderError, OrderErrorKind, LedgerUnavailable
from orderflow.customers import (
    Customer,
    UpstreamError,
    CustomerLookup,
    HttpCustomerLookup,
    StaticCustomerLookup,
)
from orderflow.catalog import CatalogService, Product
from orderflow.orders import (
    OrderEngine,
    OrderStatus,
    OrderLine,
    OrderFilter,
    Order,
    OrderItem,
    OrderView,
    Confirmation,
)
from orderflow.checkout import Checkout, CheckoutResult
from orderflow.log import configure_logging

__version__ = "0.1.0"

__all__ = (
    "saga",
    "graph",
    "idempotency",
    "lift",
    "Lazy",
    "Clock",
    "utcnow",
    "Page",
    "ConfigError",
    "CustomersConfig",
    "OrderflowConfig",
    "Database",
    "create_database",
    "OrderError",
    "OrderErrorKind",
    "LedgerUnavailable",
    "Customer",
    "UpstreamError",
    "CustomerLookup",
    "HttpCustomerLookup",
    "StaticCustomerLookup",
    "CatalogService",
    "Product",
    "OrderEngine",
    "OrderStatus",
    "OrderLine",
    "OrderFilter",
    "Order",
    "OrderItem",
    "OrderView",
    "Confirmation",
    "Checkout",
    "CheckoutResult",
    "configure_logging",
)
