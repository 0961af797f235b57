"""
Customers — the engine's view of the external customers service.

    lookup = HttpCustomerLookup(config.customers)
    match await lookup.resolve(7):
        case Ok(None): ...           # not found
        case Ok(customer): ...       # found
        case Error(upstream): ...    # transport failure
"""

from orderflow.customers._types import Customer, UpstreamError
from orderflow.customers._lookup import (
    CustomerLookup,
    HttpCustomerLookup,
    StaticCustomerLookup,
)

__all__ = (
    "Customer",
    "UpstreamError",
    "CustomerLookup",
    "HttpCustomerLookup",
    "StaticCustomerLookup",
)
