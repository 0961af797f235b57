"""
Customer lookup — three outcomes, never conflated.

    Ok(Customer)         customer exists
    Ok(None)             customer does not exist (404)
    Error(UpstreamError) the service could not be asked

Single attempt, no retry. Callers decide what an upstream failure means.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any, Protocol

import httpx
import structlog
from kungfu import Result, Ok, Error

from orderflow.config import CustomersConfig, ConfigError
from orderflow.customers._types import Customer, UpstreamError

logger = structlog.get_logger(__name__)


# ═══════════════════════════════════════════════════════════════════════════════
# Protocol
# ═══════════════════════════════════════════════════════════════════════════════


class CustomerLookup(Protocol):
    async def resolve(self, customer_id: int) -> Result[Customer | None, UpstreamError]:
        """Resolve a customer id."""
        ...


# ═══════════════════════════════════════════════════════════════════════════════
# HTTP implementation
# ═══════════════════════════════════════════════════════════════════════════════


class HttpCustomerLookup:
    """
    Customers service client.

    GET {base_url}/internal/customers/{id} with a service bearer token.

    Note: Pass `client` to share a pool (or a MockTransport in tests);
    otherwise one AsyncClient is created and owned by this lookup.
    """

    def __init__(
        self,
        config: CustomersConfig,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        if not config.is_configured:
            raise ConfigError("Customers API base_url and service_token are required")
        self._config = config
        self._owns_client = client is None
        self._client = client if client is not None else httpx.AsyncClient(
            timeout=config.timeout_seconds
        )

    async def resolve(self, customer_id: int) -> Result[Customer | None, UpstreamError]:
        url = f"{self._config.base_url.rstrip('/')}/internal/customers/{customer_id}"
        try:
            response = await self._client.get(
                url,
                headers={"Authorization": f"Bearer {self._config.service_token}"},
            )
        except httpx.HTTPError as e:
            logger.warning("customer_lookup_transport_error", customer_id=customer_id, error=str(e))
            return Error(UpstreamError(f"Customers API unreachable: {e}", cause=e))

        if response.status_code == 404:
            return Ok(None)
        if not response.is_success:
            logger.warning(
                "customer_lookup_bad_status",
                customer_id=customer_id,
                status_code=response.status_code,
            )
            return Error(
                UpstreamError(
                    f"Customers API error: {response.status_code} {response.text}",
                    status_code=response.status_code,
                )
            )

        try:
            return Ok(_to_customer(response.json()))
        except (ValueError, KeyError, TypeError) as e:
            return Error(
                UpstreamError(
                    f"Customers API returned malformed body: {e}",
                    status_code=response.status_code,
                    cause=e,
                )
            )

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()


def _to_customer(body: dict[str, Any]) -> Customer:
    return Customer(
        id=int(body["id"]),
        name=str(body["name"]),
        email=str(body["email"]),
        phone=body.get("phone"),
    )


# ═══════════════════════════════════════════════════════════════════════════════
# Static implementation — tests and examples
# ═══════════════════════════════════════════════════════════════════════════════


class StaticCustomerLookup:
    """In-memory lookup over a fixed set of customers."""

    def __init__(self, customers: Iterable[Customer] = ()) -> None:
        self._customers = {c.id: c for c in customers}
        self.calls = 0

    def add(self, customer: Customer) -> None:
        self._customers[customer.id] = customer

    async def resolve(self, customer_id: int) -> Result[Customer | None, UpstreamError]:
        self.calls += 1
        return Ok(self._customers.get(customer_id))


__all__ = ("CustomerLookup", "HttpCustomerLookup", "StaticCustomerLookup")
