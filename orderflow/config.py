"""
Configuration — explicit, immutable settings passed at construction.

Nothing in orderflow reads process environment on its own. The composition
root builds one OrderflowConfig (usually via from_env(os.environ)) and hands
it to the engine and the customer lookup.

    config = OrderflowConfig.from_env(os.environ).with_cancel_window(minutes=5)
    db = await create_database(config.database_url)
    engine = OrderEngine(db, HttpCustomerLookup(config.customers), config)
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from datetime import timedelta


class ConfigError(ValueError):
    """Required setting missing or malformed."""


# ═══════════════════════════════════════════════════════════════════════════════
# Customers API
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class CustomersConfig:
    """Where and how to reach the customers service."""

    base_url: str = ""
    service_token: str = ""
    timeout_seconds: float = 5.0

    @property
    def is_configured(self) -> bool:
        return bool(self.base_url and self.service_token)


# ═══════════════════════════════════════════════════════════════════════════════
# Engine Configuration
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class OrderflowConfig:
    """
    Engine configuration.

    Note: Immutable, each with_* method returns a new config.

    cancel_window: how long a CONFIRMED order stays cancelable.
    idempotency_ttl: expires_at = created_at + ttl on ledger records.
    retry_failed_keys: allow a FAILED idempotency key to be attempted again.
        Off by default, so a failed key forces the caller to pick a fresh one.
    """

    database_url: str = "sqlite+aiosqlite:///:memory:"
    cancel_window: timedelta = timedelta(minutes=10)
    idempotency_ttl: timedelta = timedelta(hours=24)
    default_page_size: int = 20
    max_page_size: int = 100
    retry_failed_keys: bool = False
    customers: CustomersConfig = field(default_factory=CustomersConfig)

    @classmethod
    def from_env(cls, environ: Mapping[str, str]) -> OrderflowConfig:
        """
        Build config from an environment-like mapping.

        Reads DATABASE_URL (required), CUSTOMERS_API_BASE and SERVICE_TOKEN
        (required together), CUSTOMERS_API_TIMEOUT (seconds, optional).
        """
        database_url = environ.get("DATABASE_URL", "").strip()
        if not database_url:
            raise ConfigError("DATABASE_URL is required")

        base_url = environ.get("CUSTOMERS_API_BASE", "").strip()
        token = environ.get("SERVICE_TOKEN", "").strip()
        if not base_url or not token:
            raise ConfigError("CUSTOMERS_API_BASE and SERVICE_TOKEN are required")

        raw_timeout = environ.get("CUSTOMERS_API_TIMEOUT", "").strip()
        try:
            timeout = float(raw_timeout) if raw_timeout else 5.0
        except ValueError as e:
            raise ConfigError(f"CUSTOMERS_API_TIMEOUT is not a number: {raw_timeout!r}") from e

        return cls(
            database_url=database_url,
            customers=CustomersConfig(
                base_url=base_url.rstrip("/"),
                service_token=token,
                timeout_seconds=timeout,
            ),
        )

    def with_database_url(self, url: str) -> OrderflowConfig:
        return replace(self, database_url=url)

    def with_cancel_window(
        self,
        *,
        minutes: float | None = None,
        delta: timedelta | None = None,
    ) -> OrderflowConfig:
        """
        Set the confirmed-order cancel window.

        Example:
            .with_cancel_window(minutes=10)
        """
        window = delta if delta is not None else timedelta(minutes=minutes or 0)
        return replace(self, cancel_window=window)

    def with_idempotency_ttl(
        self,
        *,
        hours: float | None = None,
        delta: timedelta | None = None,
    ) -> OrderflowConfig:
        ttl = delta if delta is not None else timedelta(hours=hours or 0)
        return replace(self, idempotency_ttl=ttl)

    def with_page_sizes(self, default: int, maximum: int) -> OrderflowConfig:
        if not 1 <= default <= maximum:
            raise ConfigError(f"Invalid page sizes: default={default}, max={maximum}")
        return replace(self, default_page_size=default, max_page_size=maximum)

    def with_retry_failed_keys(self, retry: bool = True) -> OrderflowConfig:
        return replace(self, retry_failed_keys=retry)

    def with_customers(self, customers: CustomersConfig) -> OrderflowConfig:
        return replace(self, customers=customers)


__all__ = (
    "ConfigError",
    "CustomersConfig",
    "OrderflowConfig",
)
