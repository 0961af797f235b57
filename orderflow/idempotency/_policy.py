"""
Idempotency policy — behavior configuration.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta


# ═══════════════════════════════════════════════════════════════════════════════
# Policy — Full Configuration
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class Policy:
    """
    Idempotency policy configuration.

    Fluent builder pattern — chain methods to configure.

    Example:
        policy = (
            Policy()
            .with_ttl(hours=24)
            .with_retry_failed(False)
        )

    Note: Immutable — each method returns new Policy.

    A request that finds the key PROCESSING always fails fast with CONFLICT;
    there is no waiting on another request's outcome.

    retry_failed: whether a FAILED key may be attempted again. Off by default,
    so a failed key stays burned and the caller must send a fresh one.
    """

    record_ttl: timedelta = timedelta(hours=24)
    retry_failed: bool = False

    def with_ttl(
        self,
        *,
        seconds: float | None = None,
        hours: float | None = None,
        delta: timedelta | None = None,
    ) -> Policy:
        """
        Set expires_at distance for new records.

        Example:
            .with_ttl(hours=24)
            .with_ttl(delta=timedelta(days=7))
        """
        if delta is not None:
            ttl_val = delta
        else:
            ttl_val = timedelta(seconds=(seconds or 0) + (hours or 0) * 3600)

        if ttl_val.total_seconds() <= 0:
            raise ValueError("TTL must be positive")

        return Policy(record_ttl=ttl_val, retry_failed=self.retry_failed)

    def with_retry_failed(self, retry: bool = True) -> Policy:
        """
        Whether FAILED keys may be re-attempted.

        Example:
            .with_retry_failed()  # FAILED → PROCESSING → run again
        """
        return Policy(record_ttl=self.record_ttl, retry_failed=retry)


# ═══════════════════════════════════════════════════════════════════════════════
# Exports
# ═══════════════════════════════════════════════════════════════════════════════

__all__ = ("Policy",)
