"""
Idempotency ledger — typed storage protocol.

All methods return Result for explicit error handling; a backend exception
never escapes as-is, it comes back as Error(StoreError(..., cause)).
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Protocol, Any

from kungfu import Result, Ok, Error

from orderflow._types import Clock, utcnow
from orderflow.idempotency._types import (
    RecordState,
    IdempotencyRecord,
    IdempotencyTarget,
)


# ═══════════════════════════════════════════════════════════════════════════════
# Store Error
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True)
class StoreError:
    """Ledger operation error."""

    message: str
    cause: Exception | None = None


# ═══════════════════════════════════════════════════════════════════════════════
# Ledger Protocol — Result-based
# ═══════════════════════════════════════════════════════════════════════════════


class Ledger(Protocol):
    """
    Idempotency ledger protocol.

    Note: complete() takes the caller's open unit of work (`unit`) so the
    COMPLETED write commits together with the business effect it caches.
    Backends without transactions ignore it.
    """

    async def get(self, key: str) -> Result[IdempotencyRecord | None, StoreError]:
        """Get existing record. Returns Ok(None) if not found."""
        ...

    async def acquire(
        self,
        key: str,
        target: IdempotencyTarget,
        ttl: timedelta,
    ) -> Result[bool, StoreError]:
        """
        Atomically insert a PROCESSING record.

        Returns Ok(True) if inserted, Ok(False) if the key already exists.
        Must be atomic (insert-if-absent).
        """
        ...

    async def reopen(self, key: str) -> Result[bool, StoreError]:
        """
        Atomically move a FAILED record back to PROCESSING.

        Returns Ok(False) if the record is not FAILED any more.
        """
        ...

    async def complete(
        self,
        key: str,
        value: str,
        *,
        unit: Any | None = None,
    ) -> Result[None, StoreError]:
        """Store the response body and mark COMPLETED."""
        ...

    async def fail(self, key: str, error: str) -> Result[None, StoreError]:
        """Mark FAILED. Never leaves a record PROCESSING after an error."""
        ...


# ═══════════════════════════════════════════════════════════════════════════════
# Memory Ledger — For Testing
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass
class _StoredRecord:
    """Internal mutable record for MemoryLedger."""

    key: str
    target: IdempotencyTarget
    state: RecordState
    value: str | None
    error: str | None
    created_at: datetime
    expires_at: datetime

    def to_record(self) -> IdempotencyRecord:
        return IdempotencyRecord(
            key=self.key,
            target=self.target,
            state=self.state,
            value=self.value,
            error=self.error,
            created_at=self.created_at,
            expires_at=self.expires_at,
        )


class MemoryLedger:
    """
    In-memory idempotency ledger.

    Note: Single process only. Nothing is durable and the unit is ignored.
    Used to exercise the state machine without a database.
    """

    def __init__(self, clock: Clock = utcnow) -> None:
        self._records: dict[str, _StoredRecord] = {}
        self._lock = asyncio.Lock()
        self._clock = clock

    async def get(self, key: str) -> Result[IdempotencyRecord | None, StoreError]:
        async with self._lock:
            record = self._records.get(key)
            return Ok(record.to_record() if record is not None else None)

    async def acquire(
        self,
        key: str,
        target: IdempotencyTarget,
        ttl: timedelta,
    ) -> Result[bool, StoreError]:
        async with self._lock:
            if key in self._records:
                return Ok(False)

            now = self._clock()
            self._records[key] = _StoredRecord(
                key=key,
                target=target,
                state=RecordState.PROCESSING,
                value=None,
                error=None,
                created_at=now,
                expires_at=now + ttl,
            )
            return Ok(True)

    async def reopen(self, key: str) -> Result[bool, StoreError]:
        async with self._lock:
            existing = self._records.get(key)
            if existing is None or existing.state != RecordState.FAILED:
                return Ok(False)
            existing.state = RecordState.PROCESSING
            existing.error = None
            return Ok(True)

    async def complete(
        self,
        key: str,
        value: str,
        *,
        unit: Any | None = None,
    ) -> Result[None, StoreError]:
        async with self._lock:
            existing = self._records.get(key)
            if existing is None or existing.state != RecordState.PROCESSING:
                return Error(StoreError(f"No PROCESSING record for key: {key}"))
            existing.state = RecordState.COMPLETED
            existing.value = value
            return Ok(None)

    async def fail(self, key: str, error: str) -> Result[None, StoreError]:
        async with self._lock:
            existing = self._records.get(key)
            if existing is None or existing.state != RecordState.PROCESSING:
                return Error(StoreError(f"No PROCESSING record for key: {key}"))
            existing.state = RecordState.FAILED
            existing.error = error
            return Ok(None)


# ═══════════════════════════════════════════════════════════════════════════════
# Exports
# ═══════════════════════════════════════════════════════════════════════════════

__all__ = (
    "StoreError",
    "Ledger",
    "MemoryLedger",
)
