"""
Idempotency types — ledger records and outcomes.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum, auto
from typing import Any


# ═══════════════════════════════════════════════════════════════════════════════
# Record State — Operation Lifecycle
# ═══════════════════════════════════════════════════════════════════════════════


class RecordState(Enum):
    """
    State of an idempotency record.

    Lifecycle:
        PROCESSING → COMPLETED (success, body cached)
                   → FAILED (error, key is burned)

    Note: Values are what the ledger table stores in `status`.
    """

    PROCESSING = "PROCESSING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"


# ═══════════════════════════════════════════════════════════════════════════════
# Target — what a key is bound to
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class IdempotencyTarget:
    """
    The entity a key is bound to, e.g. ("ORDER_CONFIRMATION", 42).

    fingerprint: compared against the stored record so the same key cannot be
    replayed for a different target.
    """

    type: str
    id: int

    @property
    def fingerprint(self) -> str:
        return f"{self.type}:{self.id}"


ORDER_CONFIRMATION = "ORDER_CONFIRMATION"


# ═══════════════════════════════════════════════════════════════════════════════
# Idempotency Record — Stored State
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class IdempotencyRecord:
    """
    A stored ledger record.

    value: serialized response, only for COMPLETED.
    error: error description, only for FAILED.
    """

    key: str
    target: IdempotencyTarget
    state: RecordState
    value: str | None
    error: str | None
    created_at: datetime
    expires_at: datetime

    def is_expired(self, now: datetime) -> bool:
        return now > self.expires_at

    @property
    def is_processing(self) -> bool:
        return self.state == RecordState.PROCESSING

    @property
    def is_completed(self) -> bool:
        return self.state == RecordState.COMPLETED

    @property
    def is_failed(self) -> bool:
        return self.state == RecordState.FAILED


# ═══════════════════════════════════════════════════════════════════════════════
# Result Types
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class IdempotencyResult:
    """
    Successful idempotent execution.

    Note: from_cache is True when the value was replayed from a COMPLETED
    record and the operation did not run.
    """

    value: str
    from_cache: bool
    key: str


class IdempotencyErrorKind(Enum):
    """Kinds of idempotency errors."""

    CONFLICT = auto()  # Another request holds the key (PROCESSING)
    KEY_FAILED = auto()  # Key previously failed; needs a fresh key
    INPUT_MISMATCH = auto()  # Key bound to a different target
    STORE_ERROR = auto()  # Ledger backend error
    EXECUTION = auto()  # Wrapped operation failed


@dataclass(frozen=True, slots=True)
class IdempotencyError:
    """
    Idempotency operation error.

    Note: original_error holds what the wrapped operation failed with
    (its Error value, or the exception it raised) for EXECUTION, and the
    backend exception for STORE_ERROR.
    """

    kind: IdempotencyErrorKind
    message: str
    original_error: Any | None = None


# ═══════════════════════════════════════════════════════════════════════════════
# Exports
# ═══════════════════════════════════════════════════════════════════════════════

__all__ = (
    "RecordState",
    "IdempotencyTarget",
    "ORDER_CONFIRMATION",
    "IdempotencyRecord",
    "IdempotencyResult",
    "IdempotencyError",
    "IdempotencyErrorKind",
)
