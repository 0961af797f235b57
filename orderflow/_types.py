"""
Core types for orderflow.

Re-exports from kungfu + custom type aliases.
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import UTC, datetime

# Re-export from kungfu
from kungfu import Result, Ok, Error, LazyCoroResult

type Lazy[T, E] = LazyCoroResult[T, E]
"""Lazy async computation that may fail."""

# ═══════════════════════════════════════════════════════════════════════════════
# Clock
# ═══════════════════════════════════════════════════════════════════════════════

type Clock = Callable[[], datetime]
"""Wall-clock source. Returns naive UTC datetimes (what the stores round-trip)."""


def utcnow() -> datetime:
    return datetime.now(UTC).replace(tzinfo=None)


__all__ = (
    # Re-exports from kungfu
    "Result",
    "Ok",
    "Error",
    "LazyCoroResult",
    # Aliases
    "Lazy",
    "Clock",
    "utcnow",
)
