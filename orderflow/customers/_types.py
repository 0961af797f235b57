"""Customer types — what the customers service returns, and how it fails."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class Customer:
    id: int
    name: str
    email: str
    phone: str | None = None


@dataclass(frozen=True, slots=True)
class UpstreamError:
    """
    Transport-level failure talking to the customers service.

    status_code is None when no response arrived at all.
    """

    message: str
    status_code: int | None = None
    cause: Exception | None = None

    def __str__(self) -> str:
        return self.message


__all__ = ("Customer", "UpstreamError")
