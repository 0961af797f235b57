"""
Cursor pagination — last seen id as an exclusive lower bound.

    rows = fetch(id > cursor, order by id, limit + 1)
    page = Page.from_rows(rows, limit, id_of=lambda r: r.id)

More than `limit` rows back means there is a next page, and the id of the
`limit`-th row becomes its cursor.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass


def clamp_limit(limit: int | None, *, default: int = 20, maximum: int = 100) -> int:
    """Clamp a requested page size into [1, maximum]; None or 0 means default."""
    if not limit:
        return default
    return max(1, min(limit, maximum))


def parse_cursor(cursor: str | int | None) -> int | None:
    """Cursor as an id. Anything that isn't a non-negative integer is rejected."""
    if cursor is None or cursor == "":
        return None
    value = int(cursor)
    if value < 0:
        raise ValueError(f"Cursor must be non-negative: {cursor!r}")
    return value


@dataclass(frozen=True, slots=True)
class Page[T]:
    """One page of rows plus the cursor for the next one (None on the last page)."""

    items: tuple[T, ...]
    next_cursor: str | None

    @classmethod
    def from_rows(cls, rows: Sequence[T], limit: int, id_of: Callable[[T], int]) -> Page[T]:
        if len(rows) > limit:
            kept = tuple(rows[:limit])
            return cls(items=kept, next_cursor=str(id_of(kept[-1])))
        return cls(items=tuple(rows), next_cursor=None)

    @property
    def has_more(self) -> bool:
        return self.next_cursor is not None


__all__ = ("Page", "clamp_limit", "parse_cursor")
