"""
Lift — defer an async function that already returns a Result.

Every engine operation has this shape, so saga steps are built with it:

    L.from_result_async(lambda: engine.create_order(customer_id, lines))
"""

from __future__ import annotations

from collections.abc import Callable, Awaitable

from kungfu import LazyCoroResult, Result

from orderflow._types import Lazy


def from_result_async[T, E](
    fn: Callable[[], Awaitable[Result[T, E]]],
) -> Lazy[T, E]:
    """Nothing runs until the returned LazyCoroResult is awaited."""
    async def _run() -> Result[T, E]:
        return await fn()
    return LazyCoroResult(_run)


__all__ = ("from_result_async",)
