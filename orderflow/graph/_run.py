"""
Runner — resolve a target node with injected inputs.

    outcome = await run(FinalResultNode).inject(spec)

The target's dependency graph is discovered by nodnod from the
__compose__ signatures; only the target type needs naming.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, cast
from collections.abc import Callable, Coroutine

from nodnod import Scope, Value, EventLoopAgent, Node


type AgentRun = Callable[[Scope, dict[type[Any], Scope]], Coroutine[Any, Any, None]]


@dataclass(frozen=True, slots=True)
class Run[T]:
    """Awaitable request to resolve `target` given the injected values."""

    target: type[T]
    injections: tuple[tuple[type[Any], Any], ...] = ()

    def inject(self, value: object) -> Run[T]:
        """Inject a value, keyed by its runtime type."""
        return Run(self.target, (*self.injections, (cast(type[Any], type(value)), value)))

    def __await__(self) -> Any:
        return self._execute().__await__()

    async def _execute(self) -> T:
        agent = EventLoopAgent.build({cast(type[Node[Any, Any]], self.target)})
        agent_run = cast(AgentRun, getattr(agent, "run"))

        scope = Scope(detail="orderflow.graph")
        async with scope:
            for typ, value in self.injections:
                scope.push(Value(typ, value))
            await agent_run(scope, {})

            resolved = scope.get(self.target)
            if resolved is None:
                raise LookupError(f"{self.target.__name__} was not resolved")
            return cast(T, resolved.value)


def run[T](target: type[T]) -> Run[T]:
    return Run(target)


__all__ = ("Run", "run")
