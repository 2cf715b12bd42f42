"""
Fluent runner — sugar over nodnod.

The target's dependencies are discovered by nodnod; inputs are injected by
their runtime type.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, cast
from collections.abc import Callable, Coroutine

from nodnod import Scope, Value, EventLoopAgent, Node


# ═══════════════════════════════════════════════════════════════════════════════
# TypedScope
# ═══════════════════════════════════════════════════════════════════════════════

class TypedScope:
    """Type-keyed view of a nodnod.Scope."""

    __slots__ = ("_scope",)

    def __init__(self, scope: Scope | None = None, detail: str = "scope") -> None:
        self._scope = scope if scope is not None else Scope(detail=detail)

    @property
    def inner(self) -> Scope:
        return self._scope

    def inject[T](self, typ: type[T], value: T) -> TypedScope:
        self._scope.push(Value(typ, value))
        return self

    def get[T](self, typ: type[T]) -> T:
        held = self._scope.get(typ)
        if held is None:
            raise KeyError(f"{typ.__name__} was never computed in scope {self._scope!r}")
        return cast(T, held.value)

    def all_injected(self) -> dict[type[Any], Any]:
        """Snapshot of every value currently held, keyed by type."""
        return {v.cls: v.value for v in self._scope.values()}

    async def __aenter__(self) -> TypedScope:
        await self._scope.__aenter__()
        return self

    async def __aexit__(self, *args: object) -> None:
        await self._scope.__aexit__(*args)


# ═══════════════════════════════════════════════════════════════════════════════
# Run
# ═══════════════════════════════════════════════════════════════════════════════

type _AgentRun = Callable[[Scope, dict[type[Any], Scope]], Coroutine[Any, Any, None]]


@dataclass(frozen=True, slots=True)
class Run[T]:
    """
    Awaitable run of one target node.

        batch_node = await run(OrderBatchNode).inject(draft).inject(quoter)

    Exceptions raised inside nodes propagate unchanged; a NodeError that no
    polymorphic case absorbed surfaces from nodnod as is.
    """

    target: type[T]
    inputs: tuple[object, ...] = ()

    def inject(self, value: object) -> Run[T]:
        return Run(self.target, (*self.inputs, value))

    def __await__(self) -> Any:
        return self._execute().__await__()

    async def _execute(self) -> T:
        agent = EventLoopAgent.build({cast(type[Node[Any, Any]], self.target)})
        agent_run = cast(_AgentRun, getattr(agent, "run"))

        async with TypedScope(detail=f"run:{self.target.__name__}") as scope:
            for value in self.inputs:
                scope.inject(type(value), value)
            await agent_run(scope.inner, {})
            return scope.get(self.target)


def run[T](target: type[T]) -> Run[T]:
    return Run(target)


__all__ = ("TypedScope", "Run", "run")
