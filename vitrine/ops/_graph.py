"""
Ops — data-driven dispatch through nodnod.

Each handler becomes a node whose parameters are resolved from the scope:
the request by its Op type, services by theirs.

    @dataclass(frozen=True, slots=True)
    class GetProduct(Op[ProductView, StorefrontError]):
        product_id: int

    async def get_product(req: GetProduct, shop: Storefront) -> Result[ProductView, StorefrontError]:
        return await shop.product(req.product_id)

    runner = ops().on(GetProduct, get_product).compile().inject(Storefront, shop)
    result = await runner.run(GetProduct(42))
"""

from __future__ import annotations

import inspect
from dataclasses import dataclass, field
from typing import Any, Callable, Awaitable, Generic, TypeVar, get_type_hints, cast
from abc import ABC

import structlog
from kungfu import Result, LazyCoroResult, Some, is_ok

from nodnod import Node, EventLoopAgent
from nodnod.utils.create_node import create_node

from vitrine import graph as G

T = TypeVar("T")
E = TypeVar("E")
T_co = TypeVar("T_co", covariant=True)
E_co = TypeVar("E_co", covariant=True)

HandlerFunc = Callable[..., Awaitable[Result[Any, Any]]]

log = structlog.get_logger(__name__)


class Op(ABC, Generic[T_co, E_co]):
    """Marker base: an Op[T, E] is answered with Result[T, E]."""


@dataclass(frozen=True, slots=True)
class _OpReg:
    op_type: type[Op[Any, Any]]
    handler: HandlerFunc
    node_cls: type[Node[Any, Any]]


def _node_for_handler(op_type: type[Op[Any, Any]], handler: HandlerFunc) -> type[Node[Any, Any]]:
    """Handler parameters become nodnod injections, keyed by annotation."""
    sig = inspect.signature(handler)
    hints = get_type_hints(handler)

    annotations: dict[str, Any] = {}
    params: list[inspect.Parameter] = []
    for pname, p in sig.parameters.items():
        annotations[pname] = hints.get(pname, p.annotation)
        params.append(inspect.Parameter(pname, inspect.Parameter.POSITIONAL_OR_KEYWORD))
    annotations["return"] = Result[Any, Any]

    async def compose_fn(**kwargs: Any) -> Result[Any, Any]:
        return await handler(**kwargs)

    compose_fn.__annotations__ = annotations
    compose_fn.__signature__ = inspect.Signature(parameters=params)  # type: ignore[attr-defined]
    compose_fn.__name__ = f"compose_{op_type.__name__}"

    return create_node(
        name=f"Node:{op_type.__name__}",
        base_node=Node,
        bases=(),
        namespace={
            "__compose__": compose_fn,
            "__module__": handler.__module__,
        },
    )


@dataclass(slots=True, frozen=True)
class OpsBuilder:
    _items: tuple[tuple[type[Op[Any, Any]], HandlerFunc], ...] = ()

    def on(self, op_type: type[Op[Any, Any]], handler: HandlerFunc) -> OpsBuilder:
        """Register a handler; the last registration for a type wins."""
        others = tuple(i for i in self._items if i[0] is not op_type)
        return OpsBuilder(_items=(*others, (op_type, handler)))

    def compile(self) -> Runner:
        registry = {
            op_type: _OpReg(op_type, handler, _node_for_handler(op_type, handler))
            for op_type, handler in self._items
        }
        return Runner(_registry=registry)


@dataclass(slots=True)
class Runner:
    _registry: dict[type[Op[Any, Any]], _OpReg]
    _global_scope: G.TypedScope = field(default_factory=lambda: G.TypedScope(detail="ops:global"))

    def inject(self, typ: type[object], impl: object) -> Runner:
        """Shared service, visible to every handler."""
        self._global_scope.inject(typ, impl)
        return self

    @property
    def op_types(self) -> tuple[type[Op[Any, Any]], ...]:
        return tuple(self._registry)

    async def run(self, req: Op[T, E]) -> Result[T, E]:
        op_type = type(req)
        reg = self._registry.get(op_type)
        if reg is None:
            raise LookupError(f"no handler registered for {op_type.__name__}")

        agent = EventLoopAgent.build({reg.node_cls})

        async with G.TypedScope(detail=f"ops:{op_type.__name__}") as scope:
            for typ, impl in self._global_scope.all_injected().items():
                scope.inject(typ, impl)
            scope.inject(op_type, req)

            await agent.run(local_scope=scope.inner, mapped_scopes={})  # type: ignore[misc]

            match scope.inner.retrieve(reg.node_cls):
                case Some(val):
                    result = cast(Result[T, E], val.value)
                case _:
                    raise LookupError(f"{op_type.__name__} produced no result")

        log.debug("ops.run", op=op_type.__name__, ok=is_ok(result))
        return result

    def __call__(self, req: Op[T, E]) -> LazyCoroResult[T, E]:
        async def inner() -> Result[T, E]:
            return await self.run(req)
        return LazyCoroResult(inner)


def ops() -> OpsBuilder:
    """ops().on(...).compile()"""
    return OpsBuilder()


__all__ = ("Op", "OpsBuilder", "Runner", "ops")
