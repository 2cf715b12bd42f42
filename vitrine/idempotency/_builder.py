"""
Idempotency builder — fluent API over the graph.

    executor = (
        I.idempotent(place)
        .key(lambda sub: sub.idempotency_key)
        .fingerprint(lambda sub: sub.fingerprint())
        .store(ledger)
        .codec(encode_ids, decode_ids)
        .policy(I.Policy().with_ttl(hours=24))
        .build()
    )
    match await executor.run(submission):
        case Ok(replay): replay.value, replay.from_cache
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from collections.abc import Awaitable, Callable
from typing import Any

from kungfu import LazyCoroResult, Result

from vitrine.errors import StorefrontError
from vitrine.idempotency._types import Replay
from vitrine.idempotency._store import StoreAny, MemoryStore
from vitrine.idempotency._policy import Policy

type KeyFn[K] = Callable[[K], str]
type Operation[K, T] = Callable[[K], Awaitable[Result[T, StorefrontError]]]


@dataclass(slots=True, frozen=True)
class Idempotent[K, T]:
    _operation: Operation[K, T]
    _key_fn: KeyFn[K] | None = None
    _fingerprint: Callable[[K], str] | None = None
    _store: StoreAny | None = None
    _policy: Policy = Policy()
    _encode: Callable[[T], Any] | None = None
    _decode: Callable[[Any], T] | None = None

    def key(self, fn: KeyFn[K]) -> Idempotent[K, T]:
        return replace(self, _key_fn=fn)

    def fingerprint(self, fn: Callable[[K], str]) -> Idempotent[K, T]:
        """Same key with a different fingerprint is a ConflictError."""
        return replace(self, _fingerprint=fn)

    def store(self, s: StoreAny) -> Idempotent[K, T]:
        return replace(self, _store=s)

    def policy(self, p: Policy) -> Idempotent[K, T]:
        return replace(self, _policy=p)

    def codec(self, encode: Callable[[T], Any], decode: Callable[[Any], T]) -> Idempotent[K, T]:
        return replace(self, _encode=encode, _decode=decode)

    def build(self) -> IdempotentExecutor[K, T]:
        if self._key_fn is None:
            raise ValueError("key() is required")
        return IdempotentExecutor(
            operation=self._operation,
            key_fn=self._key_fn,
            fingerprint=self._fingerprint,
            store=self._store if self._store is not None else MemoryStore(),
            policy=self._policy,
            encode=self._encode,
            decode=self._decode,
        )


@dataclass(slots=True, frozen=True)
class IdempotentExecutor[K, T]:
    operation: Operation[K, T]
    key_fn: KeyFn[K]
    fingerprint: Callable[[K], str] | None
    store: StoreAny
    policy: Policy
    encode: Callable[[T], Any] | None = None
    decode: Callable[[Any], T] | None = None

    def run(self, input_val: K) -> LazyCoroResult[Replay[T], StorefrontError]:
        from vitrine.idempotency._graph import IdempotencySpec, run_idempotent

        spec = IdempotencySpec(
            key=self.key_fn(input_val),
            input_value=input_val,
            operation=self.operation,
            store=self.store,
            policy=self.policy,
            input_hash=self.fingerprint(input_val) if self.fingerprint else None,
        )
        if self.encode is not None and self.decode is not None:
            spec = replace(spec, encode=self.encode, decode=self.decode)

        async def execute() -> Result[Replay[T], StorefrontError]:
            return await run_idempotent(spec)

        return LazyCoroResult(execute)

    async def invalidate(self, input_val: K) -> bool:
        return await self.store.release(self.key_fn(input_val))


def idempotent[K, T](operation: Operation[K, T]) -> Idempotent[K, T]:
    return Idempotent(_operation=operation)


__all__ = (
    "Idempotent",
    "IdempotentExecutor",
    "idempotent",
)
