"""
Idempotency graph — the decision as nodnod nodes.

    IdempotencySpec
         │
    FetchRecordNode
         ├── CompletedRecordNode ─┐
         ├── PendingRecordNode ───┼── IdempotencyOutcome (@polymorphic)
         └── NoRecordNode ────────┘             │
                                          FinalResultNode

State nodes raise NodeError when the record is not in their state; the
polymorphic outcome takes the first case whose dependencies resolved.
"""

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

import structlog
from nodnod import NodeError, polymorphic, case
from kungfu import Result, Ok, Error

from vitrine import graph as G
from vitrine.errors import StorefrontError, ConflictError
from vitrine.idempotency._types import IdempotencyRecord, Replay
from vitrine.idempotency._store import StoreAny
from vitrine.idempotency._policy import Policy, OnPending

log = structlog.get_logger(__name__)

type Outcome = Result[Replay[Any], StorefrontError]


def _same(value: Any) -> Any:
    return value


@dataclass(frozen=True)
class IdempotencySpec:
    """
    One idempotent call.

    encode/decode convert between the operation's value and what the store
    keeps; identity for MemoryStore, JSON text for the SQL ledger.
    """

    key: str
    input_value: Any
    operation: Callable[[Any], Awaitable[Result[Any, StorefrontError]]]
    store: StoreAny
    policy: Policy
    input_hash: str | None = None
    encode: Callable[[Any], Any] = _same
    decode: Callable[[Any], Any] = _same


# ═══════════════════════════════════════════════════════════════════════════════
# Record Nodes
# ═══════════════════════════════════════════════════════════════════════════════


@G.node
class FetchRecordNode:
    def __init__(self, record: IdempotencyRecord[Any] | None, spec: IdempotencySpec) -> None:
        self.record = record
        self.spec = spec

    @classmethod
    async def __compose__(cls, spec: IdempotencySpec) -> "FetchRecordNode":
        return cls(await spec.store.get(spec.key), spec)


@G.node
class CompletedRecordNode:
    def __init__(self, record: IdempotencyRecord[Any], spec: IdempotencySpec) -> None:
        self.record = record
        self.spec = spec

    @classmethod
    def __compose__(cls, fetch: FetchRecordNode) -> "CompletedRecordNode":
        if fetch.record is None or not fetch.record.is_completed:
            raise NodeError("not completed")
        return cls(fetch.record, fetch.spec)


@G.node
class PendingRecordNode:
    def __init__(self, record: IdempotencyRecord[Any], spec: IdempotencySpec) -> None:
        self.record = record
        self.spec = spec

    @classmethod
    def __compose__(cls, fetch: FetchRecordNode) -> "PendingRecordNode":
        if fetch.record is None or not fetch.record.is_pending:
            raise NodeError("not pending")
        return cls(fetch.record, fetch.spec)


@G.node
class NoRecordNode:
    def __init__(self, spec: IdempotencySpec) -> None:
        self.spec = spec

    @classmethod
    def __compose__(cls, fetch: FetchRecordNode) -> "NoRecordNode":
        if fetch.record is not None:
            raise NodeError("record exists")
        return cls(fetch.spec)


# ═══════════════════════════════════════════════════════════════════════════════
# Helpers
# ═══════════════════════════════════════════════════════════════════════════════


def _mismatch(spec: IdempotencySpec, record: IdempotencyRecord[Any]) -> bool:
    return (
        spec.input_hash is not None
        and record.input_hash is not None
        and spec.input_hash != record.input_hash
    )


def _key_reused(spec: IdempotencySpec) -> Outcome:
    log.warning("idempotency.key_reused", key=spec.key)
    return Error(ConflictError("Clé d'idempotence déjà utilisée pour une autre commande"))


def _replayed(spec: IdempotencySpec, record: IdempotencyRecord[Any]) -> Outcome:
    log.info("idempotency.replayed", key=spec.key)
    return Ok(Replay(value=spec.decode(record.value), from_cache=True, key=spec.key))


async def _execute(spec: IdempotencySpec) -> Outcome:
    """Run under a claimed key; business failure releases the key."""
    try:
        result = await spec.operation(spec.input_value)
    except BaseException:
        await spec.store.release(spec.key)
        raise

    match result:
        case Ok(value):
            await spec.store.complete(spec.key, spec.encode(value), spec.policy.result_ttl)
            return Ok(Replay(value=value, from_cache=False, key=spec.key))
        case Error(err):
            await spec.store.release(spec.key)
            return Error(err)


def _in_progress() -> Outcome:
    return Error(ConflictError("Commande déjà en cours de traitement"))


async def _on_pending(spec: IdempotencySpec, record: IdempotencyRecord[Any]) -> Outcome:
    if _mismatch(spec, record):
        return _key_reused(spec)
    if spec.policy.on_pending is OnPending.FAIL:
        return _in_progress()
    return await _await_completion(spec)


async def _await_completion(spec: IdempotencySpec) -> Outcome:
    """Poll until the other attempt completes, releases the key, or time runs out."""
    deadline = spec.policy.wait_timeout.total_seconds()
    waited = 0.0
    while waited < deadline:
        await asyncio.sleep(spec.policy.poll_interval)
        waited += spec.policy.poll_interval

        record = await spec.store.get(spec.key)
        if record is None:
            # the other attempt failed and released the key
            return await _claim_and_execute(spec)
        if record.is_completed:
            return _replayed(spec, record)

    log.warning("idempotency.wait_timeout", key=spec.key)
    return _in_progress()


async def _claim_and_execute(spec: IdempotencySpec) -> Outcome:
    if await spec.store.claim(spec.key, spec.policy.result_ttl, spec.input_hash):
        return await _execute(spec)

    record = await spec.store.get(spec.key)
    if record is None:
        return await _claim_and_execute(spec)
    if record.is_completed:
        if _mismatch(spec, record):
            return _key_reused(spec)
        return _replayed(spec, record)
    return await _on_pending(spec, record)


# ═══════════════════════════════════════════════════════════════════════════════
# Outcome
# ═══════════════════════════════════════════════════════════════════════════════


@polymorphic[Outcome]
class IdempotencyOutcome:
    @case
    def replay(cls, node: CompletedRecordNode) -> Outcome:
        if _mismatch(node.spec, node.record):
            raise NodeError("input mismatch")
        return _replayed(node.spec, node.record)

    @case
    def key_reused(cls, node: CompletedRecordNode) -> Outcome:
        if not _mismatch(node.spec, node.record):
            raise NodeError("input matches")
        return _key_reused(node.spec)

    @case
    def pending_fail(cls, node: PendingRecordNode) -> Outcome:
        if node.spec.policy.on_pending is not OnPending.FAIL:
            raise NodeError("policy is not FAIL")
        return _in_progress()

    @case
    async def pending_wait(cls, node: PendingRecordNode) -> Outcome:
        if node.spec.policy.on_pending is not OnPending.WAIT:
            raise NodeError("policy is not WAIT")
        return await _on_pending(node.spec, node.record)

    @case
    async def execute_new(cls, node: NoRecordNode) -> Outcome:
        return await _claim_and_execute(node.spec)


@G.node
class FinalResultNode:
    def __init__(self, outcome: Outcome) -> None:
        self.outcome = outcome

    @classmethod
    def __compose__(cls, outcome: IdempotencyOutcome) -> "FinalResultNode":
        return cls(outcome.value)


async def run_idempotent(spec: IdempotencySpec) -> Outcome:
    node = await G.run(FinalResultNode).inject(spec)
    return node.outcome


__all__ = (
    "Outcome",
    "IdempotencySpec",
    "FetchRecordNode",
    "CompletedRecordNode",
    "PendingRecordNode",
    "NoRecordNode",
    "IdempotencyOutcome",
    "FinalResultNode",
    "run_idempotent",
)
