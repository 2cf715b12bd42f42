import asyncio
from dataclasses import dataclass

import pytest
from kungfu import Ok, Error, LazyCoroResult, Result

from vitrine import idempotency as I
from vitrine.errors import ConflictError, StorefrontError, ValidationError
from vitrine.lift import from_domain


@dataclass(frozen=True, slots=True)
class Charge:
    key: str
    amount: int


class Ledger:
    """Counts how often the wrapped operation actually ran."""

    def __init__(self, fail_first: int = 0, delay: float = 0.0) -> None:
        self.calls = 0
        self.fail_first = fail_first
        self.delay = delay

    def charge(self, req: Charge) -> LazyCoroResult[str, StorefrontError]:
        async def run() -> str:
            self.calls += 1
            if self.delay:
                await asyncio.sleep(self.delay)
            if self.calls <= self.fail_first:
                raise ValidationError("amount", "refusé")
            return f"tx-{req.key}-{self.calls}"
        return from_domain(run)


def _executor(ledger: Ledger, policy: I.Policy | None = None) -> I.IdempotentExecutor[Charge, str]:
    return (
        I.idempotent(ledger.charge)
        .key(lambda c: c.key)
        .fingerprint(lambda c: str(c.amount))
        .store(I.MemoryStore())
        .policy(policy or I.Policy().with_ttl(hours=1))
        .build()
    )


async def test_second_call_replays() -> None:
    ledger = Ledger()
    executor = _executor(ledger)

    first = await executor.run(Charge("k1", 100))
    second = await executor.run(Charge("k1", 100))

    match first, second:
        case Ok(a), Ok(b):
            assert not a.from_cache
            assert b.from_cache
            assert a.value == b.value == "tx-k1-1"
        case other:
            raise AssertionError(f"unexpected {other!r}")
    assert ledger.calls == 1


async def test_other_key_executes() -> None:
    ledger = Ledger()
    executor = _executor(ledger)
    await executor.run(Charge("k1", 100))
    await executor.run(Charge("k2", 100))
    assert ledger.calls == 2


async def test_same_key_other_payload_conflicts() -> None:
    ledger = Ledger()
    executor = _executor(ledger)
    await executor.run(Charge("k1", 100))

    match await executor.run(Charge("k1", 999)):
        case Error(ConflictError()):
            pass
        case other:
            raise AssertionError(f"unexpected {other!r}")
    assert ledger.calls == 1


async def test_business_failure_releases_the_key() -> None:
    ledger = Ledger(fail_first=1)
    executor = _executor(ledger)

    match await executor.run(Charge("k1", 100)):
        case Error(ValidationError()):
            pass
        case other:
            raise AssertionError(f"unexpected {other!r}")

    match await executor.run(Charge("k1", 100)):
        case Ok(replay):
            assert not replay.from_cache
        case other:
            raise AssertionError(f"unexpected {other!r}")
    assert ledger.calls == 2


async def test_concurrent_duplicates_wait_for_the_first() -> None:
    ledger = Ledger(delay=0.05)
    executor = _executor(ledger, I.Policy().with_on_pending(I.WAIT).with_poll_interval(0.01))

    a, b = await asyncio.gather(
        executor.run(Charge("k1", 100)),
        executor.run(Charge("k1", 100)),
    )
    assert ledger.calls == 1
    assert isinstance(a, Ok) and isinstance(b, Ok)
    assert {a.unwrap().from_cache, b.unwrap().from_cache} == {True, False}


async def test_pending_fail_policy() -> None:
    ledger = Ledger(delay=0.05)
    executor = _executor(ledger, I.Policy().with_on_pending(I.FAIL))

    a, b = await asyncio.gather(
        executor.run(Charge("k1", 100)),
        executor.run(Charge("k1", 100)),
    )
    assert ledger.calls == 1
    assert sorted(type(r).__name__ for r in (a, b)) == ["Error", "Ok"]


async def test_unexpected_exception_releases_and_propagates() -> None:
    store: I.MemoryStore[str] = I.MemoryStore()

    async def boom(_: Charge) -> Result[str, StorefrontError]:
        raise RuntimeError("disk on fire")

    executor = I.idempotent(boom).key(lambda c: c.key).store(store).build()
    with pytest.raises(RuntimeError):
        await executor.run(Charge("k1", 100))
    assert await store.get("k1") is None


async def test_invalidate_forgets_the_result() -> None:
    ledger = Ledger()
    executor = _executor(ledger)
    await executor.run(Charge("k1", 100))
    assert await executor.invalidate(Charge("k1", 100))
    await executor.run(Charge("k1", 100))
    assert ledger.calls == 2


async def test_expired_records_are_gone() -> None:
    store: I.MemoryStore[str] = I.MemoryStore()
    assert await store.claim("k", None, None)
    assert not await store.claim("k", None, None)
    await store.complete("k", "v", I.Policy().with_ttl(seconds=0.01).result_ttl)
    await asyncio.sleep(0.02)
    assert await store.get("k") is None


def test_key_is_required() -> None:
    with pytest.raises(ValueError):
        I.idempotent(Ledger().charge).build()
