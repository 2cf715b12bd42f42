from kungfu import Ok, Error, LazyCoroResult, Result
from combinators import lift as L

from vitrine import saga as S


def _ok[T](value: T) -> LazyCoroResult[T, str]:
    async def run() -> Result[T, str]:
        return Ok(value)
    return LazyCoroResult(run)


def _fail(error: str) -> LazyCoroResult[int, str]:
    async def run() -> Result[int, str]:
        return Error(error)
    return LazyCoroResult(run)


async def test_single_step() -> None:
    match await S.run(S.step(_ok(1), name="one")):
        case Ok(result):
            assert result.value == 1
            assert result.steps_executed == 1
            assert result.compensators_recorded == 0
        case Error(e):
            raise AssertionError(e)


async def test_chain_success_keeps_compensators_unused() -> None:
    undone: list[int] = []

    async def undo(value: int) -> None:
        undone.append(value)

    chain = S.step(_ok(1), compensate=undo).then(lambda v: S.step(_ok(v + 1)))
    match await S.run_chain(chain):
        case Ok(result):
            assert result.value == 2
            assert result.steps_executed == 2
            assert result.compensators_recorded == 1
        case Error(e):
            raise AssertionError(e)
    assert undone == []


async def test_second_step_failure_rolls_back_the_first() -> None:
    undone: list[int] = []

    async def undo(value: int) -> None:
        undone.append(value)

    chain = S.step(_ok(7), compensate=undo, name="local").then(lambda _: S.step(_fail("remote down")))
    match await S.run_chain(chain):
        case Error(failure):
            assert failure.error == "remote down"
            assert failure.step_failed == 2
            assert failure.compensators_run == 1
            assert failure.rollback_complete
        case Ok(_):
            raise AssertionError("expected failure")
    assert undone == [7]


async def test_first_step_failure_runs_nothing_else() -> None:
    ran: list[str] = []

    def second(_: int) -> S.SagaStep[int, str]:
        ran.append("second")
        return S.step(_ok(0))

    match await S.run_chain(S.step(_fail("nope")).then(second)):
        case Error(failure):
            assert failure.step_failed == 1
            assert failure.compensators_run == 0
        case Ok(_):
            raise AssertionError("expected failure")
    assert ran == []


async def test_failing_compensator_is_reported() -> None:
    async def broken(_: int) -> None:
        raise RuntimeError("cannot undo")

    chain = S.step(_ok(1), compensate=broken).then(lambda _: S.step(_fail("x")))
    match await S.run_chain(chain):
        case Error(failure):
            assert failure.compensators_failed == 1
            assert not failure.rollback_complete
        case Ok(_):
            raise AssertionError("expected failure")


async def test_from_async_maps_exceptions() -> None:
    async def explode() -> int:
        raise ValueError("bad")

    step = S.from_async(explode, on_error=lambda e: f"mapped: {e}")
    match await S.run(step):
        case Error(failure):
            assert failure.error == "mapped: bad"
        case Ok(_):
            raise AssertionError("expected failure")


async def test_step_accepts_combinators_lift() -> None:
    match await S.run(S.step(L.pure(3))):
        case Ok(result):
            assert result.value == 3
        case Error(e):
            raise AssertionError(e)
