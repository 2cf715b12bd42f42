from dataclasses import dataclass

import pytest
from kungfu import Ok, Error, Result

from vitrine import ops as O
from vitrine.errors import NotFoundError, StorefrontError


class Shelf:
    def __init__(self) -> None:
        self.stock = {"mug": 5}


@dataclass(frozen=True, slots=True)
class CountStock(O.Op[int, StorefrontError]):
    sku: str


@dataclass(frozen=True, slots=True)
class Unregistered(O.Op[int, StorefrontError]):
    pass


async def count_stock(req: CountStock, shelf: Shelf) -> Result[int, StorefrontError]:
    if req.sku not in shelf.stock:
        return Error(NotFoundError("sku", req.sku))
    return Ok(shelf.stock[req.sku])


@pytest.fixture
def runner() -> O.Runner:
    return O.ops().on(CountStock, count_stock).compile().inject(Shelf, Shelf())


async def test_handler_receives_request_and_service(runner: O.Runner) -> None:
    match await runner.run(CountStock("mug")):
        case Ok(count):
            assert count == 5
        case Error(e):
            raise AssertionError(e)


async def test_handler_errors_come_back_as_results(runner: O.Runner) -> None:
    match await runner(CountStock("lamp")):
        case Error(NotFoundError(key="lamp")):
            pass
        case other:
            raise AssertionError(f"unexpected {other!r}")


async def test_unregistered_op_is_a_bug(runner: O.Runner) -> None:
    with pytest.raises(LookupError):
        await runner.run(Unregistered())


def test_last_registration_wins() -> None:
    async def other(req: CountStock, shelf: Shelf) -> Result[int, StorefrontError]:
        return Ok(0)

    runner = O.ops().on(CountStock, count_stock).on(CountStock, other).compile()
    assert runner.op_types == (CountStock,)
