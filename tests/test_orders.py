from datetime import datetime

import pytest
from kungfu import Ok, Error, Result

from vitrine import catalog as K
from vitrine import cart as Ct
from vitrine import orders as O
from vitrine import promo as P
from vitrine._types import da
from vitrine.errors import (
    PromoInvalidError,
    StatusTransitionError,
    StorefrontError,
    ValidationError,
)

from conftest import SHOP_A, SHOP_B


# ═══════════════════════════════════════════════════════════════════════════════
# Allocation
# ═══════════════════════════════════════════════════════════════════════════════


def test_allocation_by_subtotal_weight() -> None:
    assert O.allocate(da(300), [da(2000), da(500)]) == (da(240), da(60))


def test_allocation_sums_exactly() -> None:
    shares = O.allocate(100, [1, 1, 1])
    assert sum(shares) == 100
    # ties go to the earliest position
    assert shares == (34, 33, 33)


def test_allocation_largest_remainder() -> None:
    # 10 * (1, 2, 4) / 7 = 1.43, 2.86, 5.71
    assert O.allocate(10, [1, 2, 4]) == (1, 3, 6)


def test_allocation_zero_cases() -> None:
    assert O.allocate(0, [5, 5]) == (0, 0)
    assert O.allocate(50, [0, 0]) == (0, 0)
    assert O.allocate(50, []) == ()


def test_allocation_rejects_negatives() -> None:
    with pytest.raises(ValueError):
        O.allocate(-1, [1])
    with pytest.raises(ValueError):
        O.allocate(1, [1, -1])


# ═══════════════════════════════════════════════════════════════════════════════
# Status machine
# ═══════════════════════════════════════════════════════════════════════════════


def _order(status: O.OrderStatus = O.OrderStatus.PENDING, **kwargs) -> O.Order:
    return O.Order(
        id="ord_test",
        user_id="u1",
        shop_id=SHOP_A,
        shop_order_number=1,
        items=(O.OrderItem(1, 1, da(1000)),),
        subtotal=da(1000),
        discount=0,
        total=da(1000),
        shipping_address="12 rue Didouche Mourad, Alger",
        phone="0555000000",
        status=status,
        created_at=datetime(2026, 1, 1),
        **kwargs,
    )


@pytest.mark.parametrize(
    ("current", "target", "allowed"),
    [
        (O.OrderStatus.PENDING, O.OrderStatus.CONFIRMED, True),
        (O.OrderStatus.CONFIRMED, O.OrderStatus.SHIPPED, True),
        (O.OrderStatus.SHIPPED, O.OrderStatus.DELIVERED, True),
        (O.OrderStatus.SHIPPED, O.OrderStatus.CANCELLED, True),
        (O.OrderStatus.PENDING, O.OrderStatus.SHIPPED, False),
        (O.OrderStatus.PENDING, O.OrderStatus.PENDING, False),
        (O.OrderStatus.DELIVERED, O.OrderStatus.CANCELLED, False),
        (O.OrderStatus.CANCELLED, O.OrderStatus.CONFIRMED, False),
    ],
)
def test_can_transition(current: O.OrderStatus, target: O.OrderStatus, allowed: bool) -> None:
    assert O.can_transition(current, target) is allowed


def test_advance() -> None:
    match O.advance(_order(), O.OrderStatus.CONFIRMED):
        case Ok(order):
            assert order.status is O.OrderStatus.CONFIRMED
        case Error(e):
            raise AssertionError(e)

    match O.advance(_order(O.OrderStatus.DELIVERED), O.OrderStatus.SHIPPED):
        case Error(StatusTransitionError(current="delivered", requested="shipped")):
            pass
        case other:
            raise AssertionError(f"unexpected {other!r}")


def test_return_only_once_and_only_when_delivered() -> None:
    assert isinstance(O.request_return(_order(O.OrderStatus.SHIPPED)), Error)

    match O.request_return(_order(O.OrderStatus.DELIVERED), "  "):
        case Ok(returned):
            assert returned.return_requested
            assert returned.return_reason == O.DEFAULT_RETURN_REASON
        case Error(e):
            raise AssertionError(e)

    assert isinstance(O.request_return(returned, "Trop petit"), Error)
    # a return freezes the status
    assert isinstance(O.advance(returned, O.OrderStatus.CANCELLED), Error)


# ═══════════════════════════════════════════════════════════════════════════════
# Composition
# ═══════════════════════════════════════════════════════════════════════════════


def _two_shop_lines(mug: K.Product, cap: K.Product) -> tuple[Ct.CartLine, ...]:
    return (
        Ct.CartLine(mug.id, SHOP_A, mug.name, da(1000), 2),
        Ct.CartLine(cap.id, SHOP_B, cap.name, da(500), 1),
    )


def _draft(lines, shipping, promo_code: str | None = None) -> O.CheckoutDraft:
    return O.CheckoutDraft(lines=lines, shipping=shipping, idempotency_key="k-1", promo_code=promo_code)


async def test_fixed_promo_is_split_across_shops(
    mug: K.Product,
    cap: K.Product,
    fixed300: P.PromoCode,
    shipping: O.ShippingInfo,
) -> None:
    engine = P.PromoEngine(P.MemoryPromoBook(fixed300))
    draft = _draft(_two_shop_lines(mug, cap), shipping, "atlas300")

    match await O.compose_batch(draft, O.Quoter(engine.validate)):
        case Ok(batch):
            pass
        case Error(e):
            raise AssertionError(e)

    a, b = batch.shops
    assert (a.shop_id, b.shop_id) == (SHOP_A, SHOP_B)
    assert (a.discount, b.discount) == (da(240), da(60))
    assert (a.total, b.total) == (da(1760), da(440))
    assert batch.grand_total == da(2500)
    assert batch.discount_amount == da(300)
    assert batch.final_amount == da(2200)
    assert batch.final_amount == sum(s.subtotal - s.discount for s in batch.shops)

    sub = batch.submission()
    assert sub.total == da(2200)
    assert sub.discount_amount == da(300)
    assert sub.promo_code == "ATLAS300"
    assert sub.shipping_address == "12 rue Didouche Mourad, Alger"


async def test_promo_is_validated_once_against_grand_total(
    mug: K.Product,
    cap: K.Product,
    shipping: O.ShippingInfo,
) -> None:
    seen: list[int] = []

    async def quote(code: str, amount: int, scope: P.Scope) -> Result[P.PromoQuote, StorefrontError]:
        seen.append(amount)
        return Ok(P.PromoQuote(code, P.DiscountType.FIXED, da(100), da(100), amount, amount - da(100)))

    result = await O.compose_batch(_draft(_two_shop_lines(mug, cap), shipping, "X"), O.Quoter(quote))
    assert isinstance(result, Ok)
    assert seen == [da(2500)]


async def test_no_promo(mug: K.Product, shipping: O.ShippingInfo) -> None:
    async def never(code: str, amount: int, scope: P.Scope) -> Result[P.PromoQuote, StorefrontError]:
        raise AssertionError("no code, no lookup")

    lines = (Ct.CartLine(mug.id, SHOP_A, mug.name, da(1000), 1),)
    match await O.compose_batch(_draft(lines, shipping, "  "), O.Quoter(never)):
        case Ok(batch):
            assert batch.promo is None
            assert batch.discount_amount == 0
            assert batch.final_amount == da(1000)
        case Error(e):
            raise AssertionError(e)


async def test_rejected_promo_fails_the_batch(
    mug: K.Product,
    cap: K.Product,
    shipping: O.ShippingInfo,
) -> None:
    engine = P.PromoEngine(P.MemoryPromoBook())
    match await O.compose_batch(_draft(_two_shop_lines(mug, cap), shipping, "GHOST"), O.Quoter(engine.validate)):
        case Error(PromoInvalidError()):
            pass
        case other:
            raise AssertionError(f"unexpected {other!r}")


@pytest.mark.parametrize(
    ("shipping", "field"),
    [
        (O.ShippingInfo("", "0555000000", "Alger"), "shipping_address"),
        (O.ShippingInfo("12 rue Didouche Mourad", "0555000000", ""), "wilaya"),
        (O.ShippingInfo("12 rue Didouche Mourad", " ", "Alger"), "phone"),
    ],
)
async def test_incomplete_shipping(mug: K.Product, shipping: O.ShippingInfo, field: str) -> None:
    engine = P.PromoEngine(P.MemoryPromoBook())
    lines = (Ct.CartLine(mug.id, SHOP_A, mug.name, da(1000), 1),)
    match await O.compose_batch(_draft(lines, shipping), O.Quoter(engine.validate)):
        case Error(ValidationError() as e):
            assert e.field == field
        case other:
            raise AssertionError(f"unexpected {other!r}")


async def test_empty_cart(shipping: O.ShippingInfo) -> None:
    engine = P.PromoEngine(P.MemoryPromoBook())
    match await O.compose_batch(_draft((), shipping), O.Quoter(engine.validate)):
        case Error(ValidationError(field="items") as e):
            assert e.message == "Votre panier est vide"
        case other:
            raise AssertionError(f"unexpected {other!r}")


def test_fingerprint_ignores_the_key() -> None:
    item = O.SubmittedItem(1, 1, da(1000), {"Taille": "S"})
    a = O.OrderSubmission("k-1", (item,), da(1000), "addr", "0555")
    b = O.OrderSubmission("k-2", (item,), da(1000), "addr", "0555")
    c = O.OrderSubmission("k-1", (item,), da(900), "addr", "0555")
    assert a.fingerprint() == b.fingerprint()
    assert a.fingerprint() != c.fingerprint()
