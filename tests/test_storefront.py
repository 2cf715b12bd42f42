import asyncio

import pytest
from kungfu import Ok, Error
from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession

from vitrine import catalog as K
from vitrine import promo as P
from vitrine._types import da
from vitrine.errors import (
    ConflictError,
    NotFoundError,
    PromoInvalidError,
    PromoRejection,
    StatusTransitionError,
    StockInsufficientError,
    ValidationError,
)
from vitrine.orders import OrderStatus, OrderSubmission, SubmittedItem
from vitrine.server import Storefront
from vitrine.server._db import ProductTable

from conftest import SHOP_A, SHOP_B

ADDRESS = "12 rue Didouche Mourad, Alger"
PHONE = "0555000000"


def _submission(
    key: str,
    *items: SubmittedItem,
    total: int,
    promo_code: str | None = None,
    discount: int = 0,
    user_id: str = "u1",
) -> OrderSubmission:
    return OrderSubmission(
        idempotency_key=key,
        items=items,
        total=total,
        shipping_address=ADDRESS,
        phone=PHONE,
        user_id=user_id,
        promo_code=promo_code,
        discount_amount=discount,
    )


def _two_shops(key: str = "k-two-shops") -> OrderSubmission:
    return _submission(
        key,
        SubmittedItem(2, 2, da(1000)),
        SubmittedItem(3, 1, da(500)),
        total=da(2200),
        promo_code="atlas300",
        discount=da(300),
    )


async def _stock(shop: Storefront, product_id: int, selection: dict[str, str] | None = None) -> int:
    return (await shop.stock_of(product_id, selection)).unwrap()


# ═══════════════════════════════════════════════════════════════════════════════
# Placing orders
# ═══════════════════════════════════════════════════════════════════════════════


async def test_one_order_per_shop_with_split_discount(storefront: Storefront) -> None:
    match await storefront.place_orders(_two_shops()):
        case Ok(orders):
            pass
        case Error(e):
            raise AssertionError(e)

    by_shop = {o.shop_id: o for o in orders}
    assert set(by_shop) == {SHOP_A, SHOP_B}
    assert (by_shop[SHOP_A].discount, by_shop[SHOP_A].total) == (da(240), da(1760))
    assert (by_shop[SHOP_B].discount, by_shop[SHOP_B].total) == (da(60), da(440))
    assert all(o.status is OrderStatus.PENDING for o in orders)
    assert all(o.promo_code == "ATLAS300" for o in orders)
    assert all(o.shop_order_number == 1 for o in orders)

    assert await _stock(storefront, 2) == 3
    assert await _stock(storefront, 3) == 2
    # 10% of the 300 DA granted
    assert (await storefront.influencer_earnings("atlas")).unwrap() == da(30)

    usage = (await storefront.promo_usage("atlas")).unwrap()
    assert (usage.uses, usage.savings, usage.earnings) == (1, da(300), da(30))
    assert (await storefront.promo_usage("nobody")).unwrap().uses == 0


async def test_resubmission_replays_the_same_orders(storefront: Storefront) -> None:
    first = (await storefront.place_orders(_two_shops())).unwrap()
    second = (await storefront.place_orders(_two_shops())).unwrap()

    assert sorted(o.id for o in first) == sorted(o.id for o in second)
    assert (await storefront.count_orders("u1")).unwrap() == 2
    assert await _stock(storefront, 2) == 3


async def test_same_key_for_another_cart_conflicts(storefront: Storefront) -> None:
    await storefront.place_orders(_two_shops("k-1"))
    other = _submission("k-1", SubmittedItem(2, 1, da(1000)), total=da(1000))

    match await storefront.place_orders(other):
        case Error(ConflictError()):
            pass
        case result:
            raise AssertionError(f"unexpected {result!r}")


async def test_shop_order_numbers_increase_per_shop(storefront: Storefront) -> None:
    await storefront.place_orders(_submission("k-1", SubmittedItem(2, 1, da(1000)), total=da(1000)))
    orders = (await storefront.place_orders(
        _submission("k-2", SubmittedItem(2, 1, da(1000)), total=da(1000))
    )).unwrap()
    assert orders[0].shop_order_number == 2


async def test_last_unit_goes_to_exactly_one_checkout(storefront: Storefront) -> None:
    a = _submission("k-a", SubmittedItem(4, 1, da(800)), total=da(800), user_id="u-a")
    b = _submission("k-b", SubmittedItem(4, 1, da(800)), total=da(800), user_id="u-b")

    results = await asyncio.gather(storefront.place_orders(a), storefront.place_orders(b))

    winners = [r for r in results if isinstance(r, Ok)]
    losers = [r for r in results if isinstance(r, Error)]
    assert len(winners) == 1
    assert len(losers) == 1
    assert isinstance(losers[0].unwrap_err(), StockInsufficientError)
    assert await _stock(storefront, 4) == 0


async def test_failed_batch_keeps_every_shop_untouched(storefront: Storefront) -> None:
    # the cap line is fine, the bag line is short: nothing may be taken
    sub = _submission(
        "k-1",
        SubmittedItem(3, 1, da(500)),
        SubmittedItem(4, 2, da(800)),
        total=da(2100),
    )
    match await storefront.place_orders(sub):
        case Error(StockInsufficientError(product_id=4, requested=2, available=1)):
            pass
        case result:
            raise AssertionError(f"unexpected {result!r}")

    assert await _stock(storefront, 3) == 3
    assert await _stock(storefront, 4) == 1
    assert (await storefront.count_orders("u1")).unwrap() == 0


async def test_variant_stock_is_taken_per_selection(storefront: Storefront) -> None:
    sub = _submission("k-1", SubmittedItem(1, 2, da(1000), {"Taille": "S"}), total=da(2000))
    assert isinstance(await storefront.place_orders(sub), Ok)
    assert await _stock(storefront, 1, {"Taille": "S"}) == 0

    sold_out = _submission("k-2", SubmittedItem(1, 1, da(1000), {"Taille": "M"}), total=da(1000))
    match await storefront.place_orders(sold_out):
        case Error(StockInsufficientError(available=0) as e):
            assert e.selection == {"Taille": "M"}
        case result:
            raise AssertionError(f"unexpected {result!r}")


async def test_incomplete_selection_is_rejected(storefront: Storefront) -> None:
    sub = _submission("k-1", SubmittedItem(1, 1, da(1000)), total=da(1000))
    match await storefront.place_orders(sub):
        case Error(ValidationError(field="selection")):
            pass
        case result:
            raise AssertionError(f"unexpected {result!r}")


async def test_stale_total_is_rejected(storefront: Storefront) -> None:
    sub = _submission("k-1", SubmittedItem(2, 1, da(900)), total=da(900))
    match await storefront.place_orders(sub):
        case Error(ValidationError(field="total")):
            pass
        case result:
            raise AssertionError(f"unexpected {result!r}")
    assert await _stock(storefront, 2) == 5


async def test_failed_checkout_can_be_retried_with_its_key(storefront: Storefront) -> None:
    bad = _submission("k-1", SubmittedItem(2, 1, da(1000)), total=da(999))
    assert isinstance(await storefront.place_orders(bad), Error)

    good = _submission("k-1", SubmittedItem(2, 1, da(1000)), total=da(1000))
    assert isinstance(await storefront.place_orders(good), Ok)


BRACELET = K.Product(
    id=10,
    shop_id=SHOP_A,
    name="Bracelet",
    price=da(300),
    has_variants=True,
    variants=(
        K.Variant({"Couleur": "Or"}, stock=3),
        K.Variant({"Couleur": "Or", "Taille": "M"}, stock=1),
    ),
)


async def test_variant_without_an_axis_is_sold_by_its_empty_value(storefront: Storefront) -> None:
    await storefront.add_product(BRACELET)

    sub = _submission("k-1", SubmittedItem(10, 2, da(300), {"Couleur": "Or", "Taille": ""}), total=da(600))
    (order,) = (await storefront.place_orders(sub)).unwrap()
    assert order.items[0].selection == {"Couleur": "Or", "Taille": ""}
    assert await _stock(storefront, 10, {"Couleur": "Or", "Taille": ""}) == 1
    assert await _stock(storefront, 10, {"Couleur": "Or", "Taille": "M"}) == 1


async def test_blank_legacy_size_reaches_the_variant_without_size(storefront: Storefront) -> None:
    await storefront.add_product(BRACELET)
    selection = K.attributes_from_legacy("", "Or")

    strict = _submission("k-1", SubmittedItem(10, 1, da(300), selection), total=da(300))
    match await storefront.place_orders(strict):
        case Error(ValidationError(field="selection") as e):
            assert str(e) == "Veuillez sélectionner: Taille"
        case result:
            raise AssertionError(f"unexpected {result!r}")

    legacy = _submission("k-2", SubmittedItem(10, 1, da(300), selection, legacy=True), total=da(300))
    assert isinstance(await storefront.place_orders(legacy), Ok)
    assert await _stock(storefront, 10, {"Couleur": "Or", "Taille": ""}) == 2
    assert await _stock(storefront, 10, {"Couleur": "Or", "Taille": "M"}) == 1


async def test_stock_sold_after_loading_still_aborts(
    storefront: Storefront,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    load = Storefront._load_product

    async def load_then_sell_out(self: Storefront, session: AsyncSession, product_id: int) -> K.Product:
        product = await load(self, session, product_id)
        await session.execute(update(ProductTable).where(ProductTable.id == product_id).values(stock=0))
        return product

    monkeypatch.setattr(Storefront, "_load_product", load_then_sell_out)
    sub = _submission("k-1", SubmittedItem(4, 1, da(800)), total=da(800))
    match await storefront.place_orders(sub):
        case Error(StockInsufficientError(product_id=4, requested=1, available=0)):
            pass
        case result:
            raise AssertionError(f"unexpected {result!r}")

    monkeypatch.undo()
    assert await _stock(storefront, 4) == 1
    assert (await storefront.count_orders("u1")).unwrap() == 0


async def test_unknown_product(storefront: Storefront) -> None:
    sub = _submission("k-1", SubmittedItem(99, 1, da(10)), total=da(10))
    match await storefront.place_orders(sub):
        case Error(NotFoundError(entity="product")):
            pass
        case result:
            raise AssertionError(f"unexpected {result!r}")


# ═══════════════════════════════════════════════════════════════════════════════
# Promo codes
# ═══════════════════════════════════════════════════════════════════════════════


async def test_validate_promo(storefront: Storefront) -> None:
    match await storefront.validate_promo("welcome10", da(3000)):
        case Ok(quote):
            assert quote.discount_amount == da(200)
            assert quote.final_amount == da(2800)
        case Error(e):
            raise AssertionError(e)

    match await storefront.validate_promo("NOPE", da(3000)):
        case Error(PromoInvalidError(reason=PromoRejection.UNKNOWN)):
            pass
        case result:
            raise AssertionError(f"unexpected {result!r}")


async def test_usage_limit_counts_redemptions(storefront: Storefront) -> None:
    once = P.PromoCode("ONCE50", P.DiscountType.FIXED, da(50), usage_limit=1)
    await storefront.add_promo(once)

    sub = _submission(
        "k-1",
        SubmittedItem(2, 1, da(1000)),
        total=da(950),
        promo_code="ONCE50",
        discount=da(50),
    )
    assert isinstance(await storefront.place_orders(sub), Ok)

    match await storefront.validate_promo("ONCE50", da(1000)):
        case Error(PromoInvalidError(reason=PromoRejection.USAGE_LIMIT)):
            pass
        case result:
            raise AssertionError(f"unexpected {result!r}")


async def test_welcome_code_only_for_new_users(storefront: Storefront) -> None:
    match await storefront.welcome_code("u1"):
        case Ok(offer):
            assert offer.is_new_user
            assert offer.promo is not None and offer.promo.code == "WELCOME10"
        case Error(e):
            raise AssertionError(e)

    await storefront.place_orders(_submission("k-1", SubmittedItem(2, 1, da(1000)), total=da(1000)))

    offer = (await storefront.welcome_code("u1")).unwrap()
    assert not offer.is_new_user
    assert offer.promo is None


# ═══════════════════════════════════════════════════════════════════════════════
# Lifecycle and history
# ═══════════════════════════════════════════════════════════════════════════════


async def test_status_lifecycle_and_return(storefront: Storefront) -> None:
    (order,) = (await storefront.place_orders(
        _submission("k-1", SubmittedItem(2, 1, da(1000)), total=da(1000))
    )).unwrap()

    match await storefront.update_status(order.id, OrderStatus.SHIPPED):
        case Error(StatusTransitionError()):
            pass
        case result:
            raise AssertionError(f"unexpected {result!r}")

    for status in (OrderStatus.CONFIRMED, OrderStatus.SHIPPED):
        assert isinstance(await storefront.update_status(order.id, status), Ok)

    assert isinstance(await storefront.request_return(order.id, "Trop grand"), Error)
    assert isinstance(await storefront.update_status(order.id, OrderStatus.DELIVERED), Ok)

    returned = (await storefront.request_return(order.id, None)).unwrap()
    assert returned.return_requested
    assert returned.return_reason == "Retour client"
    assert (await storefront.returns_count("u1")).unwrap() == 1

    assert isinstance(await storefront.request_return(order.id, "encore"), Error)
    assert isinstance(await storefront.update_status(order.id, OrderStatus.CANCELLED), Error)

    stored = (await storefront.get_order(order.id)).unwrap()
    assert stored.status is OrderStatus.DELIVERED
    assert stored.return_requested


async def test_get_unknown_order(storefront: Storefront) -> None:
    match await storefront.get_order("ord_missing"):
        case Error(NotFoundError(entity="order")):
            pass
        case result:
            raise AssertionError(f"unexpected {result!r}")


async def test_order_history_pages(storefront: Storefront) -> None:
    placed: list[str] = []
    for n in range(3):
        sub = _submission(f"k-{n}", SubmittedItem(2, 1, da(1000)), total=da(1000), user_id="u2")
        placed.extend(o.id for o in (await storefront.place_orders(sub)).unwrap())

    first = (await storefront.list_orders("u2", 1)).unwrap()
    second = (await storefront.list_orders("u2", 2)).unwrap()

    assert len(first.orders) == 2 and first.has_more
    assert len(second.orders) == 1 and not second.has_more
    seen = [o.id for o in (*first.orders, *second.orders)]
    assert sorted(seen) == sorted(placed)
    assert first.orders[0].created_at >= second.orders[0].created_at

    assert isinstance(await storefront.list_orders("u2", 0), Error)


async def test_shop_orders_are_paged_per_shop(storefront: Storefront) -> None:
    await storefront.place_orders(_two_shops("k-1"))
    for n in range(2):
        sub = _submission(f"k-mug-{n}", SubmittedItem(2, 1, da(1000)), total=da(1000), user_id=f"u{n + 5}")
        await storefront.place_orders(sub)

    assert (await storefront.count_shop_orders(SHOP_A)).unwrap() == 3
    assert (await storefront.count_shop_orders(SHOP_B)).unwrap() == 1

    first = (await storefront.list_shop_orders(SHOP_A, 1)).unwrap()
    second = (await storefront.list_shop_orders(SHOP_A, 2)).unwrap()
    assert len(first.orders) == 2 and first.has_more
    assert len(second.orders) == 1 and not second.has_more
    assert all(o.shop_id == SHOP_A for o in (*first.orders, *second.orders))
    assert sorted(o.shop_order_number for o in (*first.orders, *second.orders)) == [1, 2, 3]

    whole = (await storefront.list_shop_orders(SHOP_A, 1, 10)).unwrap()
    assert len(whole.orders) == 3 and not whole.has_more


async def test_get_order_is_scoped_to_its_buyer(storefront: Storefront) -> None:
    (order,) = (await storefront.place_orders(
        _submission("k-1", SubmittedItem(2, 1, da(1000)), total=da(1000), user_id="u1")
    )).unwrap()

    assert (await storefront.get_order(order.id, "u1")).unwrap().id == order.id
    match await storefront.get_order(order.id, "u-other"):
        case Error(NotFoundError(entity="order")):
            pass
        case result:
            raise AssertionError(f"unexpected {result!r}")


async def test_page_size_must_be_positive(storefront: Storefront) -> None:
    match await storefront.list_orders("u1", 1, -1):
        case Error(ValidationError(field="limit")):
            pass
        case result:
            raise AssertionError(f"unexpected {result!r}")


# ═══════════════════════════════════════════════════════════════════════════════
# Products and likes
# ═══════════════════════════════════════════════════════════════════════════════


async def test_product_read_model(storefront: Storefront) -> None:
    view = (await storefront.product(1)).unwrap()
    assert view.product.name == "T-shirt"
    assert view.likes == 0 and not view.liked

    match await storefront.product(99):
        case Error(NotFoundError()):
            pass
        case result:
            raise AssertionError(f"unexpected {result!r}")


async def test_likes_are_idempotent(storefront: Storefront) -> None:
    state = (await storefront.set_like("u1", 1, True)).unwrap()
    assert (state.liked, state.likes) == (True, 1)

    state = (await storefront.set_like("u1", 1, True)).unwrap()
    assert (state.liked, state.likes) == (True, 1)

    await storefront.set_like("u2", 1, True)
    view = (await storefront.product(1, "u1")).unwrap()
    assert view.liked and view.likes == 2

    state = (await storefront.set_like("u1", 1, False)).unwrap()
    assert (state.liked, state.likes) == (False, 1)

    assert isinstance(await storefront.set_like("u1", 99, True), Error)
