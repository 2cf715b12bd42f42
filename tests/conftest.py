from collections.abc import AsyncIterator

import pytest
from kungfu import Ok

from vitrine import catalog as K
from vitrine import promo as P
from vitrine._types import da
from vitrine.config import Settings
from vitrine.orders import ShippingInfo
from vitrine.server import Storefront, open_storefront

SHOP_A = 1
SHOP_B = 2


@pytest.fixture
def shirt() -> K.Product:
    return K.Product(
        id=1,
        shop_id=SHOP_A,
        name="T-shirt",
        price=da(1000),
        has_variants=True,
        variants=(
            K.Variant({"Taille": "S"}, stock=2),
            K.Variant({"Taille": "M"}, stock=0),
        ),
    )


@pytest.fixture
def mug() -> K.Product:
    return K.Product(id=2, shop_id=SHOP_A, name="Mug", price=da(1000), stock=5)


@pytest.fixture
def cap() -> K.Product:
    return K.Product(id=3, shop_id=SHOP_B, name="Casquette", price=da(500), stock=3)


@pytest.fixture
def last_unit() -> K.Product:
    return K.Product(id=4, shop_id=SHOP_B, name="Sac", price=da(800), stock=1)


@pytest.fixture
def welcome10() -> P.PromoCode:
    return P.PromoCode(
        code="WELCOME10",
        discount_type=P.DiscountType.PERCENTAGE,
        discount_value=10,
        max_discount=da(200),
        description="Bienvenue chez nous",
    )


@pytest.fixture
def fixed300() -> P.PromoCode:
    return P.PromoCode(
        code="ATLAS300",
        discount_type=P.DiscountType.FIXED,
        discount_value=da(300),
        influencer_name="atlas",
        commission_rate=10,
    )


@pytest.fixture
def shipping() -> ShippingInfo:
    return ShippingInfo("12 rue Didouche Mourad", "0555000000", wilaya="Alger")


@pytest.fixture
async def storefront(
    shirt: K.Product,
    mug: K.Product,
    cap: K.Product,
    last_unit: K.Product,
    welcome10: P.PromoCode,
    fixed300: P.PromoCode,
) -> AsyncIterator[Storefront]:
    shop, engine = await open_storefront(Settings().with_page_size(2))
    for product in (shirt, mug, cap, last_unit):
        assert isinstance(await shop.add_product(product), Ok)
    for promo in (welcome10, fixed300):
        assert isinstance(await shop.add_promo(promo), Ok)
    try:
        yield shop
    finally:
        await engine.dispose()
