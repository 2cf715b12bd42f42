"""Shared infrastructure for examples."""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Coroutine

from sqlalchemy.ext.asyncio import AsyncEngine

from vitrine import catalog as K
from vitrine import promo as P
from vitrine._types import da
from vitrine.config import Settings
from vitrine.server import Storefront, open_storefront


# Seed data
PRODUCTS = (
    K.Product(
        id=1,
        shop_id=1,
        name="T-shirt Casbah",
        price=da(1000),
        has_variants=True,
        variants=(
            K.Variant({"Taille": "S", "Couleur": "Blanc"}, stock=2),
            K.Variant({"Taille": "M", "Couleur": "Blanc"}, stock=0),
            K.Variant({"Taille": "L", "Couleur": "Noir"}, stock=4, price=da(1200)),
        ),
    ),
    K.Product(id=2, shop_id=1, name="Mug Djurdjura", price=da(1000), stock=5),
    K.Product(id=3, shop_id=2, name="Casquette Oran", price=da(500), stock=3),
    K.Product(id=4, shop_id=2, name="Sac en cuir", price=da(800), stock=1),
)

PROMOS = (
    P.PromoCode(
        code="WELCOME10",
        discount_type=P.DiscountType.PERCENTAGE,
        discount_value=10,
        max_discount=da(200),
        description="Bienvenue chez nous",
    ),
    P.PromoCode(
        code="ATLAS300",
        discount_type=P.DiscountType.FIXED,
        discount_value=da(300),
        influencer_name="atlas",
        commission_rate=10,
    ),
)


async def seeded_storefront(settings: Settings | None = None) -> tuple[Storefront, AsyncEngine]:
    shop, engine = await open_storefront(settings)
    for product in PRODUCTS:
        (await shop.add_product(product)).unwrap()
    for promo in PROMOS:
        (await shop.add_promo(promo)).unwrap()
    return shop, engine


# Helpers
def banner(title: str) -> None:
    print(f"\n{'─' * 50}\n{title}\n{'─' * 50}")


def run(main: Callable[[], Coroutine[object, object, None]]) -> None:
    asyncio.run(main())
