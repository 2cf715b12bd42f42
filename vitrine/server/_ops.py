"""
Storefront operations as data, with one handler each.
"""

from dataclasses import dataclass

from kungfu import Result

from vitrine import ops as O
from vitrine._types import Money, OrderId, ProductId, ShopId, UserId
from vitrine.errors import StorefrontError
from vitrine.orders import Order, OrderStatus, OrderSubmission
from vitrine.promo import PromoQuote, Scope
from vitrine.server._storefront import (
    LikeState,
    OrderPage,
    ProductView,
    PromoUsage,
    Storefront,
    WelcomeOffer,
)


# ═══════════════════════════════════════════════════════════════════════════════
# Operations
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class ValidatePromo(O.Op[PromoQuote, StorefrontError]):
    code: str
    amount: Money
    scope: Scope = Scope.PRODUCTS


@dataclass(frozen=True, slots=True)
class WelcomeCode(O.Op[WelcomeOffer, StorefrontError]):
    user_id: UserId


@dataclass(frozen=True, slots=True)
class PlaceOrders(O.Op[tuple[Order, ...], StorefrontError]):
    submission: OrderSubmission


@dataclass(frozen=True, slots=True)
class UpdateStatus(O.Op[Order, StorefrontError]):
    order_id: OrderId
    status: OrderStatus


@dataclass(frozen=True, slots=True)
class RequestReturn(O.Op[Order, StorefrontError]):
    order_id: OrderId
    reason: str | None = None


@dataclass(frozen=True, slots=True)
class ListOrders(O.Op[OrderPage, StorefrontError]):
    user_id: UserId
    page: int = 1
    limit: int | None = None


@dataclass(frozen=True, slots=True)
class CountOrders(O.Op[int, StorefrontError]):
    user_id: UserId


@dataclass(frozen=True, slots=True)
class GetOrder(O.Op[Order, StorefrontError]):
    order_id: OrderId
    user_id: UserId | None = None


@dataclass(frozen=True, slots=True)
class ListShopOrders(O.Op[OrderPage, StorefrontError]):
    shop_id: ShopId
    page: int = 1
    limit: int | None = None


@dataclass(frozen=True, slots=True)
class CountShopOrders(O.Op[int, StorefrontError]):
    shop_id: ShopId


@dataclass(frozen=True, slots=True)
class GetPromoUsage(O.Op[PromoUsage, StorefrontError]):
    influencer_name: str


@dataclass(frozen=True, slots=True)
class GetProduct(O.Op[ProductView, StorefrontError]):
    product_id: ProductId
    user_id: UserId | None = None


@dataclass(frozen=True, slots=True)
class SetLike(O.Op[LikeState, StorefrontError]):
    user_id: UserId
    product_id: ProductId
    liked: bool


# ═══════════════════════════════════════════════════════════════════════════════
# Handlers
# ═══════════════════════════════════════════════════════════════════════════════


async def validate_promo(req: ValidatePromo, shop: Storefront) -> Result[PromoQuote, StorefrontError]:
    return await shop.validate_promo(req.code, req.amount, req.scope)


async def welcome_code(req: WelcomeCode, shop: Storefront) -> Result[WelcomeOffer, StorefrontError]:
    return await shop.welcome_code(req.user_id)


async def place_orders(req: PlaceOrders, shop: Storefront) -> Result[tuple[Order, ...], StorefrontError]:
    return await shop.place_orders(req.submission)


async def update_status(req: UpdateStatus, shop: Storefront) -> Result[Order, StorefrontError]:
    return await shop.update_status(req.order_id, req.status)


async def request_return(req: RequestReturn, shop: Storefront) -> Result[Order, StorefrontError]:
    return await shop.request_return(req.order_id, req.reason)


async def list_orders(req: ListOrders, shop: Storefront) -> Result[OrderPage, StorefrontError]:
    return await shop.list_orders(req.user_id, req.page, req.limit)


async def count_orders(req: CountOrders, shop: Storefront) -> Result[int, StorefrontError]:
    return await shop.count_orders(req.user_id)


async def get_order(req: GetOrder, shop: Storefront) -> Result[Order, StorefrontError]:
    return await shop.get_order(req.order_id, req.user_id)


async def list_shop_orders(req: ListShopOrders, shop: Storefront) -> Result[OrderPage, StorefrontError]:
    return await shop.list_shop_orders(req.shop_id, req.page, req.limit)


async def count_shop_orders(req: CountShopOrders, shop: Storefront) -> Result[int, StorefrontError]:
    return await shop.count_shop_orders(req.shop_id)


async def promo_usage(req: GetPromoUsage, shop: Storefront) -> Result[PromoUsage, StorefrontError]:
    return await shop.promo_usage(req.influencer_name)


async def get_product(req: GetProduct, shop: Storefront) -> Result[ProductView, StorefrontError]:
    return await shop.product(req.product_id, req.user_id)


async def set_like(req: SetLike, shop: Storefront) -> Result[LikeState, StorefrontError]:
    return await shop.set_like(req.user_id, req.product_id, req.liked)


def storefront_runner(shop: Storefront) -> O.Runner:
    return (
        O.ops()
        .on(ValidatePromo, validate_promo)
        .on(WelcomeCode, welcome_code)
        .on(PlaceOrders, place_orders)
        .on(UpdateStatus, update_status)
        .on(RequestReturn, request_return)
        .on(ListOrders, list_orders)
        .on(CountOrders, count_orders)
        .on(GetOrder, get_order)
        .on(ListShopOrders, list_shop_orders)
        .on(CountShopOrders, count_shop_orders)
        .on(GetPromoUsage, promo_usage)
        .on(GetProduct, get_product)
        .on(SetLike, set_like)
        .compile()
        .inject(Storefront, shop)
    )


__all__ = (
    "ValidatePromo",
    "WelcomeCode",
    "PlaceOrders",
    "UpdateStatus",
    "RequestReturn",
    "ListOrders",
    "CountOrders",
    "GetOrder",
    "ListShopOrders",
    "CountShopOrders",
    "GetPromoUsage",
    "GetProduct",
    "SetLike",
    "storefront_runner",
)
