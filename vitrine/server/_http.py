"""
HTTP surface — pydantic payloads and the FastAPI app.

Amounts travel in DA on the wire and in centimes everywhere else; the
conversion happens here and nowhere else. Errors become HTTPException
with a JSON `detail` object carrying at least `error` (display message)
and `kind`.
"""

from datetime import datetime
from typing import Any, Literal, Self

import fastapi
from fastapi import HTTPException
from kungfu import Result, Ok, Error
from pydantic import BaseModel, Field

from vitrine import catalog as K
from vitrine import wire as W
from vitrine._types import da, to_da
from vitrine.errors import (
    ErrorKind,
    NotFoundError,
    PromoInvalidError,
    PromoRejection,
    StatusTransitionError,
    StockInsufficientError,
    StorefrontError,
    ValidationError,
)
from vitrine.orders import Order, OrderStatus, OrderSubmission, SubmittedItem
from vitrine.promo import DiscountType, PromoCode, PromoQuote, Scope
from vitrine.server._ops import (
    CountOrders,
    CountShopOrders,
    GetOrder,
    GetProduct,
    GetPromoUsage,
    ListOrders,
    ListShopOrders,
    PlaceOrders,
    RequestReturn,
    SetLike,
    UpdateStatus,
    ValidatePromo,
    WelcomeCode,
    storefront_runner,
)
from vitrine.server._storefront import (
    LikeState,
    OrderPage,
    ProductView,
    PromoUsage,
    Storefront,
    WelcomeOffer,
)

STATUS_BY_KIND: dict[ErrorKind, int] = {
    ErrorKind.VALIDATION: 400,
    ErrorKind.PROMO: 400,
    ErrorKind.STOCK: 409,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.TRANSITION: 409,
    ErrorKind.CONFLICT: 409,
    ErrorKind.TRANSIENT: 503,
}


def raise_for(error: StorefrontError) -> Any:
    detail: dict[str, Any] = {"error": error.message, "kind": error.kind.name.lower()}
    status = STATUS_BY_KIND[error.kind]
    match error:
        case PromoInvalidError(reason=reason):
            detail |= {"valid": False, "reason": reason.value, "hint": error.hint, "code": error.code}
            if reason is PromoRejection.UNKNOWN:
                status = 404
        case StockInsufficientError():
            detail |= {
                "product_id": error.product_id,
                "requested": error.requested,
                "available": error.available,
                "selection": dict(error.selection),
            }
        case ValidationError(field=field):
            detail["field"] = field
        case NotFoundError(entity=entity, key=key):
            detail |= {"entity": entity, "key": str(key)}
        case StatusTransitionError():
            detail |= {"current": error.current, "requested": error.requested}
        case _:
            pass
    raise HTTPException(status_code=status, detail=detail)


def _discount_value_on_wire(kind: DiscountType, value: int) -> float:
    """Percent as-is; fixed amounts are centimes internally."""
    return float(value) if kind is DiscountType.PERCENTAGE else to_da(value)


# ═══════════════════════════════════════════════════════════════════════════════
# Promo
# ═══════════════════════════════════════════════════════════════════════════════


class PromoValidateRequest(BaseModel):
    code: str
    order_amount: float = Field(ge=0)
    applies_to: Literal["all", "products", "subscription"] = "products"

    def to_domain(self) -> ValidatePromo:
        return ValidatePromo(self.code, da(self.order_amount), Scope(self.applies_to))


class PromoValidateResponse(BaseModel):
    valid: bool = True
    code: str
    discount_type: str
    discount_value: float
    discount_amount: float
    original_amount: float
    final_amount: float
    description: str = ""
    influencer_name: str | None = None

    @classmethod
    def of(cls, quote: PromoQuote) -> Self:
        return cls(
            code=quote.code,
            discount_type=quote.discount_type.value,
            discount_value=_discount_value_on_wire(quote.discount_type, quote.discount_value),
            discount_amount=to_da(quote.discount_amount),
            original_amount=to_da(quote.original_amount),
            final_amount=to_da(quote.final_amount),
            description=quote.description,
            influencer_name=quote.influencer_name,
        )

    @classmethod
    def from_domain(cls, result: Result[PromoQuote, StorefrontError]) -> Self:
        match result:
            case Ok(quote):
                return cls.of(quote)
            case Error(e):
                return raise_for(e)


class WelcomeRequest(BaseModel):
    user_id: str

    def to_domain(self) -> WelcomeCode:
        return WelcomeCode(self.user_id)


class PromoCodeBody(BaseModel):
    code: str
    discount_type: str
    discount_value: float
    max_discount: float | None = None
    description: str = ""

    @classmethod
    def of(cls, promo: PromoCode) -> Self:
        return cls(
            code=promo.code,
            discount_type=promo.discount_type.value,
            discount_value=_discount_value_on_wire(promo.discount_type, promo.discount_value),
            max_discount=to_da(promo.max_discount) if promo.max_discount is not None else None,
            description=promo.description,
        )


class WelcomeResponse(BaseModel):
    is_new_user: bool
    code: PromoCodeBody | None = None

    @classmethod
    def from_domain(cls, result: Result[WelcomeOffer, StorefrontError]) -> Self:
        match result:
            case Ok(offer):
                return cls(
                    is_new_user=offer.is_new_user,
                    code=PromoCodeBody.of(offer.promo) if offer.promo else None,
                )
            case Error(e):
                return raise_for(e)


class PromoUsageRequest(BaseModel):
    influencer_name: str

    def to_domain(self) -> GetPromoUsage:
        return GetPromoUsage(self.influencer_name)


class PromoUsageResponse(BaseModel):
    influencer_name: str
    total_uses: int
    total_savings: float
    total_commission: float

    @classmethod
    def from_domain(cls, result: Result[PromoUsage, StorefrontError]) -> Self:
        match result:
            case Ok(usage):
                return cls(
                    influencer_name=usage.influencer_name,
                    total_uses=usage.uses,
                    total_savings=to_da(usage.savings),
                    total_commission=to_da(usage.earnings),
                )
            case Error(e):
                return raise_for(e)


# ═══════════════════════════════════════════════════════════════════════════════
# Orders
# ═══════════════════════════════════════════════════════════════════════════════


class OrderItemBody(BaseModel):
    product_id: int
    quantity: int = Field(gt=0)
    price: float = Field(ge=0)
    variant_size: str | None = None
    variant_color: str | None = None
    variant_attributes: dict[str, str] | None = None

    @property
    def legacy(self) -> bool:
        return not self.variant_attributes

    def selection(self) -> dict[str, str]:
        if self.variant_attributes:
            return dict(self.variant_attributes)
        return K.attributes_from_legacy(self.variant_size, self.variant_color)

    @classmethod
    def of(cls, product_id: int, quantity: int, unit_price: int, selection: dict[str, str]) -> Self:
        size, color = K.legacy_from_attributes(selection)
        return cls(
            product_id=product_id,
            quantity=quantity,
            price=to_da(unit_price),
            variant_size=size,
            variant_color=color,
            variant_attributes=selection or None,
        )


class PlaceOrdersRequest(BaseModel):
    items: list[OrderItemBody]
    total: float = Field(ge=0)
    shipping_address: str
    phone: str
    promo_code: str | None = None
    discount_amount: float = Field(default=0, ge=0)
    idempotency_key: str = Field(min_length=1)
    user_id: str = "guest"

    def to_domain(self) -> PlaceOrders:
        return PlaceOrders(OrderSubmission(
            idempotency_key=self.idempotency_key,
            items=tuple(
                SubmittedItem(i.product_id, i.quantity, da(i.price), i.selection(), i.legacy)
                for i in self.items
            ),
            total=da(self.total),
            shipping_address=self.shipping_address,
            phone=self.phone,
            user_id=self.user_id,
            promo_code=self.promo_code or None,
            discount_amount=da(self.discount_amount),
        ))


class OrderBody(BaseModel):
    id: str
    user_id: str
    shop_id: int
    shop_order_number: int
    items: list[OrderItemBody]
    subtotal: float
    discount_amount: float
    total: float
    shipping_address: str
    phone: str
    status: str
    promo_code: str | None = None
    return_requested: bool = False
    return_reason: str | None = None
    created_at: datetime

    @classmethod
    def of(cls, order: Order) -> Self:
        return cls(
            id=order.id,
            user_id=order.user_id,
            shop_id=order.shop_id,
            shop_order_number=order.shop_order_number,
            items=[
                OrderItemBody.of(i.product_id, i.quantity, i.unit_price, dict(i.selection))
                for i in order.items
            ],
            subtotal=to_da(order.subtotal),
            discount_amount=to_da(order.discount),
            total=to_da(order.total),
            shipping_address=order.shipping_address,
            phone=order.phone,
            status=order.status.value,
            promo_code=order.promo_code,
            return_requested=order.return_requested,
            return_reason=order.return_reason,
            created_at=order.created_at,
        )


class PlaceOrdersResponse(BaseModel):
    orders: list[OrderBody]
    message: str

    @classmethod
    def from_domain(cls, result: Result[tuple[Order, ...], StorefrontError]) -> Self:
        match result:
            case Ok(orders):
                count = len(orders)
                message = "Commande créée avec succès" if count == 1 else f"{count} commandes créées avec succès"
                return cls(orders=[OrderBody.of(o) for o in orders], message=message)
            case Error(e):
                return raise_for(e)


class StatusRequest(BaseModel):
    status: Literal["confirmed", "shipped", "delivered", "cancelled"]

    def to_domain(self, order_id: str) -> UpdateStatus:
        return UpdateStatus(order_id, OrderStatus(self.status))


class ReturnRequest(BaseModel):
    reason: str | None = None

    def to_domain(self, order_id: str) -> RequestReturn:
        return RequestReturn(order_id, self.reason)


class OrderResponse(BaseModel):
    order: OrderBody
    message: str = "Commande mise à jour"

    @classmethod
    def from_domain(cls, result: Result[Order, StorefrontError]) -> Self:
        match result:
            case Ok(order):
                return cls(order=OrderBody.of(order))
            case Error(e):
                return raise_for(e)


class ListOrdersRequest(BaseModel):
    user_id: str
    page: int = Field(default=1, ge=1)
    limit: int | None = Field(default=None, ge=1, le=100)

    def to_domain(self) -> ListOrders:
        return ListOrders(self.user_id, self.page, self.limit)


class ShopOrdersRequest(BaseModel):
    shop_id: int
    page: int = Field(default=1, ge=1)
    limit: int | None = Field(default=None, ge=1, le=100)

    def to_domain(self) -> ListShopOrders:
        return ListShopOrders(self.shop_id, self.page, self.limit)


class OrderRequest(BaseModel):
    user_id: str | None = None

    def to_domain(self, order_id: str) -> GetOrder:
        return GetOrder(order_id, self.user_id)


class CountOrdersRequest(BaseModel):
    user_id: str

    def to_domain(self) -> CountOrders:
        return CountOrders(self.user_id)


class ShopCountRequest(BaseModel):
    shop_id: int

    def to_domain(self) -> CountShopOrders:
        return CountShopOrders(self.shop_id)


class CountResponse(BaseModel):
    count: int

    @classmethod
    def from_domain(cls, result: Result[int, StorefrontError]) -> Self:
        match result:
            case Ok(count):
                return cls(count=count)
            case Error(e):
                return raise_for(e)


class OrderDetailResponse(BaseModel):
    order: OrderBody

    @classmethod
    def from_domain(cls, result: Result[Order, StorefrontError]) -> Self:
        match result:
            case Ok(order):
                return cls(order=OrderBody.of(order))
            case Error(e):
                return raise_for(e)


class OrderPageResponse(BaseModel):
    orders: list[OrderBody]
    page: int
    has_more: bool

    @classmethod
    def from_domain(cls, result: Result[OrderPage, StorefrontError]) -> Self:
        match result:
            case Ok(page):
                return cls(
                    orders=[OrderBody.of(o) for o in page.orders],
                    page=page.page,
                    has_more=page.has_more,
                )
            case Error(e):
                return raise_for(e)


# ═══════════════════════════════════════════════════════════════════════════════
# Products
# ═══════════════════════════════════════════════════════════════════════════════


class ProductRequest(BaseModel):
    user_id: str | None = None

    def to_domain(self, product_id: int) -> GetProduct:
        return GetProduct(product_id, self.user_id)


class VariantBody(BaseModel):
    attributes: dict[str, str]
    stock: int
    price: float | None = None


class ProductResponse(BaseModel):
    id: int
    shop_id: int
    name: str
    price: float
    has_variants: bool
    axes: list[str] = []
    stock: int | None = None
    variants: list[VariantBody] | None = None
    effective_stock: int
    likes: int = 0
    liked: bool = False

    @classmethod
    def from_domain(cls, result: Result[ProductView, StorefrontError]) -> Self:
        match result:
            case Ok(view):
                return cls(
                    **K.to_payload(view.product),
                    axes=list(K.axes(view.product)),
                    likes=view.likes,
                    liked=view.liked,
                )
            case Error(e):
                return raise_for(e)


class LikeRequest(BaseModel):
    user_id: str
    liked: bool

    def to_domain(self, product_id: int) -> SetLike:
        return SetLike(self.user_id, product_id, self.liked)


class LikeResponse(BaseModel):
    liked: bool
    likes: int

    @classmethod
    def from_domain(cls, result: Result[LikeState, StorefrontError]) -> Self:
        match result:
            case Ok(state):
                return cls(liked=state.liked, likes=state.likes)
            case Error(e):
                return raise_for(e)


# ═══════════════════════════════════════════════════════════════════════════════
# App
# ═══════════════════════════════════════════════════════════════════════════════


def create_app(shop: Storefront) -> fastapi.FastAPI:
    """
    Example:
        shop, engine = await open_storefront()
        app = create_app(shop)
    """
    endp = (
        W.endpoint(storefront_runner(shop))
        .expose(
            W.HTTPRouteTrigger("POST", "/promo-codes/validate", tags=("promo",)),
            W.RequestResponseCodec(PromoValidateRequest, PromoValidateResponse),
        )
        .expose(
            W.HTTPRouteTrigger("GET", "/promo-codes/welcome", tags=("promo",)),
            W.RequestResponseCodec(WelcomeRequest, WelcomeResponse),
        )
        .expose(
            W.HTTPRouteTrigger("GET", "/promo-codes/my-usage", tags=("promo",)),
            W.RequestResponseCodec(PromoUsageRequest, PromoUsageResponse),
        )
        .expose(
            W.HTTPRouteTrigger("POST", "/orders", status_code=201, tags=("orders",)),
            W.RequestResponseCodec(PlaceOrdersRequest, PlaceOrdersResponse),
        )
        .expose(
            W.HTTPRouteTrigger("GET", "/orders", tags=("orders",)),
            W.RequestResponseCodec(ListOrdersRequest, OrderPageResponse),
        )
        .expose(
            W.HTTPRouteTrigger("GET", "/orders/count", tags=("orders",)),
            W.RequestResponseCodec(CountOrdersRequest, CountResponse),
        )
        .expose(
            W.HTTPRouteTrigger("GET", "/orders/shop", tags=("orders",)),
            W.RequestResponseCodec(ShopOrdersRequest, OrderPageResponse),
        )
        .expose(
            W.HTTPRouteTrigger("GET", "/orders/shop/count", tags=("orders",)),
            W.RequestResponseCodec(ShopCountRequest, CountResponse),
        )
        .expose(
            W.HTTPRouteTrigger("GET", "/orders/{order_id}", tags=("orders",)),
            W.RequestResponseCodec(OrderRequest, OrderDetailResponse),
        )
        .expose(
            W.HTTPRouteTrigger("PUT", "/orders/{order_id}/status", tags=("orders",)),
            W.RequestResponseCodec(StatusRequest, OrderResponse),
        )
        .expose(
            W.HTTPRouteTrigger("POST", "/orders/{order_id}/return", tags=("orders",)),
            W.RequestResponseCodec(ReturnRequest, OrderResponse),
        )
        .expose(
            W.HTTPRouteTrigger("GET", "/products/{product_id}", tags=("products",)),
            W.RequestResponseCodec(ProductRequest, ProductResponse),
        )
        .expose(
            W.HTTPRouteTrigger("PUT", "/products/{product_id}/like", tags=("products",)),
            W.RequestResponseCodec(LikeRequest, LikeResponse),
        )
    )
    return W.from_application(W.application("vitrine").mount(endp))


__all__ = (
    "STATUS_BY_KIND",
    "raise_for",
    "PromoValidateRequest",
    "PromoValidateResponse",
    "WelcomeRequest",
    "WelcomeResponse",
    "PromoUsageRequest",
    "PromoUsageResponse",
    "PromoCodeBody",
    "OrderItemBody",
    "PlaceOrdersRequest",
    "OrderBody",
    "PlaceOrdersResponse",
    "StatusRequest",
    "ReturnRequest",
    "OrderResponse",
    "ListOrdersRequest",
    "ShopOrdersRequest",
    "OrderRequest",
    "CountOrdersRequest",
    "ShopCountRequest",
    "CountResponse",
    "OrderDetailResponse",
    "OrderPageResponse",
    "ProductRequest",
    "VariantBody",
    "ProductResponse",
    "LikeRequest",
    "LikeResponse",
    "create_app",
)
