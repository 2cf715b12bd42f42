"""
Gateway — how the client reaches the storefront.

    gateway = HttpGateway(httpx.AsyncClient(base_url="https://api.example.dz"))
    gateway = LocalGateway(storefront)   # same process, tests

Both return LazyCoroResult. HttpGateway maps timeouts, connection
failures and 5xx to TransientNetworkError; 4xx bodies are decoded back
into the error that produced them.
"""

from __future__ import annotations

from collections.abc import Mapping
from datetime import datetime
from typing import Any, Protocol

import httpx
import structlog
from kungfu import LazyCoroResult

from vitrine import catalog as K
from vitrine._types import Money, ProductId, UserId, da, to_da
from vitrine.errors import (
    ConflictError,
    NotFoundError,
    PromoInvalidError,
    PromoRejection,
    StatusTransitionError,
    StockInsufficientError,
    StorefrontError,
    TransientNetworkError,
    ValidationError,
)
from vitrine.lift import from_domain
from vitrine.orders import Order, OrderItem, OrderStatus, OrderSubmission
from vitrine.promo import DiscountType, PromoCode, PromoQuote, Scope
from vitrine.server import LikeState, OrderPage, ProductView, Storefront, WelcomeOffer

log = structlog.get_logger(__name__)


class Gateway(Protocol):
    def validate_promo(
        self,
        code: str,
        amount: Money,
        scope: Scope = Scope.PRODUCTS,
    ) -> LazyCoroResult[PromoQuote, StorefrontError]: ...

    def welcome_code(self, user_id: UserId) -> LazyCoroResult[WelcomeOffer, StorefrontError]: ...

    def place_orders(
        self,
        submission: OrderSubmission,
    ) -> LazyCoroResult[tuple[Order, ...], StorefrontError]: ...

    def list_orders(
        self,
        user_id: UserId,
        page: int = 1,
        limit: int | None = None,
    ) -> LazyCoroResult[OrderPage, StorefrontError]: ...

    def product(
        self,
        product_id: ProductId,
        user_id: UserId | None = None,
    ) -> LazyCoroResult[ProductView, StorefrontError]: ...

    def set_like(
        self,
        user_id: UserId,
        product_id: ProductId,
        liked: bool,
    ) -> LazyCoroResult[LikeState, StorefrontError]: ...


# ═══════════════════════════════════════════════════════════════════════════════
# In-process
# ═══════════════════════════════════════════════════════════════════════════════


class LocalGateway:
    __slots__ = ("_shop",)

    def __init__(self, storefront: Storefront) -> None:
        self._shop = storefront

    def validate_promo(
        self,
        code: str,
        amount: Money,
        scope: Scope = Scope.PRODUCTS,
    ) -> LazyCoroResult[PromoQuote, StorefrontError]:
        return self._shop.validate_promo(code, amount, scope)

    def welcome_code(self, user_id: UserId) -> LazyCoroResult[WelcomeOffer, StorefrontError]:
        return self._shop.welcome_code(user_id)

    def place_orders(
        self,
        submission: OrderSubmission,
    ) -> LazyCoroResult[tuple[Order, ...], StorefrontError]:
        return self._shop.place_orders(submission)

    def list_orders(
        self,
        user_id: UserId,
        page: int = 1,
        limit: int | None = None,
    ) -> LazyCoroResult[OrderPage, StorefrontError]:
        return self._shop.list_orders(user_id, page, limit)

    def product(
        self,
        product_id: ProductId,
        user_id: UserId | None = None,
    ) -> LazyCoroResult[ProductView, StorefrontError]:
        return self._shop.product(product_id, user_id)

    def set_like(
        self,
        user_id: UserId,
        product_id: ProductId,
        liked: bool,
    ) -> LazyCoroResult[LikeState, StorefrontError]:
        return self._shop.set_like(user_id, product_id, liked)


# ═══════════════════════════════════════════════════════════════════════════════
# Decoding
# ═══════════════════════════════════════════════════════════════════════════════


def decode_error(status: int, detail: Any) -> StorefrontError:
    """Rebuild the error behind a 4xx/5xx body."""
    if status >= 500:
        return TransientNetworkError(f"Erreur serveur ({status})")
    if not isinstance(detail, Mapping):
        return ValidationError("request", str(detail))

    message = str(detail.get("error", ""))
    match detail.get("kind"):
        case "promo":
            return PromoInvalidError(
                str(detail.get("code", "")),
                PromoRejection(detail.get("reason", PromoRejection.UNKNOWN.value)),
                detail.get("hint") or None,
            )
        case "stock":
            return StockInsufficientError(
                int(detail["product_id"]),
                int(detail["requested"]),
                int(detail["available"]),
                detail.get("selection") or {},
            )
        case "not_found":
            return NotFoundError(str(detail.get("entity", "resource")), detail.get("key"))
        case "transition":
            return StatusTransitionError(
                "", str(detail.get("current", "")), str(detail.get("requested", "")), message or None
            )
        case "conflict":
            return ConflictError(message)
        case "transient":
            return TransientNetworkError(message)
        case _:
            return ValidationError(str(detail.get("field", "request")), message)


def _quote(body: Mapping[str, Any]) -> PromoQuote:
    kind = DiscountType(body["discount_type"])
    value = body["discount_value"]
    return PromoQuote(
        code=body["code"],
        discount_type=kind,
        discount_value=int(value) if kind is DiscountType.PERCENTAGE else da(value),
        discount_amount=da(body["discount_amount"]),
        original_amount=da(body["original_amount"]),
        final_amount=da(body["final_amount"]),
        applies_to=Scope.PRODUCTS,
        description=body.get("description", ""),
        influencer_name=body.get("influencer_name"),
    )


def _promo(body: Mapping[str, Any]) -> PromoCode:
    kind = DiscountType(body["discount_type"])
    value = body["discount_value"]
    cap = body.get("max_discount")
    return PromoCode(
        code=body["code"],
        discount_type=kind,
        discount_value=int(value) if kind is DiscountType.PERCENTAGE else da(value),
        max_discount=da(cap) if cap is not None else None,
        description=body.get("description", ""),
    )


def _selection(item: Mapping[str, Any]) -> dict[str, str]:
    if item.get("variant_attributes"):
        return dict(item["variant_attributes"])
    return K.attributes_from_legacy(item.get("variant_size"), item.get("variant_color"))


def _order(body: Mapping[str, Any]) -> Order:
    return Order(
        id=body["id"],
        user_id=body["user_id"],
        shop_id=int(body["shop_id"]),
        shop_order_number=int(body["shop_order_number"]),
        items=tuple(
            OrderItem(int(i["product_id"]), int(i["quantity"]), da(i["price"]), _selection(i))
            for i in body["items"]
        ),
        subtotal=da(body["subtotal"]),
        discount=da(body["discount_amount"]),
        total=da(body["total"]),
        shipping_address=body["shipping_address"],
        phone=body["phone"],
        status=OrderStatus(body["status"]),
        promo_code=body.get("promo_code"),
        return_requested=bool(body.get("return_requested", False)),
        return_reason=body.get("return_reason"),
        created_at=datetime.fromisoformat(body["created_at"]),
    )


def _submission_body(sub: OrderSubmission) -> dict[str, Any]:
    items = []
    for i in sub.items:
        size, color = K.legacy_from_attributes(i.selection)
        items.append({
            "product_id": i.product_id,
            "quantity": i.quantity,
            "price": to_da(i.price),
            "variant_size": size,
            "variant_color": color,
            "variant_attributes": dict(i.selection) or None,
        })
    return {
        "items": items,
        "total": to_da(sub.total),
        "shipping_address": sub.shipping_address,
        "phone": sub.phone,
        "promo_code": sub.promo_code,
        "discount_amount": to_da(sub.discount_amount),
        "idempotency_key": sub.idempotency_key,
        "user_id": sub.user_id,
    }


# ═══════════════════════════════════════════════════════════════════════════════
# Over HTTP
# ═══════════════════════════════════════════════════════════════════════════════


class HttpGateway:
    __slots__ = ("_http",)

    def __init__(self, client: httpx.AsyncClient) -> None:
        self._http = client

    async def _call(self, method: str, url: str, **kwargs: Any) -> Any:
        try:
            response = await self._http.request(method, url, **kwargs)
        except httpx.TimeoutException as e:
            log.warning("gateway.timeout", method=method, url=url)
            raise TransientNetworkError("Délai d'attente dépassé") from e
        except httpx.TransportError as e:
            log.warning("gateway.unreachable", method=method, url=url, error=str(e))
            raise TransientNetworkError("Connexion impossible") from e

        if response.is_success:
            return response.json()

        try:
            detail = response.json().get("detail")
        except ValueError:
            detail = response.text
        error = decode_error(response.status_code, detail)
        log.info("gateway.rejected", url=url, status=response.status_code, kind=error.kind.name)
        raise error

    def validate_promo(
        self,
        code: str,
        amount: Money,
        scope: Scope = Scope.PRODUCTS,
    ) -> LazyCoroResult[PromoQuote, StorefrontError]:
        async def run() -> PromoQuote:
            body = await self._call(
                "POST",
                "/promo-codes/validate",
                json={"code": code, "order_amount": to_da(amount), "applies_to": scope.value},
            )
            return _quote(body)
        return from_domain(run)

    def welcome_code(self, user_id: UserId) -> LazyCoroResult[WelcomeOffer, StorefrontError]:
        async def run() -> WelcomeOffer:
            body = await self._call("GET", "/promo-codes/welcome", params={"user_id": user_id})
            promo = _promo(body["code"]) if body.get("code") else None
            return WelcomeOffer(is_new_user=body["is_new_user"], promo=promo)
        return from_domain(run)

    def place_orders(
        self,
        submission: OrderSubmission,
    ) -> LazyCoroResult[tuple[Order, ...], StorefrontError]:
        async def run() -> tuple[Order, ...]:
            body = await self._call("POST", "/orders", json=_submission_body(submission))
            return tuple(_order(o) for o in body["orders"])
        return from_domain(run)

    def list_orders(
        self,
        user_id: UserId,
        page: int = 1,
        limit: int | None = None,
    ) -> LazyCoroResult[OrderPage, StorefrontError]:
        async def run() -> OrderPage:
            params: dict[str, Any] = {"user_id": user_id, "page": page}
            if limit is not None:
                params["limit"] = limit
            body = await self._call("GET", "/orders", params=params)
            return OrderPage(
                orders=tuple(_order(o) for o in body["orders"]),
                page=body["page"],
                has_more=body["has_more"],
            )
        return from_domain(run)

    def product(
        self,
        product_id: ProductId,
        user_id: UserId | None = None,
    ) -> LazyCoroResult[ProductView, StorefrontError]:
        async def run() -> ProductView:
            params = {"user_id": user_id} if user_id is not None else {}
            body = await self._call("GET", f"/products/{product_id}", params=params)
            return ProductView(K.from_payload(body), body.get("likes", 0), body.get("liked", False))
        return from_domain(run)

    def set_like(
        self,
        user_id: UserId,
        product_id: ProductId,
        liked: bool,
    ) -> LazyCoroResult[LikeState, StorefrontError]:
        async def run() -> LikeState:
            body = await self._call(
                "PUT", f"/products/{product_id}/like", json={"user_id": user_id, "liked": liked}
            )
            return LikeState(body["liked"], body["likes"])
        return from_domain(run)


__all__ = (
    "Gateway",
    "LocalGateway",
    "HttpGateway",
    "decode_error",
)
