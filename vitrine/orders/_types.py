"""
Order types — composed batches, wire-level submissions, persisted orders.
"""

from __future__ import annotations

import hashlib
import json
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

from vitrine._types import Money, ProductId, ShopId, OrderId, UserId
from vitrine.promo import PromoQuote


# ═══════════════════════════════════════════════════════════════════════════════
# Status
# ═══════════════════════════════════════════════════════════════════════════════


class OrderStatus(Enum):
    """
    Lifecycle:
        PENDING → CONFIRMED → SHIPPED → DELIVERED
        any non-terminal → CANCELLED
    """

    PENDING = "pending"
    CONFIRMED = "confirmed"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in (OrderStatus.DELIVERED, OrderStatus.CANCELLED)


# ═══════════════════════════════════════════════════════════════════════════════
# Composed Batch (client side)
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class OrderItem:
    product_id: ProductId
    quantity: int
    unit_price: Money
    selection: Mapping[str, str] = field(default_factory=dict)

    @property
    def amount(self) -> Money:
        return self.unit_price * self.quantity


@dataclass(frozen=True, slots=True)
class ShippingInfo:
    address: str
    phone: str
    wilaya: str = ""

    @property
    def full_address(self) -> str:
        return f"{self.address}, {self.wilaya}" if self.wilaya else self.address


@dataclass(frozen=True, slots=True)
class ShopOrderRequest:
    """One shop's slice of a checkout."""

    shop_id: ShopId
    items: tuple[OrderItem, ...]
    subtotal: Money
    discount: Money

    @property
    def total(self) -> Money:
        return self.subtotal - self.discount


@dataclass(frozen=True, slots=True)
class SubmittedItem:
    """
    `legacy` marks a selection sent as variant_size/variant_color: a blank
    legacy field still names its axis, with an empty value.
    """

    product_id: ProductId
    quantity: int
    price: Money
    selection: Mapping[str, str] = field(default_factory=dict)
    legacy: bool = False


@dataclass(frozen=True, slots=True)
class OrderSubmission:
    """
    Flat payload of POST /orders.

    The server regroups by shop itself; the per-shop split travels only as
    the claimed total and discount, which the server must agree with.
    """

    idempotency_key: str
    items: tuple[SubmittedItem, ...]
    total: Money
    shipping_address: str
    phone: str
    user_id: UserId = "guest"
    promo_code: str | None = None
    discount_amount: Money = 0

    def fingerprint(self) -> str:
        """Stable hash of everything but the key."""
        body = {
            "user_id": self.user_id,
            "items": [
                [i.product_id, i.quantity, i.price, sorted(i.selection.items()), i.legacy]
                for i in self.items
            ],
            "total": self.total,
            "shipping_address": self.shipping_address,
            "phone": self.phone,
            "promo_code": self.promo_code,
            "discount_amount": self.discount_amount,
        }
        raw = json.dumps(body, sort_keys=True, ensure_ascii=False)
        return hashlib.sha256(raw.encode()).hexdigest()


@dataclass(frozen=True, slots=True)
class OrderBatch:
    """N shop orders that are created together or not at all."""

    idempotency_key: str
    shops: tuple[ShopOrderRequest, ...]
    shipping: ShippingInfo
    promo: PromoQuote | None = None
    user_id: UserId = "guest"

    @property
    def grand_total(self) -> Money:
        return sum(s.subtotal for s in self.shops)

    @property
    def discount_amount(self) -> Money:
        return sum(s.discount for s in self.shops)

    @property
    def final_amount(self) -> Money:
        return sum(s.total for s in self.shops)

    def submission(self) -> OrderSubmission:
        return OrderSubmission(
            idempotency_key=self.idempotency_key,
            items=tuple(
                SubmittedItem(i.product_id, i.quantity, i.unit_price, i.selection)
                for shop in self.shops
                for i in shop.items
            ),
            total=self.final_amount,
            shipping_address=self.shipping.full_address,
            phone=self.shipping.phone,
            user_id=self.user_id,
            promo_code=self.promo.code if self.promo else None,
            discount_amount=self.discount_amount,
        )


# ═══════════════════════════════════════════════════════════════════════════════
# Persisted Order
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class Order:
    id: OrderId
    user_id: UserId
    shop_id: ShopId
    shop_order_number: int
    items: tuple[OrderItem, ...]
    subtotal: Money
    discount: Money
    total: Money
    shipping_address: str
    phone: str
    status: OrderStatus = OrderStatus.PENDING
    promo_code: str | None = None
    return_requested: bool = False
    return_reason: str | None = None
    created_at: datetime = field(default_factory=datetime.now)


__all__ = (
    "OrderStatus",
    "OrderItem",
    "ShippingInfo",
    "ShopOrderRequest",
    "SubmittedItem",
    "OrderSubmission",
    "OrderBatch",
    "Order",
)
