"""
Promo types.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum

from vitrine._types import Money


class DiscountType(Enum):
    PERCENTAGE = "percentage"
    FIXED = "fixed"


class Scope(Enum):
    """What a code may be applied to."""

    ALL = "all"
    PRODUCTS = "products"
    SUBSCRIPTION = "subscription"


@dataclass(frozen=True, slots=True)
class PromoCode:
    """
    A stored promo code.

    discount_value is a percent for PERCENTAGE codes and centimes for
    FIXED ones. commission_rate is the influencer's percent of each
    discount granted.
    """

    code: str
    discount_type: DiscountType
    discount_value: int
    max_discount: Money | None = None
    min_order_amount: Money = 0
    applies_to: Scope = Scope.ALL
    valid_from: datetime | None = None
    valid_until: datetime | None = None
    usage_limit: int | None = None
    usage_count: int = 0
    is_active: bool = True
    description: str = ""
    influencer_name: str | None = None
    commission_rate: int = 0

    @property
    def exhausted(self) -> bool:
        return self.usage_limit is not None and self.usage_count >= self.usage_limit


@dataclass(frozen=True, slots=True)
class PromoQuote:
    """Outcome of a successful validation against one order amount."""

    code: str
    discount_type: DiscountType
    discount_value: int
    discount_amount: Money
    original_amount: Money
    final_amount: Money
    applies_to: Scope = Scope.ALL
    description: str = ""
    influencer_name: str | None = None


__all__ = (
    "DiscountType",
    "Scope",
    "PromoCode",
    "PromoQuote",
)
