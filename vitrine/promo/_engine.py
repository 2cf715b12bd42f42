"""
PromoEngine — validate a code against one order amount.

Checks run in a fixed order and the first failure wins:

    unknown/inactive → not yet active → expired → usage limit
        → wrong scope → below minimum

The code is validated once per checkout attempt, against the grand total
across all shops. Splitting the discount is the composer's job.
"""

from __future__ import annotations

from datetime import datetime

import structlog
from kungfu import Result, Ok, Error

from vitrine._types import Money, to_da
from vitrine.errors import (
    StorefrontError,
    ValidationError,
    PromoInvalidError,
    PromoRejection,
)
from vitrine.promo._types import DiscountType, Scope, PromoCode, PromoQuote

log = structlog.get_logger(__name__)


def normalize_code(code: str) -> str:
    """Case-insensitive, whitespace-free form used for lookup."""
    return "".join(code.split()).upper()


def compute_discount(promo: PromoCode, amount: Money) -> Money:
    match promo.discount_type:
        case DiscountType.PERCENTAGE:
            discount = amount * promo.discount_value // 100
            if promo.max_discount is not None:
                discount = min(discount, promo.max_discount)
        case DiscountType.FIXED:
            discount = promo.discount_value

    return max(0, min(discount, amount))


def commission(promo: PromoCode, discount: Money) -> Money:
    """Influencer share of a granted discount."""
    return discount * promo.commission_rate // 100


def _scope_message(scope: Scope) -> str:
    target = "l'abonnement" if scope is Scope.SUBSCRIPTION else "aux produits"
    return f"Ce code promo ne s'applique pas à {target}"


def _reject(code: str, reason: PromoRejection, hint: str | None = None) -> Error[PromoInvalidError]:
    log.info("promo.rejected", code=code, reason=reason.value)
    return Error(PromoInvalidError(code, reason, hint))


def validate(
    promo: PromoCode | None,
    code: str,
    amount: Money,
    scope: Scope = Scope.PRODUCTS,
    now: datetime | None = None,
) -> Result[PromoQuote, StorefrontError]:
    """
    Validate `code` (as typed by the user) given the stored promo, if any.

    Example:
        validate(welcome10, "welcome10", da(3000))
        # Ok(PromoQuote(discount_amount=da(200), final_amount=da(2800), ...))
    """
    normalized = normalize_code(code)
    if not normalized:
        return Error(ValidationError("code", "Code promo requis"))
    if amount < 0:
        return Error(ValidationError("order_amount", "Montant invalide"))

    if promo is None or normalize_code(promo.code) != normalized:
        return _reject(normalized, PromoRejection.UNKNOWN)
    if not promo.is_active:
        return _reject(normalized, PromoRejection.INACTIVE)

    now = now or datetime.now()
    if promo.valid_from is not None and promo.valid_from > now:
        return _reject(normalized, PromoRejection.NOT_YET_ACTIVE)
    if promo.valid_until is not None and promo.valid_until < now:
        return _reject(normalized, PromoRejection.EXPIRED)
    if promo.exhausted:
        return _reject(normalized, PromoRejection.USAGE_LIMIT)
    if promo.applies_to is not Scope.ALL and promo.applies_to is not scope:
        return _reject(normalized, PromoRejection.WRONG_SCOPE, _scope_message(scope))
    if amount < promo.min_order_amount:
        return _reject(
            normalized,
            PromoRejection.BELOW_MINIMUM,
            f"Montant minimum requis: {to_da(promo.min_order_amount):g} DA",
        )

    discount = compute_discount(promo, amount)
    return Ok(PromoQuote(
        code=normalized,
        discount_type=promo.discount_type,
        discount_value=promo.discount_value,
        discount_amount=discount,
        original_amount=amount,
        final_amount=max(0, amount - discount),
        applies_to=promo.applies_to,
        description=promo.description,
        influencer_name=promo.influencer_name,
    ))


__all__ = (
    "normalize_code",
    "compute_discount",
    "commission",
    "validate",
)
