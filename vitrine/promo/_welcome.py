"""
Welcome codes — offered automatically to users with no orders yet.

A welcome code is still applied through the regular validate() path
with its literal code.
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime

from vitrine.promo._types import Scope, PromoCode

_DESCRIPTION_MARKERS = ("nouveau", "welcome", "bienvenue")
_CODE_MARKERS = ("WELCOME", "NEW")


def is_welcome_candidate(promo: PromoCode) -> bool:
    if promo.applies_to not in (Scope.ALL, Scope.PRODUCTS):
        return False
    description = promo.description.lower()
    code = promo.code.upper()
    return any(m in description for m in _DESCRIPTION_MARKERS) or any(
        m in code for m in _CODE_MARKERS
    )


def _usable(promo: PromoCode, now: datetime) -> bool:
    if not promo.is_active or promo.exhausted:
        return False
    if promo.valid_from is not None and promo.valid_from > now:
        return False
    return promo.valid_until is None or promo.valid_until >= now


def pick_welcome(promos: Iterable[PromoCode], now: datetime | None = None) -> PromoCode | None:
    """Highest discount_value among usable welcome candidates."""
    now = now or datetime.now()
    candidates = [p for p in promos if is_welcome_candidate(p) and _usable(p, now)]
    if not candidates:
        return None
    return max(candidates, key=lambda p: p.discount_value)


def is_new_user(orders_count: int) -> bool:
    return orders_count == 0


__all__ = (
    "is_welcome_candidate",
    "pick_welcome",
    "is_new_user",
)
