"""
CartAggregator — pure functions over cart lines.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence

from vitrine._types import Money, ShopId
from vitrine.cart._types import CartLine

type ShopGroups = dict[ShopId, tuple[CartLine, ...]]


def group_by_shop(lines: Iterable[CartLine]) -> ShopGroups:
    """Shops in first-appearance order, lines in cart order within each shop."""
    groups: dict[ShopId, list[CartLine]] = {}
    for line in lines:
        groups.setdefault(line.shop_id, []).append(line)
    return {shop: tuple(group) for shop, group in groups.items()}


def subtotal(lines: Iterable[CartLine]) -> Money:
    return sum(line.unit_price * line.quantity for line in lines)


def grand_total(groups: Mapping[ShopId, Sequence[CartLine]]) -> Money:
    return sum(subtotal(group) for group in groups.values())


def line_count(lines: Iterable[CartLine]) -> int:
    return sum(1 for _ in lines)


def item_count(lines: Iterable[CartLine]) -> int:
    return sum(line.quantity for line in lines)


__all__ = (
    "ShopGroups",
    "group_by_shop",
    "subtotal",
    "grand_total",
    "line_count",
    "item_count",
)
