"""
Cart types — lines, state, and the commands that mutate it.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field, replace

from vitrine._types import Money, ProductId, ShopId, Selection, freeze_selection


# ═══════════════════════════════════════════════════════════════════════════════
# Cart Line
# ═══════════════════════════════════════════════════════════════════════════════

type LineKey = tuple[ProductId, Selection]


@dataclass(frozen=True, slots=True)
class CartLine:
    product_id: ProductId
    shop_id: ShopId
    name: str
    unit_price: Money
    quantity: int
    selection: Mapping[str, str] = field(default_factory=dict)

    @property
    def key(self) -> LineKey:
        return self.product_id, freeze_selection(dict(self.selection))

    @property
    def amount(self) -> Money:
        return self.unit_price * self.quantity

    def with_quantity(self, quantity: int) -> CartLine:
        return replace(self, quantity=quantity)


def line_key(product_id: ProductId, selection: Mapping[str, str] | None = None) -> LineKey:
    return product_id, freeze_selection(dict(selection or {}))


# ═══════════════════════════════════════════════════════════════════════════════
# Cart State
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class CartState:
    lines: tuple[CartLine, ...] = ()

    @property
    def is_empty(self) -> bool:
        return not self.lines

    def find(self, key: LineKey) -> CartLine | None:
        return next((line for line in self.lines if line.key == key), None)


# ═══════════════════════════════════════════════════════════════════════════════
# Commands
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class AddLine:
    """Add a line; `available` is the resolved stock for its selection."""

    line: CartLine
    available: int


@dataclass(frozen=True, slots=True)
class RemoveLine:
    product_id: ProductId
    selection: Mapping[str, str] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class UpdateQuantity:
    product_id: ProductId
    selection: Mapping[str, str]
    quantity: int
    available: int


@dataclass(frozen=True, slots=True)
class Clear:
    pass


type CartCommand = AddLine | RemoveLine | UpdateQuantity | Clear


__all__ = (
    "LineKey",
    "CartLine",
    "line_key",
    "CartState",
    "AddLine",
    "RemoveLine",
    "UpdateQuantity",
    "Clear",
    "CartCommand",
)
