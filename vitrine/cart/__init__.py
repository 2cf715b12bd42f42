"""
Cart — reducer-driven cart state and per-shop aggregation.

    from vitrine import cart as Ct

    cart = Ct.Cart()
    cart.dispatch(Ct.AddLine(line, available=2))
    groups = Ct.group_by_shop(cart.state.lines)
    total = Ct.grand_total(groups)
"""

from vitrine.cart._types import (
    LineKey,
    CartLine,
    line_key,
    CartState,
    AddLine,
    RemoveLine,
    UpdateQuantity,
    Clear,
    CartCommand,
)
from vitrine.cart._reducer import (
    clamp,
    apply,
    add_line_for,
    Cart,
)
from vitrine.cart._aggregate import (
    ShopGroups,
    group_by_shop,
    subtotal,
    grand_total,
    line_count,
    item_count,
)

__all__ = (
    # Types
    "LineKey",
    "CartLine",
    "line_key",
    "CartState",
    # Commands
    "AddLine",
    "RemoveLine",
    "UpdateQuantity",
    "Clear",
    "CartCommand",
    # Reducer
    "clamp",
    "apply",
    "add_line_for",
    "Cart",
    # Aggregation
    "ShopGroups",
    "group_by_shop",
    "subtotal",
    "grand_total",
    "line_count",
    "item_count",
)
