"""
Core types for vitrine.

Re-exports from kungfu/combinators + storefront aliases.
"""

from __future__ import annotations

from typing import Never

# Re-export from kungfu
from kungfu import Result, Ok, Error, Option, Some, Nothing, LazyCoroResult

# Re-export from combinators
from combinators import LCR, NoError

# ═══════════════════════════════════════════════════════════════════════════════
# Lazy Computation Aliases
# ═══════════════════════════════════════════════════════════════════════════════

type Lazy[T, E] = LazyCoroResult[T, E]
"""Lazy async computation that may fail."""

type Pure[T] = Lazy[T, Never]
"""Lazy computation that cannot fail."""

# ═══════════════════════════════════════════════════════════════════════════════
# Storefront Scalars
# ═══════════════════════════════════════════════════════════════════════════════

type Money = int
"""Amount in centimes. 1 DA == 100."""

type ProductId = int
type ShopId = int
type OrderId = str
type UserId = str

type Selection = tuple[tuple[str, str], ...]
"""Attribute selection frozen as sorted (axis, value) pairs."""

CENTIMES_PER_DA = 100


def da(amount: int | float) -> Money:
    """Dinars → centimes."""
    return round(amount * CENTIMES_PER_DA)


def to_da(amount: Money) -> float:
    """Centimes → dinars, for display and the wire."""
    return amount / CENTIMES_PER_DA


def freeze_selection(selection: dict[str, str] | Selection | None) -> Selection:
    """Hashable, order-independent form of an attribute selection."""
    if not selection:
        return ()
    items = selection.items() if isinstance(selection, dict) else selection
    return tuple(sorted((str(k), str(v)) for k, v in items))


# ═══════════════════════════════════════════════════════════════════════════════
# Exports
# ═══════════════════════════════════════════════════════════════════════════════

__all__ = (
    # Re-exports from kungfu
    "Result",
    "Ok",
    "Error",
    "Option",
    "Some",
    "Nothing",
    "LazyCoroResult",
    # Re-exports from combinators
    "LCR",
    "NoError",
    # Type aliases
    "Lazy",
    "Pure",
    # Storefront scalars
    "Money",
    "ProductId",
    "ShopId",
    "OrderId",
    "UserId",
    "Selection",
    "CENTIMES_PER_DA",
    "da",
    "to_da",
    "freeze_selection",
)
