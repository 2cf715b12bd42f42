"""
Cart reducer — the only way cart state changes.

    cart = Cart()
    match add_line_for(product, {"Taille": "S"}, quantity=1):
        case Ok(command):
            cart.dispatch(command)
        case Error(e):
            ...

Quantities above the resolved stock are rejected, never clamped.
"""

from __future__ import annotations

from collections.abc import Mapping

import structlog
from kungfu import Result, Ok, Error

from vitrine import catalog as K
from vitrine.cart._types import (
    CartLine,
    CartState,
    CartCommand,
    AddLine,
    RemoveLine,
    UpdateQuantity,
    Clear,
    LineKey,
    line_key,
)
from vitrine.errors import (
    StorefrontError,
    ValidationError,
    StockInsufficientError,
    NotFoundError,
)

log = structlog.get_logger(__name__)


def clamp(requested: int, stock: int) -> int:
    """Largest quantity that can be offered. Display only."""
    return max(0, min(requested, stock))


def _short(line: CartLine, requested: int, available: int) -> StockInsufficientError:
    return StockInsufficientError(
        product_id=line.product_id,
        requested=requested,
        available=available,
        selection=line.selection,
    )


# ═══════════════════════════════════════════════════════════════════════════════
# Reducer
# ═══════════════════════════════════════════════════════════════════════════════


def _add(state: CartState, cmd: AddLine) -> Result[CartState, StorefrontError]:
    line = cmd.line
    if line.quantity < 1:
        return Error(ValidationError("quantity", "Quantity must be at least 1"))

    existing = state.find(line.key)
    wanted = line.quantity + (existing.quantity if existing else 0)
    if wanted > cmd.available:
        return Error(_short(line, wanted, cmd.available))

    if existing is None:
        return Ok(CartState((*state.lines, line)))

    return Ok(CartState(tuple(
        l.with_quantity(wanted) if l.key == line.key else l
        for l in state.lines
    )))


def _remove(state: CartState, key: LineKey) -> CartState:
    return CartState(tuple(l for l in state.lines if l.key != key))


def _update(state: CartState, cmd: UpdateQuantity) -> Result[CartState, StorefrontError]:
    key = line_key(cmd.product_id, cmd.selection)
    existing = state.find(key)
    if existing is None:
        return Error(NotFoundError("cart line", key))

    if cmd.quantity <= 0:
        return Ok(_remove(state, key))
    if cmd.quantity > cmd.available:
        return Error(_short(existing, cmd.quantity, cmd.available))

    return Ok(CartState(tuple(
        l.with_quantity(cmd.quantity) if l.key == key else l
        for l in state.lines
    )))


def apply(state: CartState, command: CartCommand) -> Result[CartState, StorefrontError]:
    """Pure transition: state × command → new state or a rejection."""
    match command:
        case AddLine():
            return _add(state, command)
        case RemoveLine(product_id=pid, selection=selection):
            return Ok(_remove(state, line_key(pid, selection)))
        case UpdateQuantity():
            return _update(state, command)
        case Clear():
            return Ok(CartState())


# ═══════════════════════════════════════════════════════════════════════════════
# Command Construction
# ═══════════════════════════════════════════════════════════════════════════════


def add_line_for(
    product: K.Product,
    selection: Mapping[str, str] | None = None,
    quantity: int = 1,
) -> Result[AddLine, StorefrontError]:
    """
    Build an AddLine from a product page selection.

    Requires one value per axis; the stock attached is resolved here.
    """
    selection = dict(selection or {})
    missing = K.missing_axes(product, selection)
    if missing:
        return Error(ValidationError("selection", f"Veuillez sélectionner: {', '.join(missing)}"))

    line = CartLine(
        product_id=product.id,
        shop_id=product.shop_id,
        name=product.name,
        unit_price=K.unit_price(product, selection),
        quantity=quantity,
        selection=selection,
    )
    return Ok(AddLine(line=line, available=K.resolve(product, selection)))


# ═══════════════════════════════════════════════════════════════════════════════
# Cart — explicit store owned by the composition root
# ═══════════════════════════════════════════════════════════════════════════════


class Cart:
    """Holds a CartState. Mutated only through dispatch()."""

    __slots__ = ("_state",)

    def __init__(self, state: CartState | None = None) -> None:
        self._state = state if state is not None else CartState()

    @property
    def state(self) -> CartState:
        return self._state

    def dispatch(self, command: CartCommand) -> Result[CartState, StorefrontError]:
        result = apply(self._state, command)
        match result:
            case Ok(state):
                self._state = state
            case Error(e):
                log.info("cart.rejected", command=type(command).__name__, reason=e.message)
        return result


__all__ = (
    "clamp",
    "apply",
    "add_line_for",
    "Cart",
)
