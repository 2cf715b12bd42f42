"""
StockResolver — how many units are available for a selection.
"""

from __future__ import annotations

from collections.abc import Mapping

from vitrine._types import Money
from vitrine.catalog._types import (
    Product,
    NoVariants,
    VariantRow,
    Varianted,
    VariantCatalog,
    collect_axes,
    values_along,
)

type Stocked = Product | VariantCatalog


def catalog_of(product: Product) -> VariantCatalog:
    """Index a product's variants by value tuple."""
    if not product.has_variants:
        return NoVariants(product.stock)

    axes = collect_axes(product.variants)
    rows = tuple(
        VariantRow(values_along(axes, v.attributes), v.stock, v.price)
        for v in product.variants
    )
    return Varianted(axes=axes, rows=rows, index={r.values: r for r in rows})


def _catalog(target: Stocked) -> VariantCatalog:
    return catalog_of(target) if isinstance(target, Product) else target


def axes(target: Stocked) -> tuple[str, ...]:
    match _catalog(target):
        case NoVariants():
            return ()
        case Varianted(axes=names):
            return names


def missing_axes(target: Stocked, selection: Mapping[str, str]) -> tuple[str, ...]:
    """Axes that still need a value before the selection can be resolved."""
    return tuple(a for a in axes(target) if a not in selection)


def _match(catalog: Varianted, selection: Mapping[str, str]) -> VariantRow | None:
    if set(selection) != set(catalog.axes):
        return None
    return catalog.row(values_along(catalog.axes, selection))


def resolve(target: Stocked, selection: Mapping[str, str] | None = None) -> int:
    """
    Authoritative stock for a selection.

    Partial selections resolve to 0: the caller must pick one value per
    axis first. An unknown complete combination is also 0, not an error.
    """
    selection = selection or {}
    match _catalog(target):
        case NoVariants(stock=stock):
            return stock
        case Varianted() as catalog:
            row = _match(catalog, selection)
            return row.stock if row is not None else 0


def unit_price(product: Product, selection: Mapping[str, str] | None = None) -> Money:
    """Variant price override when the selection has one, base price otherwise."""
    match catalog_of(product):
        case Varianted() as catalog:
            row = _match(catalog, selection or {})
            if row is not None and row.price is not None:
                return row.price
        case NoVariants():
            pass
    return product.price


def effective_stock(target: Stocked) -> int:
    match _catalog(target):
        case NoVariants(stock=stock):
            return stock
        case Varianted(rows=rows):
            return sum(r.stock for r in rows)


__all__ = (
    "catalog_of",
    "axes",
    "missing_axes",
    "resolve",
    "unit_price",
    "effective_stock",
)
