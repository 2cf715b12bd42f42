"""
Catalog types — products, variants, and the per-product variant index.

Attribute names are chosen per product, so a Variant carries a free-form
mapping. At the product boundary that mapping is turned into a tagged
union: NoVariants or Varianted(axes), where each variant becomes a tuple
of values ordered by the product's axes.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field

from vitrine._types import Money, ProductId, ShopId
from vitrine.errors import ValidationError

MISSING_VALUE = ""
"""Value an axis takes on a variant that does not define it."""

ATTRIBUTE_SUGGESTIONS: tuple[str, ...] = (
    "Taille",
    "Couleur",
    "Pointure",
    "Matière",
    "Style",
    "Modèle",
    "Capacité",
    "Poids",
)


# ═══════════════════════════════════════════════════════════════════════════════
# Variant & Product
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class Variant:
    """One stock-bearing combination of attribute values."""

    attributes: Mapping[str, str]
    stock: int
    price: Money | None = None


def collect_axes(variants: Iterable[Variant]) -> tuple[str, ...]:
    """Union of attribute names, first-seen order."""
    seen: dict[str, None] = {}
    for variant in variants:
        for name in variant.attributes:
            seen.setdefault(name, None)
    return tuple(seen)


def values_along(axes: tuple[str, ...], attributes: Mapping[str, str]) -> tuple[str, ...]:
    return tuple(attributes.get(axis, MISSING_VALUE) for axis in axes)


@dataclass(frozen=True, slots=True)
class Product:
    """
    A sellable product.

    `stock` is authoritative only when has_variants is False. Two variants
    with the same attribute map (after filling missing axes with "") are
    rejected here.
    """

    id: ProductId
    shop_id: ShopId
    name: str
    price: Money
    has_variants: bool = False
    stock: int = 0
    variants: tuple[Variant, ...] = ()

    def __post_init__(self) -> None:
        if self.price < 0:
            raise ValidationError("price", f"Negative price for product {self.id}")
        if self.stock < 0:
            raise ValidationError("stock", f"Negative stock for product {self.id}")

        axes = collect_axes(self.variants)
        seen: set[tuple[str, ...]] = set()
        for variant in self.variants:
            if variant.stock < 0:
                raise ValidationError("variants", f"Negative variant stock for product {self.id}")
            key = values_along(axes, variant.attributes)
            if key in seen:
                combo = ", ".join(f"{a}={v!r}" for a, v in zip(axes, key))
                raise ValidationError("variants", f"Duplicate variant combination: {combo}")
            seen.add(key)


# ═══════════════════════════════════════════════════════════════════════════════
# Variant Catalog — tagged union
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class NoVariants:
    stock: int


@dataclass(frozen=True, slots=True)
class VariantRow:
    values: tuple[str, ...]
    stock: int
    price: Money | None = None


@dataclass(frozen=True, slots=True)
class Varianted:
    axes: tuple[str, ...]
    rows: tuple[VariantRow, ...]
    index: Mapping[tuple[str, ...], VariantRow] = field(compare=False, repr=False)

    def row(self, values: tuple[str, ...]) -> VariantRow | None:
        return self.index.get(values)


type VariantCatalog = NoVariants | Varianted


__all__ = (
    "MISSING_VALUE",
    "ATTRIBUTE_SUGGESTIONS",
    "Variant",
    "Product",
    "collect_axes",
    "values_along",
    "NoVariants",
    "VariantRow",
    "Varianted",
    "VariantCatalog",
)
