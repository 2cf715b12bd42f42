"""
Build products from the API read model and back.

Rows come in two shapes: `{"attributes": {...}, "stock": n}` and the
legacy `{"size": .., "color": .., "stock": n}` one, which is mapped onto
the legacy axis names.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from typing import Any

from vitrine._types import da, to_da
from vitrine.catalog._types import MISSING_VALUE, Product, Variant
from vitrine.catalog._resolve import axes, effective_stock
from vitrine.errors import ValidationError

LEGACY_AXES: tuple[str, str] = ("Taille", "Couleur")

_TRUTHY = {"1", "true", "yes", "on"}


def parse_flag(value: object) -> bool:
    """has_variants arrives as bool, 0/1 or a string."""
    if isinstance(value, str):
        return value.strip().lower() in _TRUTHY
    return bool(value)


def attributes_from_legacy(
    size: str | None,
    color: str | None,
    *,
    legacy_axes: tuple[str, str] = LEGACY_AXES,
) -> dict[str, str]:
    """Empty and null legacy values are dropped."""
    size_axis, color_axis = legacy_axes
    attributes: dict[str, str] = {}
    if size:
        attributes[size_axis] = size
    if color:
        attributes[color_axis] = color
    return attributes


def complete_legacy(
    product: Product,
    selection: Mapping[str, str],
    *,
    legacy_axes: tuple[str, str] = LEGACY_AXES,
) -> dict[str, str]:
    """
    A legacy selection names every legacy axis, empty or not. A blank
    legacy field picks the variant that lacks that axis, when the product
    has one; otherwise the axis stays unselected.
    """
    open_axes = {
        axis for axis in axes(product)
        if any(v.attributes.get(axis, MISSING_VALUE) == MISSING_VALUE for v in product.variants)
    }
    completed = dict(selection)
    for axis in legacy_axes:
        if axis in open_axes:
            completed.setdefault(axis, MISSING_VALUE)
    return completed


def legacy_from_attributes(
    attributes: Mapping[str, str],
    *,
    legacy_axes: tuple[str, str] = LEGACY_AXES,
) -> tuple[str | None, str | None]:
    size_axis, color_axis = legacy_axes
    return attributes.get(size_axis) or None, attributes.get(color_axis) or None


def variant_from_payload(
    row: Mapping[str, Any],
    *,
    legacy_axes: tuple[str, str] = LEGACY_AXES,
) -> Variant:
    raw = row.get("attributes")
    if isinstance(raw, Mapping):
        attributes = {str(k): str(v) for k, v in raw.items() if v is not None}
    else:
        attributes = attributes_from_legacy(
            row.get("size"), row.get("color"), legacy_axes=legacy_axes
        )

    price = row.get("price")
    return Variant(
        attributes=attributes,
        stock=_coerce("stock", row.get("stock") or 0, int, "variant "),
        price=_coerce("price", price, _money, "variant ") if price not in (None, "") else None,
    )


def _money(value: object) -> int:
    return da(float(value))  # type: ignore[arg-type]


def _coerce[T](name: str, value: object, convert: Callable[[Any], T], prefix: str = "") -> T:
    try:
        return convert(value)
    except (TypeError, ValueError, OverflowError) as e:
        raise ValidationError(name, f"Invalid {prefix}{name}: {value!r}") from e


def from_payload(
    payload: Mapping[str, Any],
    *,
    legacy_axes: tuple[str, str] = LEGACY_AXES,
) -> Product:
    """
    Example:
        from_payload({
            "id": 7, "shop_id": 1, "name": "T-shirt", "price": 1000,
            "has_variants": "true",
            "variants": [{"attributes": {"Taille": "S"}, "stock": 2}],
        })
    """
    for required in ("id", "shop_id", "price"):
        if payload.get(required) is None:
            raise ValidationError(required, f"Missing product field: {required}")

    has_variants = parse_flag(payload.get("has_variants", False))
    variants = tuple(
        variant_from_payload(row, legacy_axes=legacy_axes)
        for row in payload.get("variants") or ()
    )

    return Product(
        id=_coerce("id", payload["id"], int),
        shop_id=_coerce("shop_id", payload["shop_id"], int),
        name=str(payload.get("name", "")),
        price=_coerce("price", payload["price"], _money),
        has_variants=has_variants,
        stock=_coerce("stock", payload.get("stock") or 0, int),
        variants=variants if has_variants else (),
    )


def to_payload(product: Product) -> dict[str, Any]:
    body: dict[str, Any] = {
        "id": product.id,
        "shop_id": product.shop_id,
        "name": product.name,
        "price": to_da(product.price),
        "has_variants": product.has_variants,
        "effective_stock": effective_stock(product),
    }
    if product.has_variants:
        body["variants"] = [
            {
                "attributes": dict(v.attributes),
                "stock": v.stock,
                "price": to_da(v.price) if v.price is not None else None,
            }
            for v in product.variants
        ]
    else:
        body["stock"] = product.stock
    return body


__all__ = (
    "LEGACY_AXES",
    "parse_flag",
    "attributes_from_legacy",
    "complete_legacy",
    "legacy_from_attributes",
    "variant_from_payload",
    "from_payload",
    "to_payload",
)
