"""
Catalog — variant axes and stock resolution.

    from vitrine import catalog as K

    shirt = K.Product(
        id=1, shop_id=1, name="T-shirt", price=da(1000), has_variants=True,
        variants=(
            K.Variant({"Taille": "S"}, stock=2),
            K.Variant({"Taille": "M"}, stock=0),
        ),
    )
    K.axes(shirt)                      # ("Taille",)
    K.resolve(shirt, {"Taille": "S"})  # 2
    K.resolve(shirt, {})               # 0, selection incomplete
"""

from vitrine.catalog._types import (
    MISSING_VALUE,
    ATTRIBUTE_SUGGESTIONS,
    Variant,
    Product,
    NoVariants,
    VariantRow,
    Varianted,
    VariantCatalog,
)
from vitrine.catalog._resolve import (
    catalog_of,
    axes,
    missing_axes,
    resolve,
    unit_price,
    effective_stock,
)
from vitrine.catalog._build import (
    LEGACY_AXES,
    parse_flag,
    attributes_from_legacy,
    complete_legacy,
    legacy_from_attributes,
    from_payload,
    to_payload,
)

__all__ = (
    # Types
    "MISSING_VALUE",
    "ATTRIBUTE_SUGGESTIONS",
    "Variant",
    "Product",
    "NoVariants",
    "VariantRow",
    "Varianted",
    "VariantCatalog",
    # Resolver
    "catalog_of",
    "axes",
    "missing_axes",
    "resolve",
    "unit_price",
    "effective_stock",
    # Read model
    "LEGACY_AXES",
    "parse_flag",
    "attributes_from_legacy",
    "complete_legacy",
    "legacy_from_attributes",
    "from_payload",
    "to_payload",
)
