import pytest

from vitrine import catalog as K
from vitrine._types import da
from vitrine.errors import ValidationError


def test_non_variant_product_resolves_to_its_stock(mug: K.Product) -> None:
    assert K.resolve(mug, {}) == mug.stock
    assert K.resolve(mug) == 5
    assert K.axes(mug) == ()


def test_variant_stock_is_resolved_per_selection(shirt: K.Product) -> None:
    assert K.axes(shirt) == ("Taille",)
    assert K.resolve(shirt, {"Taille": "S"}) == 2
    assert K.resolve(shirt, {"Taille": "M"}) == 0


def test_partial_or_unknown_selection_resolves_to_zero() -> None:
    hoodie = K.Product(
        id=9,
        shop_id=1,
        name="Hoodie",
        price=da(2500),
        has_variants=True,
        variants=(
            K.Variant({"Taille": "L", "Couleur": "Noir"}, stock=4),
            K.Variant({"Taille": "L", "Couleur": "Blanc"}, stock=1),
        ),
    )
    assert K.resolve(hoodie, {"Taille": "L"}) == 0
    assert K.missing_axes(hoodie, {"Taille": "L"}) == ("Couleur",)
    assert K.resolve(hoodie, {"Taille": "XL", "Couleur": "Noir"}) == 0
    assert K.resolve(hoodie, {"Couleur": "Blanc", "Taille": "L"}) == 1
    assert K.effective_stock(hoodie) == 5


def test_missing_axis_is_its_own_value() -> None:
    mixed = K.Product(
        id=10,
        shop_id=1,
        name="Bracelet",
        price=da(300),
        has_variants=True,
        variants=(
            K.Variant({"Couleur": "Or"}, stock=3),
            K.Variant({"Couleur": "Or", "Taille": "M"}, stock=1),
        ),
    )
    assert K.axes(mixed) == ("Couleur", "Taille")
    # the first variant is reached with an empty Taille
    assert K.resolve(mixed, {"Couleur": "Or", "Taille": ""}) == 3
    assert K.resolve(mixed, {"Couleur": "Or", "Taille": "M"}) == 1
    assert K.resolve(mixed, {"Couleur": "Or"}) == 0
    assert K.missing_axes(mixed, {"Couleur": "Or"}) == ("Taille",)


def test_duplicate_attribute_maps_are_rejected() -> None:
    with pytest.raises(ValidationError) as exc:
        K.Product(
            id=11,
            shop_id=1,
            name="Robe",
            price=da(4000),
            has_variants=True,
            variants=(
                K.Variant({"Taille": "S"}, stock=1),
                K.Variant({"Taille": "S"}, stock=3),
            ),
        )
    assert exc.value.field == "variants"


def test_negative_stock_is_rejected() -> None:
    with pytest.raises(ValidationError):
        K.Product(id=12, shop_id=1, name="Stylo", price=da(50), stock=-1)


def test_variant_price_overrides_base_price() -> None:
    shoe = K.Product(
        id=13,
        shop_id=1,
        name="Basket",
        price=da(6000),
        has_variants=True,
        variants=(
            K.Variant({"Pointure": "42"}, stock=2),
            K.Variant({"Pointure": "46"}, stock=1, price=da(6500)),
        ),
    )
    assert K.unit_price(shoe, {"Pointure": "42"}) == da(6000)
    assert K.unit_price(shoe, {"Pointure": "46"}) == da(6500)


def test_legacy_payload_rows_map_onto_named_axes() -> None:
    product = K.from_payload({
        "id": 20,
        "shop_id": 3,
        "name": "Chemise",
        "price": "1200",
        "has_variants": "1",
        "variants": [
            {"size": "M", "color": "Bleu", "stock": "2"},
            {"size": "L", "color": None, "stock": 1},
        ],
    })
    assert product.has_variants
    assert product.price == da(1200)
    assert K.axes(product) == ("Taille", "Couleur")
    assert K.resolve(product, {"Taille": "M", "Couleur": "Bleu"}) == 2


def test_payload_flags_and_round_trip(shirt: K.Product) -> None:
    assert K.parse_flag("true") and K.parse_flag(1) and not K.parse_flag("0")
    body = K.to_payload(shirt)
    assert body["effective_stock"] == 2
    assert K.from_payload(body) == shirt


def test_legacy_fields_derive_from_attributes() -> None:
    assert K.attributes_from_legacy("M", "") == {"Taille": "M"}
    assert K.legacy_from_attributes({"Couleur": "Rouge"}) == (None, "Rouge")


def test_blank_legacy_field_selects_the_variant_without_that_axis() -> None:
    mixed = K.Product(
        id=10,
        shop_id=1,
        name="Bracelet",
        price=da(300),
        has_variants=True,
        variants=(
            K.Variant({"Couleur": "Or"}, stock=3),
            K.Variant({"Couleur": "Or", "Taille": "M"}, stock=1),
        ),
    )
    selection = K.complete_legacy(mixed, K.attributes_from_legacy(None, "Or"))
    assert selection == {"Couleur": "Or", "Taille": ""}
    assert K.missing_axes(mixed, selection) == ()
    assert K.resolve(mixed, selection) == 3

    picked = K.complete_legacy(mixed, K.attributes_from_legacy("M", "Or"))
    assert K.resolve(mixed, picked) == 1


def test_blank_legacy_field_stays_missing_when_every_variant_has_the_axis(
    shirt: K.Product,
) -> None:
    selection = K.complete_legacy(shirt, K.attributes_from_legacy("", None))
    assert selection == {}
    assert K.missing_axes(shirt, selection) == ("Taille",)


@pytest.mark.parametrize(
    ("field", "payload"),
    [
        ("id", {"id": "abc", "shop_id": 1, "price": 100}),
        ("shop_id", {"id": 1, "shop_id": "x", "price": 100}),
        ("price", {"id": 1, "shop_id": 1, "price": "cher"}),
        ("stock", {"id": 1, "shop_id": 1, "price": 100, "stock": "beaucoup"}),
        ("price", {
            "id": 1, "shop_id": 1, "price": 100, "has_variants": True,
            "variants": [{"attributes": {"Taille": "S"}, "stock": 1, "price": "?"}],
        }),
    ],
)
def test_malformed_payload_numbers_are_validation_errors(field: str, payload: dict) -> None:
    with pytest.raises(ValidationError) as exc:
        K.from_payload(payload)
    assert exc.value.field == field
