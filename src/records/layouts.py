"""Fixed-width layouts of the supported record families."""

from __future__ import annotations

from records.field_layout import FieldSpec, RecordLayout

PARTY_LAYOUT = RecordLayout(
    name="party",
    fields=(
        FieldSpec("marker", 1),
        FieldSpec("role", 2),
        FieldSpec("party_id", 17),
        FieldSpec("party_code", 3),
    ),
    width=23,
    min_width=20,
)

PRODUCT_LAYOUT = RecordLayout(
    name="product",
    fields=(
        FieldSpec("marker", 1),
        FieldSpec("category", 1),
        FieldSpec("product_id", 9),
        FieldSpec("operation", 1),
        FieldSpec("language", 3),
        FieldSpec("effective_date", 8),
        FieldSpec("name", 35),
        FieldSpec("description", 35),
        FieldSpec("search_tags", 20),
        FieldSpec("search_code", 7),
        FieldSpec("discount_group", 6),
        FieldSpec("unit", 3),
        FieldSpec("unit_weight", 7, scale=3),
        FieldSpec("unit_volume", 7, scale=3),
        FieldSpec("typical_packaging", 9),
        FieldSpec("packaging_1", 9, scale=2),
        FieldSpec("packaging_1_discount", 5, scale=2),
        FieldSpec("packaging_2", 9, scale=2),
        FieldSpec("packaging_2_discount", 5, scale=2),
        FieldSpec("packaging_3", 9, scale=2),
        FieldSpec("packaging_3_discount", 5, scale=2),
        FieldSpec("tax_class", 3),
        FieldSpec("delivery_in_weeks", 2),
        FieldSpec("stock_flag", 1),
        FieldSpec("ean_code", 20),
        FieldSpec("usage_unit", 3),
        FieldSpec("usables_in_unit", 9, scale=4),
    ),
    width=232,
    min_width=129,
)

PRICE_LAYOUT = RecordLayout(
    name="price",
    fields=(
        FieldSpec("marker", 1),
        FieldSpec("category", 1),
        FieldSpec("product_id", 9),
        FieldSpec("price_group", 2),
        FieldSpec("unit_price", 9, scale=2),
        FieldSpec("effective_date", 8),
        FieldSpec("discount_group", 6),
        FieldSpec("unit", 3),
        FieldSpec("units_included", 4),
        FieldSpec("packaging_1", 9, scale=2),
        FieldSpec("packaging_1_discount", 5, scale=2),
        FieldSpec("packaging_2", 9, scale=2),
        FieldSpec("packaging_2_discount", 5, scale=2),
        FieldSpec("packaging_3", 9, scale=2),
        FieldSpec("packaging_3_discount", 5, scale=2),
        FieldSpec("usage_unit", 3),
        FieldSpec("usables_in_unit", 9, scale=4),
        FieldSpec("stock_flag", 1),
        FieldSpec("delivery_in_weeks", 2),
    ),
    width=100,
    min_width=98,
)

DISCOUNT_LAYOUT = RecordLayout(
    name="discount_range",
    fields=(
        FieldSpec("marker", 1),
        FieldSpec("discount_group", 6),
        FieldSpec("product_range", 25),
        FieldSpec("group_name", 40),
        FieldSpec("price_group", 2),
        FieldSpec("percent_1", 9, scale=2),
        FieldSpec("percent_2", 9, scale=2),
    ),
    width=92,
    min_width=83,
)

PACKAGING_FIELD_PAIRS = (
    ("packaging_1", "packaging_1_discount"),
    ("packaging_2", "packaging_2_discount"),
    ("packaging_3", "packaging_3_discount"),
)
