"""Field extraction for buyer discount range lines."""

from __future__ import annotations

from core.record_types import ClassifiedLine, DiscountRangeRecord, ExtractionResult
from records.field_layout import slice_fields
from records.field_values import (
    optional_text,
    parse_implied_decimal,
    require_identifier,
    split_product_range,
    validate_text,
)
from records.layouts import DISCOUNT_LAYOUT


def extract_discount_range(line: ClassifiedLine) -> ExtractionResult:
    """Extract discount terms for one seller discount group.

    The product range is copied as advisory metadata. Matching against
    catalog rows relies on the discount-group label alone.

    Raises:
        FieldExtractionError: If the group label or price group is missing.
    """
    values = slice_fields(line.text, DISCOUNT_LAYOUT)
    range_start, range_end = split_product_range(values["product_range"])
    group_name = optional_text(values["group_name"])
    record = DiscountRangeRecord(
        discount_group=require_identifier(values["discount_group"], "discount_group"),
        price_group=require_identifier(values["price_group"], "price_group"),
        percent_tiers=(
            parse_implied_decimal(values["percent_1"], DISCOUNT_LAYOUT.spec("percent_1")),
            parse_implied_decimal(values["percent_2"], DISCOUNT_LAYOUT.spec("percent_2")),
        ),
        group_name=validate_text(group_name, "group_name") if group_name else None,
        range_start=range_start,
        range_end=range_end,
        partition_hint=line.partition,
    )
    return ExtractionResult(record=record)
