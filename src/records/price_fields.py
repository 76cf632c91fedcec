"""Field extraction for price lines."""

from __future__ import annotations

from core.errors import FieldExtractionError
from core.record_types import ClassifiedLine, ExtractionResult, PriceRecord
from records.field_layout import slice_fields
from records.field_values import (
    optional_text,
    parse_date,
    parse_implied_decimal,
    parse_optional_int,
    parse_packaging_tiers,
    parse_stock_flag,
    require_identifier,
)
from records.layouts import PRICE_LAYOUT


def extract_price(line: ClassifiedLine) -> ExtractionResult:
    """Extract one listed price row.

    A blank unit price stays absent; it is never read as zero.

    Raises:
        FieldExtractionError: If a required field is empty or malformed.
    """
    if line.partition is None:
        raise FieldExtractionError("category", "line carries no category partition")
    values = slice_fields(line.text, PRICE_LAYOUT)
    record = PriceRecord(
        partition=line.partition,
        product_id=require_identifier(values["product_id"], "product_id"),
        price_group=require_identifier(values["price_group"], "price_group"),
        unit_price=parse_implied_decimal(values["unit_price"], PRICE_LAYOUT.spec("unit_price")),
        effective_date=parse_date(values["effective_date"], "effective_date"),
        discount_group=require_identifier(values["discount_group"], "discount_group"),
        unit=require_identifier(values["unit"], "unit"),
        units_included=parse_optional_int(values["units_included"], "units_included"),
        packaging=parse_packaging_tiers(values, PRICE_LAYOUT),
        usage_unit=optional_text(values["usage_unit"]),
        usables_in_unit=parse_implied_decimal(
            values["usables_in_unit"], PRICE_LAYOUT.spec("usables_in_unit")
        ),
        stock_item=parse_stock_flag(values["stock_flag"]),
        delivery_in_weeks=parse_optional_int(values["delivery_in_weeks"], "delivery_in_weeks"),
    )
    return ExtractionResult(record=record)
