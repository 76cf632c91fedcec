"""Field extraction for product-layout lines.

One layout carries both the seller product attributes and the localized
texts. Primary-language lines yield a ``ProductRecord`` holding its own
translation; lines in other languages yield only a ``TranslationRecord``.
"""

from __future__ import annotations

from core.errors import FieldExtractionError
from core.record_types import ClassifiedLine, ExtractionResult, ProductRecord, TranslationRecord
from core.types import Partition
from records.field_layout import slice_fields
from records.field_values import (
    optional_text,
    parse_date,
    parse_implied_decimal,
    parse_language,
    parse_operation,
    parse_optional_int,
    parse_packaging_tiers,
    parse_stock_flag,
    require_identifier,
    require_text,
    validate_text,
)
from records.layouts import PRODUCT_LAYOUT


def extract_product(line: ClassifiedLine) -> ExtractionResult:
    """Extract a primary-language product line.

    Texts that fail validation drop only the translation; the seller
    product attributes are still returned.

    Args:
        line: Line classified as ``product``.

    Returns:
        Product record with its translation, if any, and warnings.

    Raises:
        FieldExtractionError: If a required product field is empty or malformed.
    """
    values = slice_fields(line.text, PRODUCT_LAYOUT)
    partition = _require_partition(line)
    product_id = require_identifier(values["product_id"], "product_id")
    translation: TranslationRecord | None
    try:
        translation, warnings = _build_translation(values, partition)
    except FieldExtractionError as error:
        translation = None
        warnings = (f"translation dropped: {error}",)
    record = ProductRecord(
        partition=partition,
        product_id=product_id,
        operation=parse_operation(values["operation"]),
        effective_date=parse_date(values["effective_date"], "effective_date"),
        discount_group=_optional_identifier(values["discount_group"], "discount_group"),
        unit=require_identifier(values["unit"], "unit"),
        unit_weight=parse_implied_decimal(
            values["unit_weight"], PRODUCT_LAYOUT.spec("unit_weight")
        ),
        unit_volume=parse_implied_decimal(
            values["unit_volume"], PRODUCT_LAYOUT.spec("unit_volume")
        ),
        typical_packaging=parse_optional_int(values["typical_packaging"], "typical_packaging"),
        packaging=parse_packaging_tiers(values, PRODUCT_LAYOUT),
        tax_class=optional_text(values["tax_class"]),
        delivery_in_weeks=parse_optional_int(values["delivery_in_weeks"], "delivery_in_weeks"),
        stock_item=parse_stock_flag(values["stock_flag"]),
        ean_code=optional_text(values["ean_code"]),
        usage_unit=optional_text(values["usage_unit"]),
        usables_in_unit=parse_implied_decimal(
            values["usables_in_unit"], PRODUCT_LAYOUT.spec("usables_in_unit")
        ),
        translation=translation,
    )
    return ExtractionResult(record=record, warnings=warnings)


def extract_translation(line: ClassifiedLine) -> ExtractionResult:
    """Extract the localized texts of a secondary-language product line."""
    values = slice_fields(line.text, PRODUCT_LAYOUT)
    translation, warnings = _build_translation(values, _require_partition(line))
    return ExtractionResult(record=translation, warnings=warnings)


def _build_translation(
    values: dict[str, str],
    partition: Partition,
) -> tuple[TranslationRecord, tuple[str, ...]]:
    warnings: list[str] = []
    description = validate_text(values["description"], "description")
    if not description:
        warnings.append("description: value is empty")
    search_tags = optional_text(values["search_tags"])
    translation = TranslationRecord(
        partition=partition,
        product_id=require_identifier(values["product_id"], "product_id"),
        language=parse_language(values["language"]),
        name=require_text(values["name"], "name"),
        description=description,
        search_tags=validate_text(search_tags, "search_tags") if search_tags else None,
        search_code=optional_text(values["search_code"]),
    )
    return translation, tuple(warnings)


def _require_partition(line: ClassifiedLine) -> Partition:
    if line.partition is None:
        raise FieldExtractionError("category", "line carries no category partition")
    return line.partition


def _optional_identifier(raw_value: str, field_name: str) -> str | None:
    if not raw_value:
        return None
    return require_identifier(raw_value, field_name)
