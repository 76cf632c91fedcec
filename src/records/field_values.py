"""Typed interpretation of trimmed fixed-width field strings.

Numeric fields are zero-padded digit strings with an implied decimal
point. A blank numeric field is absent (``None``) and stays distinct
from a zero value everywhere downstream.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import cast
import unicodedata

from core.constants import CATEGORY_MARKERS, LANGUAGE_SLOTS, NOT_STOCK_ITEM_FLAG, OPERATION_CODES
from core.errors import FieldExtractionError
from core.record_types import PackagingTier
from core.types import Language, Operation, Partition
from records.field_layout import FieldSpec, RecordLayout
from records.layouts import PACKAGING_FIELD_PAIRS

_REPLACEMENT_CHARACTER = "\ufffd"


def parse_implied_decimal(raw_value: str, spec: FieldSpec) -> Decimal | None:
    """Decode an implied-decimal numeric field.

    Args:
        raw_value: Trimmed field string.
        spec: Field spec providing name and scale.

    Returns:
        Exact decimal value, or None when the field is blank.

    Raises:
        FieldExtractionError: If the field holds non-digit characters.
    """
    if not raw_value:
        return None
    if not raw_value.isascii() or not raw_value.isdigit():
        raise FieldExtractionError(
            spec.name, f"expected zero-padded digits, found '{raw_value}'"
        )
    return Decimal(int(raw_value)).scaleb(-spec.scale)


def format_implied_decimal(value: Decimal | None, spec: FieldSpec) -> str:
    """Re-serialize a decimal into its fixed-width field form.

    Args:
        value: Decimal to encode, or None for a blank field.
        spec: Field spec providing width and scale.

    Returns:
        Zero-padded digit string, or spaces for an absent value.

    Raises:
        ValueError: If the value is negative, too precise, or too wide.
    """
    if value is None:
        return " " * spec.width
    scaled = value.scaleb(spec.scale)
    if scaled != scaled.to_integral_value() or scaled < 0:
        raise ValueError(f"{value} cannot be encoded into field '{spec.name}'")
    digits = str(int(scaled)).zfill(spec.width)
    if len(digits) > spec.width:
        raise ValueError(f"{value} overflows {spec.width} digits of field '{spec.name}'")
    return digits


def parse_optional_int(raw_value: str, field_name: str) -> int | None:
    """Decode an optional integer field; blank reads as None."""
    if not raw_value:
        return None
    if not raw_value.isascii() or not raw_value.isdigit():
        raise FieldExtractionError(field_name, f"expected digits, found '{raw_value}'")
    return int(raw_value)


def require_identifier(raw_value: str, field_name: str) -> str:
    """Validate a required identifier field.

    Identifiers are concatenated into composite keys, so they must be
    non-empty and free of whitespace.

    Raises:
        FieldExtractionError: If the identifier is empty or contains whitespace.
    """
    if not raw_value:
        raise FieldExtractionError(field_name, "identifier is empty")
    if any(character.isspace() for character in raw_value):
        raise FieldExtractionError(field_name, f"identifier '{raw_value}' contains whitespace")
    return raw_value


def require_text(raw_value: str, field_name: str) -> str:
    """Validate a required free-text field."""
    if not raw_value:
        raise FieldExtractionError(field_name, "value is empty")
    return validate_text(raw_value, field_name)


def validate_text(raw_value: str, field_name: str) -> str:
    """Reject text carrying control or replacement characters.

    Raises:
        FieldExtractionError: If the text is not clean printable text.
    """
    for character in raw_value:
        if character == _REPLACEMENT_CHARACTER or unicodedata.category(character) == "Cc":
            raise FieldExtractionError(
                field_name, f"text contains undecodable character {character!r}"
            )
    return raw_value


def optional_text(raw_value: str) -> str | None:
    """Return the trimmed value, or None when blank."""
    return raw_value or None


def parse_date(raw_value: str, field_name: str) -> date:
    """Decode a ``yyyymmdd`` date field.

    Raises:
        FieldExtractionError: If the value is not a valid calendar date.
    """
    if len(raw_value) != 8 or not raw_value.isascii() or not raw_value.isdigit():
        raise FieldExtractionError(field_name, f"expected yyyymmdd, found '{raw_value}'")
    try:
        return date(int(raw_value[:4]), int(raw_value[4:6]), int(raw_value[6:]))
    except ValueError as error:
        raise FieldExtractionError(field_name, f"invalid date '{raw_value}': {error}") from error


def parse_partition(raw_value: str, field_name: str = "category") -> Partition:
    """Map a one-letter category marker to its partition code."""
    partition = CATEGORY_MARKERS.get(raw_value.upper())
    if partition is None:
        supported = ", ".join(CATEGORY_MARKERS)
        raise FieldExtractionError(
            field_name, f"unknown category '{raw_value}', expected one of: {supported}"
        )
    return cast(Partition, partition)


def parse_operation(raw_value: str, field_name: str = "operation") -> Operation:
    """Map a numeric operation code to its name."""
    operation = OPERATION_CODES.get(raw_value)
    if operation is None:
        raise FieldExtractionError(
            field_name, f"operation must be a number between 1 and 3, found '{raw_value}'"
        )
    return cast(Operation, operation)


def parse_language(raw_value: str, field_name: str = "language") -> Language:
    """Map a three-letter language code, case-insensitively."""
    language = raw_value.lower()
    if language not in LANGUAGE_SLOTS:
        supported = ", ".join(LANGUAGE_SLOTS)
        raise FieldExtractionError(
            field_name, f"invalid language '{raw_value}', expected one of: {supported}"
        )
    return cast(Language, language)


def parse_stock_flag(raw_value: str) -> bool:
    """Return False only for the explicit not-stocked flag."""
    return raw_value.upper() != NOT_STOCK_ITEM_FLAG


def split_product_range(raw_value: str) -> tuple[str | None, str | None]:
    """Split an advisory ``start-end`` product range.

    A single product number is both start and end; a blank field is
    an absent range.
    """
    if not raw_value:
        return None, None
    start, separator, end = raw_value.partition("-")
    if not separator:
        return raw_value, raw_value
    return start.strip() or None, end.strip() or None


def parse_packaging_tiers(values: dict[str, str], layout: RecordLayout) -> tuple[PackagingTier, ...]:
    """Decode the three packaging size and discount pairs of a line.

    Args:
        values: Sliced field values.
        layout: Layout the values were sliced by.

    Returns:
        Three packaging tiers in field order.
    """
    return tuple(
        PackagingTier(
            quantity=parse_implied_decimal(values[quantity_name], layout.spec(quantity_name)),
            discount_percent=parse_implied_decimal(
                values[discount_name], layout.spec(discount_name)
            ),
        )
        for quantity_name, discount_name in PACKAGING_FIELD_PAIRS
    )
