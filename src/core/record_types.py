"""Typed records produced by line classification and field extraction.

Record families form a closed set. Each family maps to exactly one
extracted record dataclass, and the extractor dispatch table is checked
against ``SUPPORTED_RECORD_FAMILIES`` when it is built.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Literal, Union

from core.types import Language, Operation, Partition, PartyRole

RecordFamily = Literal[
    "party",
    "product",
    "translation",
    "price",
    "discount_range",
    "unknown",
]
SUPPORTED_RECORD_FAMILIES: tuple[RecordFamily, ...] = (
    "party",
    "product",
    "translation",
    "price",
    "discount_range",
    "unknown",
)


@dataclass(frozen=True)
class ClassifiedLine:
    """Normalized line tagged with its record family.

    Attributes:
        line_number: One-based line number in the feed.
        family: Record family decided by the classifier.
        text: Normalized text, trimmed to the layout when overlong.
        partition: Partition read from the category segment, if any.
        reason: Why the line classified as unknown.
    """

    line_number: int
    family: RecordFamily
    text: str
    partition: Partition | None = None
    reason: str | None = None


@dataclass(frozen=True)
class PackagingTier:
    """Alternative package size with its optional discount."""

    quantity: Decimal | None
    discount_percent: Decimal | None


@dataclass(frozen=True)
class PartyRecord:
    """Feed header naming the seller or buyer party."""

    role: PartyRole
    party_id: str
    party_code: str | None


@dataclass(frozen=True)
class TranslationRecord:
    """Localized product texts from one product-layout line."""

    partition: Partition
    product_id: str
    language: Language
    name: str
    description: str
    search_tags: str | None
    search_code: str | None


@dataclass(frozen=True)
class ProductRecord:
    """Seller product attributes from a primary-language product line.

    Attributes:
        partition: Category partition of the line.
        product_id: Vendor-neutral product number.
        operation: Change operation declared by the seller.
        effective_date: Date the row takes effect.
        discount_group: Seller discount-group label.
        unit: Sales unit code.
        unit_weight: Unit weight in kilograms.
        unit_volume: Unit volume in litres.
        typical_packaging: Most common package size.
        packaging: Three alternative packaging tiers.
        tax_class: Tax class code, kept on the shared product.
        delivery_in_weeks: Wholesaler procurement time.
        stock_item: Whether the wholesaler stocks the item.
        ean_code: EAN barcode.
        usage_unit: Usage unit code.
        usables_in_unit: Usage units per sales unit.
        translation: Texts carried by the same line, None when they failed validation.
    """

    partition: Partition
    product_id: str
    operation: Operation
    effective_date: date
    discount_group: str | None
    unit: str
    unit_weight: Decimal | None
    unit_volume: Decimal | None
    typical_packaging: int | None
    packaging: tuple[PackagingTier, ...]
    tax_class: str | None
    delivery_in_weeks: int | None
    stock_item: bool
    ean_code: str | None
    usage_unit: str | None
    usables_in_unit: Decimal | None
    translation: TranslationRecord | None


@dataclass(frozen=True)
class PriceRecord:
    """Listed price of one product in one price group."""

    partition: Partition
    product_id: str
    price_group: str
    unit_price: Decimal | None
    effective_date: date
    discount_group: str
    unit: str
    units_included: int | None
    packaging: tuple[PackagingTier, ...]
    usage_unit: str | None
    usables_in_unit: Decimal | None
    stock_item: bool
    delivery_in_weeks: int | None


@dataclass(frozen=True)
class DiscountRangeRecord:
    """Buyer discount terms for one seller discount group.

    The product range is advisory metadata copied from the line.
    Matching against catalog data uses the group label only.
    """

    discount_group: str
    price_group: str
    percent_tiers: tuple[Decimal | None, Decimal | None]
    group_name: str | None
    range_start: str | None
    range_end: str | None
    partition_hint: Partition | None


ExtractedRecord = Union[
    PartyRecord,
    ProductRecord,
    TranslationRecord,
    PriceRecord,
    DiscountRangeRecord,
]


@dataclass(frozen=True)
class ExtractionResult:
    """Extracted record with non-fatal warnings raised along the way."""

    record: ExtractedRecord
    warnings: tuple[str, ...] = ()
