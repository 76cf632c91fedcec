"""Typed entities accumulated by the model builder.

Each entity names its kind and its structured key. Partitioned kinds
also carry the partition they were read from.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import ClassVar, Union

from core.record_types import PackagingTier
from core.types import EntityKind, Operation, Partition
from model.keys import BuyerKey, DiscountGroupKey, SellerProductKey, TranslationKey


@dataclass(frozen=True)
class Seller:
    """Supplier organization that publishes catalog feeds."""

    kind: ClassVar[EntityKind] = "seller"

    seller_id: str
    name: str

    @property
    def key(self) -> str:
        return self.seller_id


@dataclass(frozen=True)
class Product:
    """Vendor-neutral product shared by every seller listing it."""

    kind: ClassVar[EntityKind] = "product"

    product_id: str
    tax_class: str | None

    @property
    def key(self) -> str:
        return self.product_id


@dataclass(frozen=True)
class SellerProduct:
    """Seller-specific product attributes from a primary-language line."""

    kind: ClassVar[EntityKind] = "seller_product"

    key: SellerProductKey
    partition: Partition
    operation: Operation
    effective_date: date
    discount_group: str | None
    unit: str
    unit_weight: Decimal | None
    unit_volume: Decimal | None
    typical_packaging: int | None
    packaging: tuple[PackagingTier, ...]
    delivery_in_weeks: int | None
    stock_item: bool
    ean_code: str | None
    usage_unit: str | None
    usables_in_unit: Decimal | None


@dataclass(frozen=True)
class ProductTranslation:
    """Localized product texts in one language."""

    kind: ClassVar[EntityKind] = "translation"

    key: TranslationKey
    partition: Partition
    name: str
    description: str
    search_tags: str | None
    search_code: str | None


@dataclass(frozen=True)
class Price:
    """Listed price of a seller product; it shares the seller product key."""

    kind: ClassVar[EntityKind] = "price"

    key: SellerProductKey
    partition: Partition
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
class SearchEntry:
    """Full-text search body of one translated seller product.

    Derived from the translation sharing its key; rebuilt rather than imported.
    """

    kind: ClassVar[EntityKind] = "search"

    key: TranslationKey
    partition: Partition
    body: str


@dataclass(frozen=True)
class Buyer:
    """Buyer account at one seller."""

    kind: ClassVar[EntityKind] = "buyer"

    key: BuyerKey
    public_id: str
    vat_percent: Decimal


@dataclass(frozen=True)
class DiscountGroup:
    """Buyer discount terms for one seller discount-group label.

    Attributes:
        key: Buyer, seller, and discount-group label.
        price_group: Price group the terms apply to.
        percent_tiers: Primary and secondary discount percent.
        group_name: Seller's descriptive group name.
        range_start: Advisory first product number of the group.
        range_end: Advisory last product number of the group.
        partition_hint: Partition suggested by the label's leading letter.
    """

    kind: ClassVar[EntityKind] = "discount_group"

    key: DiscountGroupKey
    price_group: str
    percent_tiers: tuple[Decimal | None, Decimal | None]
    group_name: str | None
    range_start: str | None
    range_end: str | None
    partition_hint: Partition | None


Entity = Union[
    Seller,
    Product,
    SellerProduct,
    ProductTranslation,
    Price,
    SearchEntry,
    Buyer,
    DiscountGroup,
]


def entity_partition(entity: Entity) -> Partition | None:
    """Return the storage partition of an entity, None for shared kinds."""
    if isinstance(entity, (SellerProduct, ProductTranslation, Price, SearchEntry)):
        return entity.partition
    return None
