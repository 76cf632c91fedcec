"""Read-side views over a model snapshot.

Buyer price quotes join catalog and discount entities. Search entries
flatten translated texts into one searchable body per product.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Iterator, Mapping

from core.types import Partition
from model.builder import ModelSnapshot
from model.entities import DiscountGroup, Price, ProductTranslation, SearchEntry, SellerProduct
from model.keys import DiscountGroupKey


@dataclass(frozen=True)
class PriceQuote:
    """One listed price matched to a buyer's discount terms.

    The listed unit price is returned as published. Applying the
    discount percent is left to the caller.

    Attributes:
        seller_id: Seller organization number.
        buyer_id: Buyer number at the seller.
        product_id: Product number.
        partition: Catalog partition.
        discount_group: Shared discount-group label.
        price_group: Shared price group.
        unit: Sales unit code.
        unit_price: Listed unit price, None when the feed left it blank.
        discount_percent: Primary discount percent of the buyer's terms.
        percent_tiers: Both discount percents of the buyer's terms.
    """

    seller_id: str
    buyer_id: str
    product_id: str
    partition: Partition
    discount_group: str
    price_group: str
    unit: str
    unit_price: Decimal | None
    discount_percent: Decimal | None
    percent_tiers: tuple[Decimal | None, Decimal | None]


def quote_prices(
    snapshot: ModelSnapshot,
    buyer_id: str,
    seller_id: str,
    partition: Partition,
) -> Iterator[PriceQuote]:
    """Join a buyer's discount terms onto one seller partition.

    A seller product matches a discount group on equal discount-group
    labels, and its price matches on equal price groups. The advisory
    product range on discount groups plays no part in matching.

    Args:
        snapshot: Accumulated model state.
        buyer_id: Buyer number at the seller.
        seller_id: Seller organization number.
        partition: Catalog partition to quote.

    Yields:
        Quotes in seller product order.
    """
    for entity in snapshot.entities("seller_product", partition):
        if not isinstance(entity, SellerProduct) or entity.key.seller_id != seller_id:
            continue
        if entity.discount_group is None:
            continue
        group = snapshot.get(
            "discount_group",
            DiscountGroupKey(
                buyer_id=buyer_id,
                seller_id=seller_id,
                discount_group=entity.discount_group,
            ),
        )
        price = snapshot.get("price", entity.key, partition)
        if not isinstance(group, DiscountGroup) or not isinstance(price, Price):
            continue
        if price.price_group != group.price_group:
            continue
        yield PriceQuote(
            seller_id=seller_id,
            buyer_id=buyer_id,
            product_id=entity.key.product_id,
            partition=partition,
            discount_group=entity.discount_group,
            price_group=price.price_group,
            unit=price.unit,
            unit_price=price.unit_price,
            discount_percent=group.percent_tiers[0],
            percent_tiers=group.percent_tiers,
        )


def build_search_entries(
    snapshot: ModelSnapshot,
    seller_names: Mapping[str, str],
) -> Iterator[SearchEntry]:
    """Derive one search entry per stored translation.

    The body joins the product name, the seller's display name when the
    seller is configured, the description when present, and the optional
    search tags and search code, separated by ``", "``.

    Args:
        snapshot: Accumulated model state.
        seller_names: Display names of configured sellers.

    Yields:
        Search entries keyed like the translations they come from.
    """
    for entity in snapshot.entities("translation"):
        if not isinstance(entity, ProductTranslation):
            continue
        parts = [entity.name]
        seller_name = seller_names.get(entity.key.seller_product.seller_id)
        if seller_name:
            parts.append(seller_name)
        parts.extend(
            text
            for text in (entity.description, entity.search_tags, entity.search_code)
            if text
        )
        yield SearchEntry(key=entity.key, partition=entity.partition, body=", ".join(parts))
