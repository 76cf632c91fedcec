"""Unit tests for buyer price quotes."""

from __future__ import annotations

from datetime import date
from decimal import Decimal

from model.builder import ModelBuilder
from model.entities import Buyer, DiscountGroup, Price, SellerProduct
from model.keys import BuyerKey, DiscountGroupKey, SellerProductKey
from model.query import quote_prices

SELLER_ID = "0123456789"
PRODUCT_KEY = SellerProductKey(SELLER_ID, "1001")


def _catalog_builder(price_group: str = "01") -> ModelBuilder:
    builder = ModelBuilder()
    builder.put(
        SellerProduct(
            key=PRODUCT_KEY,
            partition="iv",
            operation="add",
            effective_date=date(2024, 1, 15),
            discount_group="I8631B",
            unit="KPL",
            unit_weight=None,
            unit_volume=None,
            typical_packaging=None,
            packaging=(),
            delivery_in_weeks=None,
            stock_item=True,
            ean_code=None,
            usage_unit=None,
            usables_in_unit=None,
        )
    )
    builder.put(
        Price(
            key=PRODUCT_KEY,
            partition="iv",
            price_group=price_group,
            unit_price=Decimal("120.00"),
            effective_date=date(2024, 1, 15),
            discount_group="I8631B",
            unit="KPL",
            units_included=1,
            packaging=(),
            usage_unit=None,
            usables_in_unit=None,
            stock_item=True,
            delivery_in_weeks=None,
        )
    )
    buyer_key = BuyerKey("B100", SELLER_ID)
    builder.replace_buyer_discounts(
        Buyer(key=buyer_key, public_id="token", vat_percent=Decimal("25.5")),
        [
            DiscountGroup(
                key=DiscountGroupKey("B100", SELLER_ID, "I8631B"),
                price_group="01",
                percent_tiers=(Decimal("55.00"), Decimal("0.00")),
                group_name="Venttiilit",
                range_start=None,
                range_end=None,
                partition_hint="iv",
            )
        ],
    )
    return builder


def test_quote_joins_discount_percent_on_group_label() -> None:
    """A product in group I8631B should quote the buyer's 55.00 percent."""
    snapshot = _catalog_builder().snapshot()

    quotes = list(quote_prices(snapshot, "B100", SELLER_ID, "iv"))

    assert [(quote.product_id, quote.unit_price, quote.discount_percent) for quote in quotes] == [
        ("1001", Decimal("120.00"), Decimal("55.00"))
    ]


def test_quote_skips_mismatched_price_group() -> None:
    """Prices of another price group should not take the buyer's terms."""
    snapshot = _catalog_builder(price_group="02").snapshot()

    assert list(quote_prices(snapshot, "B100", SELLER_ID, "iv")) == []


def test_quote_is_empty_for_other_buyer() -> None:
    """Buyers without terms for the group should receive no quotes."""
    snapshot = _catalog_builder().snapshot()

    assert list(quote_prices(snapshot, "B200", SELLER_ID, "iv")) == []


def test_quote_is_empty_for_other_partition() -> None:
    """Quotes should only cover the requested partition."""
    snapshot = _catalog_builder().snapshot()

    assert list(quote_prices(snapshot, "B100", SELLER_ID, "lv")) == []
