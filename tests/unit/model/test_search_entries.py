"""Unit tests for search entries derived from translations."""

from __future__ import annotations

from model.builder import ModelBuilder
from model.entities import ProductTranslation
from model.keys import SellerProductKey, TranslationKey
from model.query import build_search_entries

SELLER_ID = "0123456789"


def _translation(
    product_id: str = "1001",
    language="fin",
    description: str = "Messinkinen",
    search_tags: str | None = None,
    search_code: str | None = None,
) -> ProductTranslation:
    return ProductTranslation(
        key=TranslationKey(SellerProductKey(SELLER_ID, product_id), language),
        partition="iv",
        name="Palloventtiili DN15",
        description=description,
        search_tags=search_tags,
        search_code=search_code,
    )


def _bodies(builder: ModelBuilder, seller_names=None) -> list[str]:
    entries = build_search_entries(builder.snapshot(), seller_names or {})
    return [entry.body for entry in entries]


def test_body_joins_name_and_description() -> None:
    """Unconfigured sellers should get a body of name and description only."""
    builder = ModelBuilder()
    builder.put(_translation())

    assert _bodies(builder) == ["Palloventtiili DN15, Messinkinen"]


def test_body_includes_configured_seller_name() -> None:
    """A configured seller's display name should follow the product name."""
    builder = ModelBuilder()
    builder.put(_translation())

    assert _bodies(builder, {SELLER_ID: "Onninen"}) == [
        "Palloventtiili DN15, Onninen, Messinkinen"
    ]


def test_body_skips_empty_description_and_appends_tags_and_code() -> None:
    """Empty descriptions should be skipped while tags and search code are appended."""
    builder = ModelBuilder()
    builder.put(_translation(description="", search_tags="venttiili", search_code="PV15"))

    assert _bodies(builder) == ["Palloventtiili DN15, venttiili, PV15"]


def test_entries_share_translation_key_and_partition() -> None:
    """Each entry should be keyed and partitioned like its translation."""
    builder = ModelBuilder()
    builder.put(_translation(language="swe"))

    entry = next(build_search_entries(builder.snapshot(), {}))

    assert (entry.key, entry.partition) == (
        TranslationKey(SellerProductKey(SELLER_ID, "1001"), "swe"),
        "iv",
    )
