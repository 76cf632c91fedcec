"""Unit tests for feed import orchestration."""

from __future__ import annotations

from decimal import Decimal
from typing import Iterator

import pytest

from core.errors import FeedReadError
from core.import_settings import ImportSettings
from core.types import FeedSource
from ingest.line_source import file_feed_source
from ingest.pipeline import FeedImportRunner, _FeedApplier, import_feed
from model.builder import ModelBuilder
from model.entities import Buyer, DiscountGroup
from model.keys import BuyerKey, DiscountGroupKey, SellerProductKey, TranslationKey
from tests.edi_lines import (
    BUYER_ID,
    SELLER_ID,
    discount_line,
    encode_lines,
    party_line,
    price_line,
    product_line,
    sample_feed,
)

PRODUCT_KEY = SellerProductKey(seller_id=SELLER_ID, product_id="1001")
BUYER_KEY = BuyerKey(buyer_id=BUYER_ID, seller_id=SELLER_ID)


def _catalog(*lines: str, partition=None) -> FeedSource:
    return FeedSource(
        source_uri="memory://catalog",
        kind="catalog",
        lines=encode_lines(*lines),
        partition=partition,
    )


def _discounts(*lines: str, buyer_id=None) -> FeedSource:
    return FeedSource(
        source_uri="memory://discounts",
        kind="discount",
        lines=encode_lines(*lines),
        buyer_id=buyer_id,
    )


def _seed_group(builder: ModelBuilder, discount_group: str) -> None:
    buyer = Buyer(key=BUYER_KEY, public_id="token", vat_percent=Decimal("25.5"))
    group = DiscountGroup(
        key=DiscountGroupKey(BUYER_ID, SELLER_ID, discount_group),
        price_group="01",
        percent_tiers=(Decimal("10.00"), None),
        group_name=None,
        range_start=None,
        range_end=None,
        partition_hint="iv",
    )
    builder.replace_buyer_discounts(buyer, [group])


def test_catalog_import_builds_seller_product_and_price() -> None:
    """Catalog lines should land under the seller product key."""
    builder = ModelBuilder()
    feed = _catalog(party_line("SE", SELLER_ID), product_line(), price_line())

    FeedImportRunner(builder).import_catalog(feed)
    price = builder.get("price", PRODUCT_KEY, "iv")

    assert price.unit_price == Decimal("55.00")


def test_catalog_import_stores_primary_translation() -> None:
    """Primary-language product lines should also store their texts."""
    builder = ModelBuilder()
    feed = _catalog(party_line("SE", SELLER_ID), product_line())

    FeedImportRunner(builder).import_catalog(feed)
    translation = builder.get("translation", TranslationKey(PRODUCT_KEY, "fin"), "iv")

    assert translation.name == "Palloventtiili DN15"


def test_undecodable_text_keeps_seller_product_without_translation() -> None:
    """A line with undecodable texts should keep its seller product but no translation."""
    builder = ModelBuilder()
    feed = _catalog(party_line("SE", SELLER_ID), product_line(description="Messing\ufffdosa"))

    report = FeedImportRunner(builder).import_catalog(feed)

    assert (
        report.extraction_failures,
        builder.get("seller_product", PRODUCT_KEY, "iv") is not None,
        builder.get("translation", TranslationKey(PRODUCT_KEY, "fin"), "iv"),
        [diagnostic.category for diagnostic in report.diagnostics],
    ) == (0, True, None, ["warning"])


def test_blank_unit_price_stays_absent() -> None:
    """A blank price field should be stored as absent, not zero."""
    builder = ModelBuilder()
    feed = _catalog(party_line("SE", SELLER_ID), price_line(unit_price=None))

    FeedImportRunner(builder).import_catalog(feed)

    assert builder.get("price", PRODUCT_KEY, "iv").unit_price is None


def test_zero_unit_price_stays_zero() -> None:
    """A zero price field should be stored as zero."""
    builder = ModelBuilder()
    feed = _catalog(party_line("SE", SELLER_ID), price_line(unit_price=Decimal("0")))

    FeedImportRunner(builder).import_catalog(feed)

    assert builder.get("price", PRODUCT_KEY, "iv").unit_price == Decimal("0")


def test_last_line_for_key_wins() -> None:
    """A later line for the same key should replace the earlier entity."""
    builder = ModelBuilder()
    feed = _catalog(
        party_line("SE", SELLER_ID),
        price_line(unit_price=Decimal("55.00")),
        price_line(unit_price=Decimal("60.00")),
    )

    FeedImportRunner(builder).import_catalog(feed)

    assert builder.get("price", PRODUCT_KEY, "iv").unit_price == Decimal("60.00")


def test_rows_before_seller_header_are_skipped() -> None:
    """Rows without a preceding seller header should fail extraction on seller_id."""
    builder = ModelBuilder()

    report = FeedImportRunner(builder).import_catalog(_catalog(product_line()))

    assert (report.extraction_failures, report.diagnostics[0].field_name) == (1, "seller_id")


def test_unconfigured_languages_are_filtered() -> None:
    """Translations outside the configured languages should be counted as filtered."""
    builder = ModelBuilder()
    settings = ImportSettings(languages=("fin", "swe"))
    feed = _catalog(
        party_line("SE", SELLER_ID),
        product_line(),
        product_line(language="SWE", name="Kulventil DN15"),
        product_line(language="ENG", name="Ball valve DN15"),
    )

    report = FeedImportRunner(builder, settings).import_catalog(feed)
    swedish = builder.get("translation", TranslationKey(PRODUCT_KEY, "swe"), "iv")

    assert (report.filtered_lines, swedish.name) == (1, "Kulventil DN15")


def test_fixture_catalog_counts_every_line() -> None:
    """Each fixture line should land in exactly one counter."""
    builder = ModelBuilder()
    feed = file_feed_source(sample_feed("catalog_iv.txt"), "catalog")

    report = FeedImportRunner(builder).import_catalog(feed)

    assert (
        report.lines_read,
        report.blank_lines,
        report.records_accepted,
        report.encoding_failures,
        report.classification_failures,
        report.extraction_failures,
        report.filtered_lines,
    ) == (14, 1, 8, 1, 1, 1, 2)


def test_fixture_catalog_decodes_windows_code_page_line() -> None:
    """The Windows-1252 fixture line should decode to its Finnish name."""
    builder = ModelBuilder()
    feed = file_feed_source(sample_feed("catalog_iv.txt"), "catalog")

    FeedImportRunner(builder).import_catalog(feed)
    key = TranslationKey(SellerProductKey(SELLER_ID, "1003"), "fin")

    assert builder.get("translation", key, "iv").name == "Sähköliitin"


def test_partition_tag_skips_other_partitions() -> None:
    """A partition-tagged catalog should skip lines of other partitions."""
    builder = ModelBuilder()
    feed = file_feed_source(sample_feed("catalog_iv.txt"), "catalog", partition="iv")

    report = FeedImportRunner(builder).import_catalog(feed)

    assert (report.classification_failures, builder.partitions("price")) == (3, ("iv",))


def test_worker_pool_matches_sequential_import() -> None:
    """Thread-pool processing should produce the same report as one worker."""
    sequential = FeedImportRunner(ModelBuilder()).import_catalog(
        file_feed_source(sample_feed("catalog_iv.txt"), "catalog")
    )
    pooled = FeedImportRunner(ModelBuilder(), workers=4).import_catalog(
        file_feed_source(sample_feed("catalog_iv.txt"), "catalog")
    )

    assert pooled == sequential


def test_repeated_failures_are_deduplicated() -> None:
    """Identical failures on many lines should keep one diagnostic entry."""
    builder = ModelBuilder()
    feed = _catalog(*(product_line() for _ in range(5)))

    report = FeedImportRunner(builder).import_catalog(feed)

    assert (report.extraction_failures, len(report.diagnostics)) == (5, 1)


def test_source_failure_raises_with_partial_report() -> None:
    """A failing line source should raise with counters of the lines read."""
    builder = ModelBuilder()

    def failing_lines() -> Iterator[bytes]:
        yield from encode_lines(party_line("SE", SELLER_ID), price_line())
        raise OSError("connection reset")

    feed = FeedSource(source_uri="memory://broken", kind="catalog", lines=failing_lines())

    with pytest.raises(FeedReadError) as error_info:
        FeedImportRunner(builder).import_catalog(feed)

    report = error_info.value.report
    assert (report.lines_read, report.records_accepted, report.completed) == (2, 2, False)


def test_source_failure_keeps_rows_applied_before_it() -> None:
    """Catalog rows read before a source failure should stay in the builder."""
    builder = ModelBuilder()

    def failing_lines() -> Iterator[bytes]:
        yield from encode_lines(party_line("SE", SELLER_ID), price_line())
        raise OSError("connection reset")

    feed = FeedSource(source_uri="memory://broken", kind="catalog", lines=failing_lines())

    with pytest.raises(FeedReadError):
        FeedImportRunner(builder).import_catalog(feed)

    assert builder.get("price", PRODUCT_KEY, "iv") is not None


def test_discount_import_stages_groups_for_header_buyer() -> None:
    """Discount lines should become groups of the header buyer."""
    builder = ModelBuilder()
    feed = file_feed_source(sample_feed("discounts_b100.txt"), "discount")

    report = FeedImportRunner(builder).import_discounts(feed)

    assert (report.buyer_id, len(builder.buyer_discounts(BUYER_KEY))) == (BUYER_ID, 4)


def test_discount_import_replaces_previous_groups() -> None:
    """A new discount feed should replace the buyer's whole group set."""
    builder = ModelBuilder()
    _seed_group(builder, "I8631B")
    feed = _discounts(
        party_line("BY", BUYER_ID),
        party_line("SE", SELLER_ID),
        discount_line(discount_group="I8632A"),
    )

    FeedImportRunner(builder).import_discounts(feed)
    labels = [group.key.discount_group for group in builder.buyer_discounts(BUYER_KEY)]

    assert labels == ["I8632A"]


def test_discount_import_leaves_other_buyers_untouched() -> None:
    """Replacing one buyer's groups should not touch another buyer's."""
    builder = ModelBuilder()
    _seed_group(builder, "I8631B")
    feed = _discounts(
        party_line("BY", "B200"),
        party_line("SE", SELLER_ID),
        discount_line(discount_group="I8632A"),
    )

    FeedImportRunner(builder).import_discounts(feed)

    assert len(builder.buyer_discounts(BUYER_KEY)) == 1


def test_empty_discount_feed_clears_buyer_groups() -> None:
    """A completed feed without group lines should leave the buyer with none."""
    builder = ModelBuilder()
    _seed_group(builder, "I8631B")
    feed = _discounts(party_line("BY", BUYER_ID), party_line("SE", SELLER_ID))

    FeedImportRunner(builder).import_discounts(feed)

    assert builder.buyer_discounts(BUYER_KEY) == ()


def test_failed_discount_feed_keeps_previous_groups() -> None:
    """A discount feed whose source fails should not replace any groups."""
    builder = ModelBuilder()
    _seed_group(builder, "I8631B")

    def failing_lines() -> Iterator[bytes]:
        yield from encode_lines(
            party_line("BY", BUYER_ID),
            party_line("SE", SELLER_ID),
            discount_line(discount_group="I8632A"),
        )
        raise OSError("connection reset")

    feed = FeedSource(source_uri="memory://broken", kind="discount", lines=failing_lines())

    with pytest.raises(FeedReadError):
        FeedImportRunner(builder).import_discounts(feed)

    labels = [group.key.discount_group for group in builder.buyer_discounts(BUYER_KEY)]
    assert labels == ["I8631B"]


def test_tagged_buyer_overrides_header_buyer() -> None:
    """The feed's buyer tag should win over the header, with a warning."""
    builder = ModelBuilder()
    feed = _discounts(
        party_line("BY", BUYER_ID),
        party_line("SE", SELLER_ID),
        discount_line(),
        buyer_id="B200",
    )

    report = FeedImportRunner(builder).import_discounts(feed)

    assert (report.buyer_id, report.diagnostics[0].category) == ("B200", "warning")


def test_discount_lines_without_buyer_are_skipped() -> None:
    """Discount lines need a buyer from the header or the feed tag."""
    builder = ModelBuilder()
    feed = _discounts(party_line("SE", SELLER_ID), discount_line())

    report = FeedImportRunner(builder).import_discounts(feed)

    assert (report.extraction_failures, report.diagnostics[0].field_name) == (1, "buyer_id")


def test_known_group_check_rejects_unknown_groups() -> None:
    """With the check enabled, groups absent from the catalog should be rejected."""
    builder = ModelBuilder()
    settings = ImportSettings(require_known_groups=True)
    runner = FeedImportRunner(builder, settings)
    runner.import_catalog(file_feed_source(sample_feed("catalog_iv.txt"), "catalog"))

    report = runner.import_discounts(
        file_feed_source(sample_feed("discounts_b100.txt"), "discount")
    )

    assert (report.unknown_group_lines, len(builder.buyer_discounts(BUYER_KEY))) == (1, 3)


def test_import_catalog_rejects_discount_feed() -> None:
    """Feed kinds should not be mixed up."""
    runner = FeedImportRunner(ModelBuilder())

    with pytest.raises(ValueError):
        runner.import_catalog(_discounts(discount_line()))


def test_runner_rejects_zero_workers() -> None:
    """Worker count below one should be rejected."""
    with pytest.raises(ValueError):
        FeedImportRunner(ModelBuilder(), workers=0)


def test_import_feed_dispatches_on_kind() -> None:
    """import_feed should route discount feeds to the discount import."""
    builder = ModelBuilder()
    feed = _discounts(party_line("BY", BUYER_ID), party_line("SE", SELLER_ID), discount_line())

    report = import_feed(builder, feed)

    assert (report.kind, report.records_accepted) == ("discount", 3)


def test_feed_applier_base_cannot_be_instantiated() -> None:
    """The applier base should require subclasses to implement apply."""
    feed = _catalog(party_line("SE", SELLER_ID))

    with pytest.raises(TypeError):
        _FeedApplier(ModelBuilder(), ImportSettings(), feed)
