"""Feed import orchestration.

This module runs one catalog or discount feed through line processing
and applies the extracted records to a caller-owned model builder.
Records are applied strictly in file order, so the last line for a key
wins even when line processing runs on a thread pool.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
import hashlib
from typing import Any, Iterable, Iterator

from core.constants import HASH_ALGORITHM, MAX_LINE_DIAGNOSTICS
from core.errors import FeedReadError
from core.import_settings import ImportSettings
from core.logging_config import get_logger
from core.record_types import (
    ClassifiedLine,
    DiscountRangeRecord,
    PartyRecord,
    PriceRecord,
    ProductRecord,
    TranslationRecord,
)
from core.types import FeedSource, ImportReport, LineDiagnostic
from ingest.line_processing import LineOutcome, process_line
from model.builder import ModelBuilder
from model.entities import (
    Buyer,
    DiscountGroup,
    Price,
    Product,
    ProductTranslation,
    Seller,
    SellerProduct,
)
from model.keys import (
    BuyerKey,
    DiscountGroupKey,
    SellerProductKey,
    TranslationKey,
    build_public_id,
)

_LOGGER = get_logger(__name__)

_CHUNK_LINES_PER_WORKER = 256
_SKIP_COUNTERS = {
    "encoding": "encoding_failures",
    "classification": "classification_failures",
    "extraction": "extraction_failures",
    "filtered": "filtered_lines",
    "unknown_group": "unknown_group_lines",
}


@dataclass
class _ImportTally:
    """Mutable counters of one import run."""

    digest: Any = field(default_factory=lambda: hashlib.new(HASH_ALGORITHM))
    lines_read: int = 0
    blank_lines: int = 0
    records_accepted: int = 0
    encoding_failures: int = 0
    classification_failures: int = 0
    extraction_failures: int = 0
    filtered_lines: int = 0
    unknown_group_lines: int = 0
    diagnostics: list[LineDiagnostic] = field(default_factory=list)
    seen_messages: set[tuple[str, str | None, str]] = field(default_factory=set)

    def consume(self, raw_line: bytes) -> None:
        self.lines_read += 1
        self.digest.update(raw_line)

    def skip(self, diagnostic: LineDiagnostic) -> None:
        counter_name = _SKIP_COUNTERS[diagnostic.category]
        setattr(self, counter_name, getattr(self, counter_name) + 1)
        _LOGGER.debug(
            "line_skipped",
            line_number=diagnostic.line_number,
            category=diagnostic.category,
            field_name=diagnostic.field_name,
            reason=diagnostic.message,
        )
        self.note(diagnostic)

    def note(self, diagnostic: LineDiagnostic) -> None:
        """Keep a diagnostic unless it repeats one already kept or the cap is hit."""
        signature = (diagnostic.category, diagnostic.field_name, diagnostic.message)
        if signature in self.seen_messages or len(self.diagnostics) >= MAX_LINE_DIAGNOSTICS:
            return
        self.seen_messages.add(signature)
        self.diagnostics.append(diagnostic)


class _FeedApplier(ABC):
    """Applies extracted records of one feed with its header context."""

    def __init__(self, builder: ModelBuilder, settings: ImportSettings, feed: FeedSource) -> None:
        self._builder = builder
        self._settings = settings
        self._feed = feed
        self.seller_id: str | None = None

    @property
    def buyer_id(self) -> str | None:
        return None

    @abstractmethod
    def apply(
        self,
        line: ClassifiedLine,
        record: object,
        tally: _ImportTally,
    ) -> LineDiagnostic | None:
        """Apply one record; return a diagnostic when the line is skipped."""

    def finish(self) -> None:
        """Publish state staged for the completed feed."""

    def _missing_party(self, line: ClassifiedLine, field_name: str) -> LineDiagnostic:
        role = field_name.split("_", 1)[0]
        return LineDiagnostic(
            line.line_number,
            "extraction",
            f"{field_name}: no {role} header precedes the line",
            field_name=field_name,
        )


class _CatalogApplier(_FeedApplier):
    """Writes seller products, translations, and prices straight to the builder."""

    def apply(
        self,
        line: ClassifiedLine,
        record: object,
        tally: _ImportTally,
    ) -> LineDiagnostic | None:
        if isinstance(record, PartyRecord):
            self._apply_party(line, record, tally)
            return None
        if self.seller_id is None:
            return self._missing_party(line, "seller_id")
        if isinstance(record, ProductRecord):
            self._apply_product(self.seller_id, record)
            return None
        if isinstance(record, TranslationRecord):
            if record.language not in self._settings.languages:
                return LineDiagnostic(
                    line.line_number,
                    "filtered",
                    f"language '{record.language}' is not configured",
                )
            key = SellerProductKey(seller_id=self.seller_id, product_id=record.product_id)
            self._builder.put(_translation_entity(key, record))
            return None
        if isinstance(record, PriceRecord):
            self._apply_price(self.seller_id, record)
            return None
        return LineDiagnostic(
            line.line_number, "classification", f"{line.family} records do not belong in catalogs"
        )

    def _apply_party(self, line: ClassifiedLine, record: PartyRecord, tally: _ImportTally) -> None:
        if record.role != "seller":
            tally.note(
                LineDiagnostic(line.line_number, "warning", "buyer header ignored in catalog feed")
            )
            return
        self.seller_id = record.party_id
        self._builder.put(
            Seller(seller_id=record.party_id, name=self._settings.seller_name(record.party_id))
        )

    def _apply_product(self, seller_id: str, record: ProductRecord) -> None:
        key = SellerProductKey(seller_id=seller_id, product_id=record.product_id)
        self._builder.put(
            SellerProduct(
                key=key,
                partition=record.partition,
                operation=record.operation,
                effective_date=record.effective_date,
                discount_group=record.discount_group,
                unit=record.unit,
                unit_weight=record.unit_weight,
                unit_volume=record.unit_volume,
                typical_packaging=record.typical_packaging,
                packaging=record.packaging,
                delivery_in_weeks=record.delivery_in_weeks,
                stock_item=record.stock_item,
                ean_code=record.ean_code,
                usage_unit=record.usage_unit,
                usables_in_unit=record.usables_in_unit,
            )
        )
        self._builder.put(Product(product_id=record.product_id, tax_class=record.tax_class))
        if record.translation is not None:
            self._builder.put(_translation_entity(key, record.translation))

    def _apply_price(self, seller_id: str, record: PriceRecord) -> None:
        self._builder.put(
            Price(
                key=SellerProductKey(seller_id=seller_id, product_id=record.product_id),
                partition=record.partition,
                price_group=record.price_group,
                unit_price=record.unit_price,
                effective_date=record.effective_date,
                discount_group=record.discount_group,
                unit=record.unit,
                units_included=record.units_included,
                packaging=record.packaging,
                usage_unit=record.usage_unit,
                usables_in_unit=record.usables_in_unit,
                stock_item=record.stock_item,
                delivery_in_weeks=record.delivery_in_weeks,
            )
        )


class _DiscountApplier(_FeedApplier):
    """Stages buyer discount groups and swaps them in when the feed completes."""

    def __init__(self, builder: ModelBuilder, settings: ImportSettings, feed: FeedSource) -> None:
        super().__init__(builder, settings, feed)
        self._header_buyer_id: str | None = None
        self._staged: dict[BuyerKey, dict[DiscountGroupKey, DiscountGroup]] = {}
        self._known_groups: dict[str, tuple[frozenset[str], frozenset[str]]] = {}

    @property
    def buyer_id(self) -> str | None:
        return self._feed.buyer_id or self._header_buyer_id

    def apply(
        self,
        line: ClassifiedLine,
        record: object,
        tally: _ImportTally,
    ) -> LineDiagnostic | None:
        if isinstance(record, PartyRecord):
            self._apply_party(line, record, tally)
            return None
        if not isinstance(record, DiscountRangeRecord):
            return LineDiagnostic(
                line.line_number,
                "classification",
                f"{line.family} records do not belong in discount feeds",
            )
        if self.seller_id is None:
            return self._missing_party(line, "seller_id")
        buyer_id = self.buyer_id
        if buyer_id is None:
            return self._missing_party(line, "buyer_id")
        if self._settings.require_known_groups:
            unknown_reason = self._unknown_group_reason(self.seller_id, record)
            if unknown_reason is not None:
                return LineDiagnostic(line.line_number, "unknown_group", unknown_reason)
        key = DiscountGroupKey(
            buyer_id=buyer_id, seller_id=self.seller_id, discount_group=record.discount_group
        )
        self._staged.setdefault(key.buyer, {})[key] = DiscountGroup(
            key=key,
            price_group=record.price_group,
            percent_tiers=record.percent_tiers,
            group_name=record.group_name,
            range_start=record.range_start,
            range_end=record.range_end,
            partition_hint=record.partition_hint,
        )
        return None

    def finish(self) -> None:
        buyer_keys = list(self._staged)
        if self.seller_id is not None and self.buyer_id is not None:
            current_key = BuyerKey(buyer_id=self.buyer_id, seller_id=self.seller_id)
            if current_key not in self._staged:
                buyer_keys.append(current_key)
        for buyer_key in buyer_keys:
            self._builder.put_if_absent(
                Seller(
                    seller_id=buyer_key.seller_id,
                    name=self._settings.seller_name(buyer_key.seller_id),
                )
            )
            buyer = Buyer(
                key=buyer_key,
                public_id=build_public_id(buyer_key),
                vat_percent=self._settings.vat_percent,
            )
            groups = self._staged.get(buyer_key, {}).values()
            self._builder.replace_buyer_discounts(buyer, groups)

    def _apply_party(self, line: ClassifiedLine, record: PartyRecord, tally: _ImportTally) -> None:
        if record.role == "seller":
            self.seller_id = record.party_id
            return
        self._header_buyer_id = record.party_id
        tagged_buyer_id = self._feed.buyer_id
        if tagged_buyer_id is not None and tagged_buyer_id != record.party_id:
            tally.note(
                LineDiagnostic(
                    line.line_number,
                    "warning",
                    f"buyer header '{record.party_id}' differs from feed buyer "
                    f"'{tagged_buyer_id}'; using the feed buyer",
                )
            )

    def _unknown_group_reason(self, seller_id: str, record: DiscountRangeRecord) -> str | None:
        if seller_id not in self._known_groups:
            self._known_groups[seller_id] = _collect_catalog_groups(self._builder, seller_id)
        discount_groups, price_groups = self._known_groups[seller_id]
        if record.discount_group not in discount_groups:
            return f"discount group '{record.discount_group}' is not in the seller catalog"
        if record.price_group not in price_groups:
            return f"price group '{record.price_group}' is not in the seller catalog"
        return None


class FeedImportRunner:
    """Imports catalog and discount feeds into a caller-owned model builder."""

    def __init__(
        self,
        builder: ModelBuilder,
        settings: ImportSettings | None = None,
        workers: int = 1,
    ) -> None:
        if workers < 1:
            raise ValueError(f"workers must be at least 1, got {workers}")
        self._builder = builder
        self._settings = settings or ImportSettings()
        self._workers = workers

    def import_catalog(self, feed: FeedSource) -> ImportReport:
        """Import a seller catalog feed.

        Args:
            feed: Catalog feed source.

        Returns:
            Counters and diagnostics of the run.

        Raises:
            ValueError: If the feed is not a catalog feed.
            FeedReadError: If the line source fails mid-feed.
        """
        if feed.kind != "catalog":
            raise ValueError(f"Feed {feed.source_uri} is a {feed.kind} feed, not a catalog feed.")
        return self._run(feed, _CatalogApplier(self._builder, self._settings, feed))

    def import_discounts(self, feed: FeedSource) -> ImportReport:
        """Import a buyer discount feed.

        The buyer's discount groups are replaced only when every line of
        the feed was read.

        Args:
            feed: Discount feed source.

        Returns:
            Counters and diagnostics of the run.

        Raises:
            ValueError: If the feed is not a discount feed.
            FeedReadError: If the line source fails mid-feed.
        """
        if feed.kind != "discount":
            raise ValueError(
                f"Feed {feed.source_uri} is a {feed.kind} feed, not a discount feed."
            )
        return self._run(feed, _DiscountApplier(self._builder, self._settings, feed))

    def _run(self, feed: FeedSource, applier: _FeedApplier) -> ImportReport:
        tally = _ImportTally()
        try:
            for outcome in self._iter_outcomes(feed, tally):
                _apply_outcome(outcome, applier, tally)
        except OSError as error:
            report = _build_report(feed, applier, tally, completed=False)
            _LOGGER.warning(
                "feed_read_failed",
                source_uri=feed.source_uri,
                lines_read=report.lines_read,
                error=str(error),
            )
            raise FeedReadError(
                f"Failed to read feed {feed.source_uri} after {report.lines_read} lines: "
                f"{error}. Check the source file and re-run the import.",
                report,
            ) from error
        applier.finish()
        report = _build_report(feed, applier, tally, completed=True)
        _log_import_completion(report)
        return report

    def _iter_outcomes(self, feed: FeedSource, tally: _ImportTally) -> Iterator[LineOutcome]:
        primary_language = self._settings.primary_language
        feed_partition = feed.partition if feed.kind == "catalog" else None

        def process(numbered_line: tuple[int, bytes]) -> LineOutcome:
            line_number, raw_line = numbered_line
            return process_line(raw_line, line_number, feed.kind, primary_language, feed_partition)

        chunk_size = self._workers * _CHUNK_LINES_PER_WORKER
        if self._workers == 1:
            for chunk in _read_chunks(feed.lines, chunk_size, tally):
                yield from map(process, chunk)
            return
        with ThreadPoolExecutor(max_workers=self._workers) as executor:
            for chunk in _read_chunks(feed.lines, chunk_size, tally):
                yield from executor.map(process, chunk)


def import_feed(
    builder: ModelBuilder,
    feed: FeedSource,
    settings: ImportSettings | None = None,
    workers: int = 1,
) -> ImportReport:
    """Import one feed of either kind into the builder.

    Args:
        builder: Caller-owned model builder.
        feed: Catalog or discount feed source.
        settings: Import settings, defaults when omitted.
        workers: Thread count for per-line processing.

    Returns:
        Counters and diagnostics of the run.

    Raises:
        FeedReadError: If the line source fails mid-feed.
    """
    runner = FeedImportRunner(builder, settings, workers)
    if feed.kind == "discount":
        return runner.import_discounts(feed)
    return runner.import_catalog(feed)


def _read_chunks(
    lines: Iterable[bytes],
    chunk_size: int,
    tally: _ImportTally,
) -> Iterator[list[tuple[int, bytes]]]:
    """Group numbered raw lines; lines read before a source failure are still yielded."""
    chunk: list[tuple[int, bytes]] = []
    read_error: OSError | None = None
    try:
        for raw_line in lines:
            tally.consume(raw_line)
            chunk.append((tally.lines_read, raw_line))
            if len(chunk) >= chunk_size:
                yield chunk
                chunk = []
    except OSError as error:
        read_error = error
    if chunk:
        yield chunk
    if read_error is not None:
        raise read_error


def _apply_outcome(outcome: LineOutcome, applier: _FeedApplier, tally: _ImportTally) -> None:
    if outcome.blank:
        tally.blank_lines += 1
        return
    if outcome.failure is not None:
        tally.skip(outcome.failure)
        return
    if outcome.classified is None or outcome.result is None:
        return
    failure = applier.apply(outcome.classified, outcome.result.record, tally)
    if failure is not None:
        tally.skip(failure)
        return
    tally.records_accepted += 1
    for warning in outcome.result.warnings:
        tally.note(LineDiagnostic(outcome.line_number, "warning", warning))


def _translation_entity(key: SellerProductKey, record: TranslationRecord) -> ProductTranslation:
    return ProductTranslation(
        key=TranslationKey(seller_product=key, language=record.language),
        partition=record.partition,
        name=record.name,
        description=record.description,
        search_tags=record.search_tags,
        search_code=record.search_code,
    )


def _collect_catalog_groups(
    builder: ModelBuilder,
    seller_id: str,
) -> tuple[frozenset[str], frozenset[str]]:
    """Collect discount-group labels and price groups a seller's catalog uses."""
    discount_groups: set[str] = set()
    price_groups: set[str] = set()
    for entity in builder.entities("seller_product"):
        if isinstance(entity, SellerProduct) and entity.key.seller_id == seller_id:
            if entity.discount_group is not None:
                discount_groups.add(entity.discount_group)
    for entity in builder.entities("price"):
        if isinstance(entity, Price) and entity.key.seller_id == seller_id:
            discount_groups.add(entity.discount_group)
            price_groups.add(entity.price_group)
    return frozenset(discount_groups), frozenset(price_groups)


def _build_report(
    feed: FeedSource,
    applier: _FeedApplier,
    tally: _ImportTally,
    completed: bool,
) -> ImportReport:
    return ImportReport(
        source_uri=feed.source_uri,
        kind=feed.kind,
        feed_digest=tally.digest.hexdigest(),
        seller_id=applier.seller_id,
        buyer_id=applier.buyer_id,
        lines_read=tally.lines_read,
        blank_lines=tally.blank_lines,
        records_accepted=tally.records_accepted,
        encoding_failures=tally.encoding_failures,
        classification_failures=tally.classification_failures,
        extraction_failures=tally.extraction_failures,
        filtered_lines=tally.filtered_lines,
        unknown_group_lines=tally.unknown_group_lines,
        diagnostics=tuple(tally.diagnostics),
        completed=completed,
    )


def _log_import_completion(report: ImportReport) -> None:
    """Log feed completion with its counters."""
    _LOGGER.info(
        "feed_import_completed",
        source_uri=report.source_uri,
        kind=report.kind,
        seller_id=report.seller_id,
        buyer_id=report.buyer_id,
        lines_read=report.lines_read,
        records_accepted=report.records_accepted,
        encoding_failures=report.encoding_failures,
        classification_failures=report.classification_failures,
        extraction_failures=report.extraction_failures,
        filtered_lines=report.filtered_lines,
        unknown_group_lines=report.unknown_group_lines,
        feed_digest=report.feed_digest,
    )
