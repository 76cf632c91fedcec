"""Python SDK for feed imports and price quotes.

This module wires the import pipeline, the emission gateway, the
configured sinks, and the import ledger into one client.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Sequence

from core.config import PricebookConfig
from core.errors import FeedReadError
from core.import_settings import ImportSettings, load_import_settings
from core.logging_config import get_logger
from core.types import FeedKind, ImportReport, Partition
from ingest.line_source import feed_file_digest, file_feed_source
from ingest.pipeline import FeedImportRunner
from model.builder import ModelBuilder
from model.query import PriceQuote, build_search_entries, quote_prices
from store.emission import EmissionReport, EntitySink, emit_model
from store.import_ledger import ImportLedger
from store.json_sink import JsonDocumentSink
from store.sql_sink import SqlEntitySink

_LOGGER = get_logger(__name__)


@dataclass(frozen=True)
class FeedImportOutcome:
    """Result of importing one feed file.

    Attributes:
        source_uri: Feed file path.
        report: Import report, None when the feed was skipped.
        already_imported: The ledger already held the feed's digest.
    """

    source_uri: str
    report: ImportReport | None
    already_imported: bool = False


@dataclass(frozen=True)
class ImportBatchResult:
    """Outcomes of one import command and the emission that followed it."""

    outcomes: tuple[FeedImportOutcome, ...]
    emission: EmissionReport | None


class PricebookClient:
    """Primary SDK entry point."""

    def __init__(
        self,
        config: PricebookConfig | None = None,
        settings: ImportSettings | None = None,
    ) -> None:
        """Create SDK client.

        Args:
            config: Optional runtime configuration.
            settings: Optional import settings; loaded from the config when omitted.
        """
        self._config = config or PricebookConfig.from_env()
        self._settings = settings or load_import_settings(self._config.settings_path)
        self._ledger = ImportLedger(self._config.ledger_path)

    @property
    def settings(self) -> ImportSettings:
        return self._settings

    @property
    def document_sink(self) -> JsonDocumentSink:
        return JsonDocumentSink(self._config.documents_root)

    def load_model(self) -> ModelBuilder:
        """Seed a fresh builder with the entities persisted in the document store."""
        builder = ModelBuilder()
        builder.load(self.document_sink.load_snapshot())
        return builder

    def import_catalogs(
        self,
        feed_paths: Sequence[Path | str],
        partition: Partition | None = None,
        force: bool = False,
    ) -> ImportBatchResult:
        """Import seller catalog files and emit the merged model.

        Args:
            feed_paths: Catalog feed files in import order.
            partition: Optional partition tag applied to every file.
            force: Re-import files the ledger already holds.

        Returns:
            Per-file outcomes and the emission report.

        Raises:
            FeedReadError: If a feed file cannot be read; entities imported
                before the failure are still emitted.
        """
        return self._import_batch(feed_paths, "catalog", partition, None, force)

    def import_discounts(
        self,
        feed_path: Path | str,
        buyer_id: str | None = None,
        force: bool = False,
    ) -> ImportBatchResult:
        """Import one buyer discount file and emit the merged model.

        Args:
            feed_path: Discount feed file.
            buyer_id: Optional buyer tag overriding the feed's buyer header.
            force: Re-import a file the ledger already holds.

        Returns:
            Outcome of the file and the emission report.

        Raises:
            FeedReadError: If the feed file cannot be read.
        """
        return self._import_batch([feed_path], "discount", None, buyer_id, force)

    def quote(self, buyer_id: str, seller_id: str, partition: Partition) -> list[PriceQuote]:
        """Join a buyer's persisted discount terms onto one seller partition."""
        snapshot = self.load_model().snapshot()
        return list(quote_prices(snapshot, buyer_id, seller_id, partition))

    def _import_batch(
        self,
        feed_paths: Sequence[Path | str],
        kind: FeedKind,
        partition: Partition | None,
        buyer_id: str | None,
        force: bool,
    ) -> ImportBatchResult:
        builder = self.load_model()
        runner = FeedImportRunner(builder, self._settings, self._config.workers)
        scope = partition or buyer_id
        outcomes: list[FeedImportOutcome] = []
        for feed_path in feed_paths:
            source_uri = str(Path(feed_path).expanduser())
            if not force and self._ledger.contains(_digest_of(feed_path, kind), kind, scope):
                _LOGGER.info("feed_already_imported", source_uri=source_uri, kind=kind)
                outcomes.append(
                    FeedImportOutcome(source_uri=source_uri, report=None, already_imported=True)
                )
                continue
            feed = file_feed_source(feed_path, kind, partition=partition, buyer_id=buyer_id)
            try:
                if kind == "discount":
                    report = runner.import_discounts(feed)
                else:
                    report = runner.import_catalog(feed)
            except FeedReadError:
                if kind == "catalog":
                    self._emit(builder)
                raise
            outcomes.append(FeedImportOutcome(source_uri=source_uri, report=report))
        reports = [outcome.report for outcome in outcomes if outcome.report is not None]
        if not reports:
            return ImportBatchResult(outcomes=tuple(outcomes), emission=None)
        emission = self._emit(builder)
        if all(sink.committed for sink in emission.sinks):
            for report in reports:
                self._ledger.record(report, scope)
        return ImportBatchResult(outcomes=tuple(outcomes), emission=emission)

    def _emit(self, builder: ModelBuilder) -> EmissionReport:
        """Rebuild the search index from the translations, then emit the whole model."""
        entry_count = builder.replace_kind(
            "search", build_search_entries(builder.snapshot(), self._settings.seller_names)
        )
        _LOGGER.info("search_index_rebuilt", entry_count=entry_count)
        return emit_model(builder.snapshot(), self._build_sinks())

    def _build_sinks(self) -> list[EntitySink]:
        sinks: list[EntitySink] = []
        if self._settings.sinks.json:
            sinks.append(self.document_sink)
        if self._settings.sinks.sql:
            database_url = self._settings.database_url or f"sqlite:///{self._config.database_path}"
            if database_url.startswith("sqlite:///"):
                self._config.data_root.mkdir(parents=True, exist_ok=True)
            sinks.append(SqlEntitySink(database_url))
        return sinks


def _digest_of(feed_path: Path | str, kind: FeedKind) -> str:
    """Digest a feed file, reporting an unreadable file as a feed read failure."""
    try:
        return feed_file_digest(feed_path)
    except OSError as error:
        raise FeedReadError(
            f"Failed to read feed {feed_path}: {error}. Check the file path.",
            ImportReport.empty(str(feed_path), kind),
        ) from error
