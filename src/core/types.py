"""Shared typed models.

This module defines the closed vocabularies and immutable feed/report
models used by ingest, model, and store layers to keep interfaces explicit.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Literal

Partition = Literal["lv", "iv", "sa", "te", "ky"]
SUPPORTED_PARTITIONS: tuple[Partition, ...] = ("lv", "iv", "sa", "te", "ky")

Language = Literal["fin", "swe", "eng", "nor"]
SUPPORTED_LANGUAGES: tuple[Language, ...] = ("fin", "swe", "eng", "nor")

Operation = Literal["add", "mod", "del"]
PartyRole = Literal["seller", "buyer"]
FeedKind = Literal["catalog", "discount"]

EntityKind = Literal[
    "seller",
    "product",
    "seller_product",
    "translation",
    "price",
    "search",
    "buyer",
    "discount_group",
]
ENTITY_EMISSION_ORDER: tuple[EntityKind, ...] = (
    "seller",
    "product",
    "seller_product",
    "translation",
    "price",
    "search",
    "buyer",
    "discount_group",
)
PARTITIONED_ENTITY_KINDS: tuple[EntityKind, ...] = (
    "seller_product",
    "translation",
    "price",
    "search",
)

DiagnosticCategory = Literal[
    "encoding",
    "classification",
    "extraction",
    "filtered",
    "unknown_group",
    "warning",
]


@dataclass(frozen=True)
class FeedSource:
    """Collaborator-supplied feed of raw byte lines.

    Attributes:
        source_uri: Origin path or URI, used for diagnostics only.
        kind: Catalog (seller products/prices) or discount (buyer terms).
        lines: Raw byte lines in file order, with or without line endings.
        partition: Optional partition tag for catalog feeds.
        buyer_id: Optional buyer tag for discount feeds.
    """

    source_uri: str
    kind: FeedKind
    lines: Iterable[bytes]
    partition: Partition | None = None
    buyer_id: str | None = None


@dataclass(frozen=True)
class LineDiagnostic:
    """One skipped-line or warning entry kept for diagnostics.

    Attributes:
        line_number: One-based line number in the feed.
        category: Counter the entry belongs to.
        message: Human-readable reason.
        field_name: Offending layout field for extraction failures.
    """

    line_number: int
    category: DiagnosticCategory
    message: str
    field_name: str | None = None


@dataclass(frozen=True)
class ImportReport:
    """Counters and diagnostics of one feed import run.

    Attributes:
        source_uri: Feed origin.
        kind: Feed kind.
        feed_digest: SHA-256 of the raw lines consumed.
        seller_id: Seller party read from the feed header.
        buyer_id: Buyer the discount feed was merged for.
        lines_read: Raw lines consumed from the source.
        blank_lines: Empty lines ignored silently.
        records_accepted: Lines that reached the model builder.
        encoding_failures: Lines undecodable under every encoding.
        classification_failures: Lines of unknown family or foreign partition.
        extraction_failures: Lines with a missing or malformed required field.
        filtered_lines: Lines in a language outside the configured set.
        unknown_group_lines: Discount lines rejected by the known-group check.
        diagnostics: Bounded, de-duplicated diagnostic entries.
        completed: False when the line source failed mid-feed.
    """

    source_uri: str
    kind: FeedKind
    feed_digest: str
    seller_id: str | None
    buyer_id: str | None
    lines_read: int
    blank_lines: int
    records_accepted: int
    encoding_failures: int
    classification_failures: int
    extraction_failures: int
    filtered_lines: int
    unknown_group_lines: int
    diagnostics: tuple[LineDiagnostic, ...]
    completed: bool

    @property
    def skipped_lines(self) -> int:
        """Total lines dropped by any per-line failure."""
        return (
            self.encoding_failures
            + self.classification_failures
            + self.extraction_failures
            + self.filtered_lines
            + self.unknown_group_lines
        )

    @classmethod
    def empty(cls, source_uri: str, kind: FeedKind) -> "ImportReport":
        """Report of a feed whose source failed before any line was read."""
        return cls(
            source_uri=source_uri,
            kind=kind,
            feed_digest="",
            seller_id=None,
            buyer_id=None,
            lines_read=0,
            blank_lines=0,
            records_accepted=0,
            encoding_failures=0,
            classification_failures=0,
            extraction_failures=0,
            filtered_lines=0,
            unknown_group_lines=0,
            diagnostics=(),
            completed=False,
        )
