"""Context-free processing of one raw feed line.

Normalizing, classifying, and extracting a line depend on nothing but
the line itself, so this stage is safe to run on a worker thread.
"""

from __future__ import annotations

from dataclasses import dataclass

from core.errors import EncodingError, FieldExtractionError
from core.record_types import ClassifiedLine, ExtractionResult
from core.types import FeedKind, Language, LineDiagnostic, Partition
from ingest.classifier import classify_line
from ingest.encoding import normalize_line
from records.extractor import extract_record


@dataclass(frozen=True)
class LineOutcome:
    """Result of processing one raw line.

    Exactly one of ``result`` and ``failure`` is set for non-blank lines.

    Attributes:
        line_number: One-based line number in the feed.
        blank: Line held only whitespace.
        classified: Classified line, when decoding succeeded.
        result: Extracted record, when extraction succeeded.
        failure: Skip diagnostic, when any stage failed.
    """

    line_number: int
    blank: bool = False
    classified: ClassifiedLine | None = None
    result: ExtractionResult | None = None
    failure: LineDiagnostic | None = None


def process_line(
    raw_line: bytes,
    line_number: int,
    feed_kind: FeedKind,
    primary_language: Language,
    feed_partition: Partition | None = None,
) -> LineOutcome:
    """Run normalize, classify, and extract on one line.

    Per-line errors are captured as diagnostics and never raised.

    Args:
        raw_line: Raw bytes of the line.
        line_number: One-based line number.
        feed_kind: Kind of feed the line belongs to.
        primary_language: Language whose product lines define seller products.
        feed_partition: Partition tag of the feed; lines of other partitions are skipped.

    Returns:
        Processing outcome for the line.
    """
    try:
        text = normalize_line(raw_line)
    except EncodingError as error:
        return LineOutcome(
            line_number=line_number,
            failure=LineDiagnostic(line_number, "encoding", str(error)),
        )
    if not text.strip():
        return LineOutcome(line_number=line_number, blank=True)
    classified = classify_line(text, line_number, feed_kind, primary_language)
    if classified.family == "unknown":
        return LineOutcome(
            line_number=line_number,
            classified=classified,
            failure=LineDiagnostic(
                line_number, "classification", classified.reason or "unknown record"
            ),
        )
    if feed_partition is not None and classified.partition not in (None, feed_partition):
        return LineOutcome(
            line_number=line_number,
            classified=classified,
            failure=LineDiagnostic(
                line_number,
                "classification",
                f"partition '{classified.partition}' is outside the feed partition "
                f"'{feed_partition}'",
            ),
        )
    try:
        result = extract_record(classified)
    except FieldExtractionError as error:
        return LineOutcome(
            line_number=line_number,
            classified=classified,
            failure=LineDiagnostic(
                line_number, "extraction", str(error), field_name=error.field_name
            ),
        )
    return LineOutcome(line_number=line_number, classified=classified, result=result)
