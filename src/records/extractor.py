"""Record-family dispatch for field extraction.

Every extractable family in ``SUPPORTED_RECORD_FAMILIES`` must have an
entry in the dispatch table; a missing entry fails at import time.
"""

from __future__ import annotations

from typing import Callable

from core.errors import ClassificationError
from core.record_types import SUPPORTED_RECORD_FAMILIES, ClassifiedLine, ExtractionResult, RecordFamily
from records.discount_fields import extract_discount_range
from records.party_fields import extract_party
from records.price_fields import extract_price
from records.product_fields import extract_product, extract_translation

FamilyExtractor = Callable[[ClassifiedLine], ExtractionResult]

_EXTRACTORS: dict[RecordFamily, FamilyExtractor] = {
    "party": extract_party,
    "product": extract_product,
    "translation": extract_translation,
    "price": extract_price,
    "discount_range": extract_discount_range,
}


def _check_dispatch_table() -> None:
    expected = {family for family in SUPPORTED_RECORD_FAMILIES if family != "unknown"}
    missing = expected - set(_EXTRACTORS)
    if missing:
        raise RuntimeError(f"No field extractor registered for: {', '.join(sorted(missing))}")


_check_dispatch_table()


def extract_record(line: ClassifiedLine) -> ExtractionResult:
    """Extract typed fields from a classified line.

    Args:
        line: Classified line of a known family.

    Returns:
        Extracted record with warnings.

    Raises:
        ClassificationError: If the line is of the unknown family.
        FieldExtractionError: If a required field is empty or malformed.
    """
    extractor = _EXTRACTORS.get(line.family)
    if extractor is None:
        raise ClassificationError(
            f"Line {line.line_number} has no extractable record family: "
            f"{line.reason or line.family}."
        )
    return extractor(line)
