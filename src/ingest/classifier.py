"""Record family classification of normalized lines.

A line's family follows from its leading marker, its width against the
layouts allowed for the feed kind, and for product-layout lines the
language column. Lines that fit nothing classify as ``unknown``.
"""

from __future__ import annotations

from typing import cast

from core.constants import CATEGORY_MARKERS, PARTY_MARKER, ROW_MARKER
from core.record_types import ClassifiedLine
from core.types import FeedKind, Language, Partition
from records.field_layout import RecordLayout
from records.layouts import DISCOUNT_LAYOUT, PARTY_LAYOUT, PRICE_LAYOUT, PRODUCT_LAYOUT

_ROW_LAYOUTS_BY_KIND: dict[FeedKind, tuple[RecordLayout, ...]] = {
    "catalog": (PRODUCT_LAYOUT, PRICE_LAYOUT),
    "discount": (DISCOUNT_LAYOUT,),
}
_LANGUAGE_OFFSET = PRODUCT_LAYOUT.offset("language")
_LANGUAGE_WIDTH = PRODUCT_LAYOUT.spec("language").width


def classify_line(
    text: str,
    line_number: int,
    feed_kind: FeedKind,
    primary_language: Language,
) -> ClassifiedLine:
    """Decide the record family and partition of one line.

    Args:
        text: Normalized, non-blank line text.
        line_number: One-based line number in the feed.
        feed_kind: Kind of feed the line came from.
        primary_language: Language whose product lines define seller products.

    Returns:
        Classified line; unknown lines carry a reason instead of a partition.
    """
    marker = text[:1]
    if marker == PARTY_MARKER:
        fitted = _fit_layout(text, (PARTY_LAYOUT,))
        if fitted is None:
            return _unknown(text, line_number, f"party header width {len(text)} is invalid")
        return ClassifiedLine(line_number=line_number, family="party", text=fitted[1])
    if marker != ROW_MARKER:
        return _unknown(text, line_number, f"unknown record marker '{marker}'")
    fitted = _fit_layout(text, _ROW_LAYOUTS_BY_KIND[feed_kind])
    if fitted is None:
        return _unknown(
            text, line_number, f"line width {len(text)} matches no {feed_kind} layout"
        )
    layout, fitted_text = fitted
    if layout is DISCOUNT_LAYOUT:
        return ClassifiedLine(
            line_number=line_number,
            family="discount_range",
            text=fitted_text,
            partition=_partition_for_marker(fitted_text[1:2]),
        )
    partition = _partition_for_marker(fitted_text[1:2])
    if partition is None:
        return _unknown(text, line_number, f"unknown category marker '{fitted_text[1:2]}'")
    if layout is PRICE_LAYOUT:
        return ClassifiedLine(
            line_number=line_number, family="price", text=fitted_text, partition=partition
        )
    language = fitted_text[_LANGUAGE_OFFSET : _LANGUAGE_OFFSET + _LANGUAGE_WIDTH].strip().lower()
    family = "product" if language == primary_language else "translation"
    return ClassifiedLine(
        line_number=line_number, family=family, text=fitted_text, partition=partition
    )


def _fit_layout(
    text: str,
    layouts: tuple[RecordLayout, ...],
) -> tuple[RecordLayout, str] | None:
    """Find the layout accepting the line, right-trimming an overlong line once."""
    for candidate_text in (text, text.rstrip()):
        for layout in layouts:
            if layout.accepts_width(len(candidate_text)):
                return layout, candidate_text
    return None


def _partition_for_marker(marker: str) -> Partition | None:
    partition = CATEGORY_MARKERS.get(marker.upper())
    return cast(Partition, partition) if partition else None


def _unknown(text: str, line_number: int, reason: str) -> ClassifiedLine:
    return ClassifiedLine(line_number=line_number, family="unknown", text=text, reason=reason)
