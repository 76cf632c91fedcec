"""Pricebook exception hierarchy.

This module defines traceable domain errors with clear boundaries.
Per-line errors are counted by the import pipeline; only feed-level
and configuration errors terminate a run.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from core.types import ImportReport


class PricebookError(Exception):
    """Base exception for all pricebook failures."""


class PricebookConfigError(PricebookError):
    """Raised for invalid runtime configuration or settings files."""


class EncodingError(PricebookError):
    """Raised when line bytes decode under no attempted encoding."""


class ClassificationError(PricebookError):
    """Raised when a line matches no known record marker or layout."""


class FieldExtractionError(PricebookError):
    """Raised when a required field is empty or malformed.

    Attributes:
        field_name: Name of the offending layout field.
    """

    def __init__(self, field_name: str, message: str) -> None:
        super().__init__(f"{field_name}: {message}")
        self.field_name = field_name


class SinkError(PricebookError):
    """Raised when an emission target rejects one entity or a whole pass.

    Attributes:
        sink_name: Name of the rejecting sink.
        failed_entities: Already accepted entities lost by a failed commit.
    """

    def __init__(self, sink_name: str, message: str, failed_entities: int = 0) -> None:
        super().__init__(f"{sink_name}: {message}")
        self.sink_name = sink_name
        self.failed_entities = failed_entities


class FeedReadError(PricebookError):
    """Raised when the line source itself cannot be read.

    Attributes:
        report: Counters accumulated before the source failed.
    """

    def __init__(self, message: str, report: "ImportReport") -> None:
        super().__init__(message)
        self.report = report


class LedgerError(PricebookError):
    """Raised when the import ledger cannot be read or written."""
