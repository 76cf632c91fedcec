"""Unit tests for per-line decoding."""

from __future__ import annotations

import pytest

from core.errors import EncodingError
from ingest.encoding import normalize_line


def test_normalize_line_decodes_utf8() -> None:
    """UTF-8 lines should decode without their line terminator."""
    text = normalize_line("Sähköliitin".encode("utf-8") + b"\r\n")

    assert text == "Sähköliitin"


def test_normalize_line_falls_back_to_windows_code_page() -> None:
    """Lines invalid as UTF-8 should decode as Windows-1252."""
    text = normalize_line("Sähköliitin".encode("cp1252") + b"\n")

    assert text == "Sähköliitin"


def test_normalize_line_strips_byte_order_mark() -> None:
    """A leading byte order mark should not reach the classifier."""
    text = normalize_line(b"\xef\xbb\xbfOSE0123456789")

    assert text == "OSE0123456789"


def test_normalize_line_keeps_trailing_spaces() -> None:
    """Trailing field padding should survive decoding."""
    text = normalize_line(b"RI1001   \n")

    assert text == "RI1001   "


def test_normalize_line_raises_for_undecodable_bytes() -> None:
    """Bytes valid in no attempted encoding should raise."""
    with pytest.raises(EncodingError):
        normalize_line(b"RI\x81\x81broken\n")
