"""Unit tests for the import ledger."""

from __future__ import annotations

from dataclasses import replace
from pathlib import Path

import pytest

from core.errors import LedgerError
from core.types import ImportReport
from store.import_ledger import ImportLedger


def _completed_report() -> ImportReport:
    return replace(
        ImportReport.empty("feeds/catalog_iv.txt", "catalog"),
        feed_digest="abc123",
        seller_id="0123456789",
        lines_read=3,
        records_accepted=3,
        completed=True,
    )


def test_recorded_import_is_contained(tmp_path: Path) -> None:
    """A recorded digest should be found again under the same scope."""
    ledger = ImportLedger(tmp_path / "ledger.json")

    ledger.record(_completed_report(), scope="iv")

    assert ledger.contains("abc123", "catalog", "iv") is True


def test_scope_distinguishes_imports(tmp_path: Path) -> None:
    """The same digest under another partition scope should not match."""
    ledger = ImportLedger(tmp_path / "ledger.json")

    ledger.record(_completed_report(), scope="iv")

    assert ledger.contains("abc123", "catalog", "lv") is False


def test_entries_persist_across_instances(tmp_path: Path) -> None:
    """Ledger entries should be read back from disk."""
    ImportLedger(tmp_path / "ledger.json").record(_completed_report())

    entries = ImportLedger(tmp_path / "ledger.json").entries()

    assert [(entry.feed_digest, entry.records_accepted) for entry in entries] == [("abc123", 3)]


def test_incomplete_import_cannot_be_recorded(tmp_path: Path) -> None:
    """Reports of interrupted imports should not enter the ledger."""
    ledger = ImportLedger(tmp_path / "ledger.json")

    with pytest.raises(LedgerError):
        ledger.record(ImportReport.empty("feeds/catalog_iv.txt", "catalog"))


def test_malformed_ledger_raises(tmp_path: Path) -> None:
    """A ledger without an imports list should raise a ledger error."""
    ledger_path = tmp_path / "ledger.json"
    ledger_path.write_text('{"imports": {}}', encoding="utf-8")

    with pytest.raises(LedgerError):
        ImportLedger(ledger_path).entries()
