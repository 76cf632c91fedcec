"""Ledger of feeds already imported.

The ledger is a JSON file under the data root listing the digest of
every completed feed import, so an unchanged feed file is not imported
twice.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from datetime import datetime, timezone
import json
from pathlib import Path
from typing import Any

from core.errors import LedgerError
from core.logging_config import get_logger
from core.types import ImportReport

_LOGGER = get_logger(__name__)


@dataclass(frozen=True)
class LedgerEntry:
    """One completed feed import.

    Attributes:
        feed_digest: Digest of the feed's raw bytes.
        kind: Feed kind.
        scope: Partition or buyer tag the feed was imported under, if any.
        source_uri: Feed origin at import time.
        seller_id: Seller read from the feed header.
        records_accepted: Records the import applied.
        imported_at: UTC import timestamp in ISO format.
    """

    feed_digest: str
    kind: str
    scope: str | None
    source_uri: str
    seller_id: str | None
    records_accepted: int
    imported_at: str


class ImportLedger:
    """JSON ledger of completed imports."""

    def __init__(self, ledger_path: Path) -> None:
        self._ledger_path = ledger_path

    def entries(self) -> list[LedgerEntry]:
        """Return ledger entries in import order.

        Raises:
            LedgerError: If the ledger file is unreadable or malformed.
        """
        payload = self._read_payload()
        try:
            return [LedgerEntry(**row) for row in payload["imports"]]
        except (TypeError, KeyError) as error:
            raise LedgerError(
                f"Import ledger at {self._ledger_path} has invalid entries: {error}. "
                "Delete the ledger to re-import every feed."
            ) from error

    def contains(self, feed_digest: str, kind: str, scope: str | None = None) -> bool:
        """Return whether the same feed was already imported under the same scope."""
        return any(
            entry.feed_digest == feed_digest and entry.kind == kind and entry.scope == scope
            for entry in self.entries()
        )

    def record(self, report: ImportReport, scope: str | None = None) -> LedgerEntry:
        """Append a completed import to the ledger.

        Args:
            report: Report of a completed import.
            scope: Partition or buyer tag the feed was imported under.

        Returns:
            The stored entry.

        Raises:
            LedgerError: If the report is incomplete or the ledger cannot be written.
        """
        if not report.completed:
            raise LedgerError(
                f"Import of {report.source_uri} did not complete and cannot be recorded."
            )
        entry = LedgerEntry(
            feed_digest=report.feed_digest,
            kind=report.kind,
            scope=scope,
            source_uri=report.source_uri,
            seller_id=report.seller_id,
            records_accepted=report.records_accepted,
            imported_at=datetime.now(timezone.utc).isoformat(),
        )
        payload = self._read_payload()
        payload["imports"].append(asdict(entry))
        try:
            self._ledger_path.parent.mkdir(parents=True, exist_ok=True)
            self._ledger_path.write_text(json.dumps(payload, indent=2) + "\n", encoding="utf-8")
        except OSError as error:
            raise LedgerError(
                f"Failed to write import ledger at {self._ledger_path}: {error}. "
                "Check that the data root is writable."
            ) from error
        _LOGGER.info(
            "ledger_entry_recorded",
            feed_digest=entry.feed_digest,
            kind=entry.kind,
            scope=entry.scope,
        )
        return entry

    def _read_payload(self) -> dict[str, Any]:
        if not self._ledger_path.exists():
            return {"imports": []}
        try:
            payload = json.loads(self._ledger_path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as error:
            raise LedgerError(
                f"Failed to read import ledger at {self._ledger_path}: {error}. "
                "Delete the ledger to re-import every feed."
            ) from error
        if not isinstance(payload, dict) or not isinstance(payload.get("imports"), list):
            raise LedgerError(
                f"Import ledger at {self._ledger_path} is malformed: expected an imports list."
            )
        return payload
