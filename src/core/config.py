"""Runtime configuration model for pricebook.

This module owns all environment variable parsing and validation.
Other modules consume a typed config object instead of raw env reads.
"""

from __future__ import annotations

from dataclasses import dataclass
import os
from pathlib import Path

from core.constants import (
    DATABASE_FILE_NAME,
    DEFAULT_DATA_ROOT,
    DEFAULT_WORKERS,
    DOCUMENTS_DIR_NAME,
    LEDGER_FILE_NAME,
)
from core.errors import PricebookConfigError


@dataclass(frozen=True)
class PricebookConfig:
    """Validated runtime configuration.

    Attributes:
        data_root: Local root directory for documents, database, and ledger.
        settings_path: Optional YAML import settings file.
        workers: Thread count for per-line processing.
    """

    data_root: Path
    settings_path: Path | None
    workers: int

    @classmethod
    def from_env(cls) -> "PricebookConfig":
        """Build config from process environment variables.

        Returns:
            A validated config object.

        Raises:
            PricebookConfigError: If environment values are invalid.
        """
        data_root_value = os.getenv("PRICEBOOK_DATA_ROOT", str(DEFAULT_DATA_ROOT))
        settings_value = os.getenv("PRICEBOOK_SETTINGS")
        workers_value = os.getenv("PRICEBOOK_WORKERS", str(DEFAULT_WORKERS))
        settings_path = Path(settings_value).expanduser().resolve() if settings_value else None
        return cls(
            data_root=Path(data_root_value).expanduser().resolve(),
            settings_path=settings_path,
            workers=_parse_workers(workers_value),
        )

    @property
    def documents_root(self) -> Path:
        """Directory holding the JSON document store."""
        return self.data_root / DOCUMENTS_DIR_NAME

    @property
    def database_path(self) -> Path:
        """Default SQLite file for the relational sink."""
        return self.data_root / DATABASE_FILE_NAME

    @property
    def ledger_path(self) -> Path:
        """JSON ledger of imported feed digests."""
        return self.data_root / LEDGER_FILE_NAME


def _parse_workers(raw_value: str) -> int:
    """Parse the worker count environment value.

    Args:
        raw_value: Raw string from environment.

    Returns:
        Parsed positive worker count.

    Raises:
        PricebookConfigError: If value is not a positive integer.
    """
    try:
        workers = int(raw_value)
    except ValueError as error:
        raise PricebookConfigError(
            "Invalid PRICEBOOK_WORKERS value: "
            f"expected integer, got '{raw_value}'. "
            "Set PRICEBOOK_WORKERS to a positive number."
        ) from error
    if workers < 1:
        raise PricebookConfigError(
            f"Invalid PRICEBOOK_WORKERS value {workers}: must be at least 1."
        )
    return workers
