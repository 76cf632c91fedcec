"""Core constants used across pricebook modules.

This module centralizes feed markers, partition codes, and storage names.
Keeping values here avoids magic literals in parsing and sink logic.
"""

from __future__ import annotations

from pathlib import Path

DEFAULT_DATA_ROOT = Path(".pricebook")
DOCUMENTS_DIR_NAME = "documents"
DATABASE_FILE_NAME = "pricebook.db"
LEDGER_FILE_NAME = "ledger.json"
HASH_ALGORITHM = "sha256"

CANONICAL_ENCODING = "utf-8"
FALLBACK_ENCODING = "cp1252"
BYTE_ORDER_MARK = "\ufeff"

PARTY_MARKER = "O"
ROW_MARKER = "R"
SELLER_ROLE_CODE = "SE"
BUYER_ROLE_CODE = "BY"
NOT_STOCK_ITEM_FLAG = "E"

CATEGORY_MARKERS = {
    "L": "lv",
    "I": "iv",
    "S": "sa",
    "P": "te",
    "K": "ky",
}
OPERATION_CODES = {
    "1": "add",
    "2": "mod",
    "3": "del",
}
LANGUAGE_SLOTS = {
    "fin": 1,
    "swe": 2,
    "eng": 3,
    "nor": 4,
}

DEFAULT_LANGUAGES = ("fin",)
DEFAULT_VAT_PERCENT = "25.5"
DEFAULT_WORKERS = 1
MAX_LINE_DIAGNOSTICS = 500
PUBLIC_ID_LENGTH = 20
