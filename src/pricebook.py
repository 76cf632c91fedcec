"""Public SDK surface for pricebook.

This module provides a stable import path for library users.
It re-exports the client, the import pipeline, and typed models.
"""

from __future__ import annotations

from core.config import PricebookConfig
from core.import_settings import ImportSettings, load_import_settings
from core.types import FeedSource, ImportReport, LineDiagnostic
from ingest.line_source import file_feed_source
from ingest.pipeline import FeedImportRunner, import_feed
from model.builder import ModelBuilder, ModelSnapshot
from model.keys import serialize_key
from model.query import PriceQuote, build_search_entries, quote_prices
from store.emission import EmissionReport, emit_model
from store.json_sink import JsonDocumentSink
from store.pricebook_sdk import PricebookClient
from store.sql_sink import SqlEntitySink

__all__ = [
    "EmissionReport",
    "FeedImportRunner",
    "FeedSource",
    "ImportReport",
    "ImportSettings",
    "JsonDocumentSink",
    "LineDiagnostic",
    "ModelBuilder",
    "ModelSnapshot",
    "PriceQuote",
    "PricebookClient",
    "PricebookConfig",
    "SqlEntitySink",
    "emit_model",
    "file_feed_source",
    "import_feed",
    "load_import_settings",
    "quote_prices",
    "serialize_key",
]
