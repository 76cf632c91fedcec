"""Integration tests for the catalog, discount, and quote workflow."""

from __future__ import annotations

from dataclasses import replace
from decimal import Decimal
import json
from pathlib import Path

from sqlalchemy import create_engine, inspect

from core.config import PricebookConfig
from core.import_settings import ImportSettings, SinkSettings
from store.pricebook_sdk import PricebookClient
from tests.edi_lines import (
    BUYER_ID,
    SELLER_ID,
    discount_line,
    party_line,
    price_line,
    product_line,
    sample_feed,
    write_feed,
)


def _client(data_root: Path, settings: ImportSettings | None = None) -> PricebookClient:
    config = replace(PricebookConfig.from_env(), data_root=data_root, settings_path=None)
    return PricebookClient(config, settings)


def test_catalog_and_discount_flow_quotes_buyer_terms(tmp_path: Path) -> None:
    """End-to-end flow should join fixture catalog prices with buyer discounts."""
    client = _client(tmp_path / "data")
    client.import_catalogs([sample_feed("catalog_iv.txt")])
    client.import_discounts(sample_feed("discounts_b100.txt"))

    quotes = client.quote(BUYER_ID, SELLER_ID, "iv")

    assert [(quote.product_id, quote.unit_price, quote.discount_percent) for quote in quotes] == [
        ("1001", Decimal("55.00"), Decimal("55.00")),
        ("1002", None, Decimal("30.00")),
    ]


def test_forced_reimport_leaves_documents_unchanged(tmp_path: Path) -> None:
    """Re-importing an identical feed should produce identical documents."""
    client = _client(tmp_path / "data")
    client.import_catalogs([sample_feed("catalog_iv.txt")])
    prices_path = client.document_sink.root / "sellers" / SELLER_ID / "prices" / "iv.json"
    first_pass = prices_path.read_text(encoding="utf-8")

    client.import_catalogs([sample_feed("catalog_iv.txt")], force=True)

    assert prices_path.read_text(encoding="utf-8") == first_pass


def test_price_change_across_runs_updates_quote(tmp_path: Path) -> None:
    """A later catalog run should replace the earlier price in quotes."""
    client = _client(tmp_path / "data")
    header = party_line("SE", SELLER_ID)
    write_feed(tmp_path / "week1.txt", header, product_line(), price_line())
    write_feed(
        tmp_path / "week2.txt", header, product_line(), price_line(unit_price=Decimal("60.00"))
    )
    write_feed(
        tmp_path / "terms.txt", party_line("BY", BUYER_ID), header, discount_line()
    )
    client.import_catalogs([tmp_path / "week1.txt"])
    client.import_discounts(tmp_path / "terms.txt")

    client.import_catalogs([tmp_path / "week2.txt"])

    assert [quote.unit_price for quote in client.quote(BUYER_ID, SELLER_ID, "iv")] == [
        Decimal("60.00")
    ]


def test_discount_reimport_replaces_stored_groups(tmp_path: Path) -> None:
    """A new discount file should replace the buyer's stored groups whole."""
    client = _client(tmp_path / "data")
    headers = (party_line("BY", BUYER_ID), party_line("SE", SELLER_ID))
    write_feed(
        tmp_path / "terms1.txt",
        *headers,
        discount_line(discount_group="I8631B"),
        discount_line(discount_group="I8632A"),
    )
    write_feed(tmp_path / "terms2.txt", *headers, discount_line(discount_group="I8632A"))
    client.import_discounts(tmp_path / "terms1.txt")

    client.import_discounts(tmp_path / "terms2.txt")
    discounts_path = (
        client.document_sink.root / "sellers" / SELLER_ID / "buyers" / BUYER_ID / "discounts.json"
    )
    document = json.loads(discounts_path.read_text(encoding="utf-8"))

    assert list(document["entities"]) == [f"{BUYER_ID}{SELLER_ID}I8632A"]


def test_sql_sink_receives_partition_tables(tmp_path: Path) -> None:
    """The relational sink should hold per-partition price tables after import."""
    database_url = f"sqlite:///{tmp_path / 'catalog.db'}"
    settings = ImportSettings(sinks=SinkSettings(json=True, sql=True), database_url=database_url)
    client = _client(tmp_path / "data", settings)

    client.import_catalogs([sample_feed("catalog_iv.txt")])
    table_names = set(inspect(create_engine(database_url)).get_table_names())

    assert {
        "sellers",
        "products",
        "prices_iv",
        "prices_lv",
        "product_lv_t",
        "search_iv",
    } <= table_names
