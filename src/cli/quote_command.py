"""Quote command wiring for the pricebook CLI."""

from __future__ import annotations

import argparse
from typing import Any, cast

from core.types import SUPPORTED_PARTITIONS, Partition
from store.pricebook_sdk import PricebookClient


def add_quote_command(subparsers: Any) -> None:
    """Register quote subcommand."""
    parser = subparsers.add_parser(
        "quote",
        help="List listed prices with a buyer's discount percent",
    )
    parser.add_argument("--buyer", required=True, help="Buyer number at the seller")
    parser.add_argument("--seller", required=True, help="Seller organization number")
    parser.add_argument(
        "--partition",
        required=True,
        choices=SUPPORTED_PARTITIONS,
        help="Catalog partition",
    )


def run_quote_command(client: PricebookClient, args: argparse.Namespace) -> int:
    """Print one tab-separated row per matched product."""
    quotes = client.quote(args.buyer, args.seller, cast(Partition, args.partition))
    for quote in quotes:
        print(
            f"{quote.product_id}\t"
            f"{quote.discount_group}\t"
            f"{quote.price_group}\t"
            f"{quote.unit_price if quote.unit_price is not None else '-'}\t"
            f"{quote.discount_percent if quote.discount_percent is not None else '-'}"
        )
    print(f"quotes={len(quotes)}")
    return 0
