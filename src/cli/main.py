"""Pricebook CLI entry points.
This module exposes the feed import and quote commands.
It maps argparse commands onto SDK calls.
"""

from __future__ import annotations

import argparse
from dataclasses import replace
from pathlib import Path
from typing import Sequence

from cli.import_commands import (
    add_import_catalog_command,
    add_import_discounts_command,
    run_import_catalog_command,
    run_import_discounts_command,
)
from cli.quote_command import add_quote_command, run_quote_command
from core.config import PricebookConfig
from core.errors import PricebookError
from store.pricebook_sdk import PricebookClient


def build_parser() -> argparse.ArgumentParser:
    """Build the top-level CLI parser.

    Returns:
        Configured argument parser.
    """
    parser = argparse.ArgumentParser(prog="pricebook", description="Pricebook feed import CLI")
    parser.add_argument("--data-root", help="Override PRICEBOOK_DATA_ROOT for this command")
    parser.add_argument("--settings", help="Override PRICEBOOK_SETTINGS for this command")
    subparsers = parser.add_subparsers(dest="command", required=True)
    add_import_catalog_command(subparsers)
    add_import_discounts_command(subparsers)
    add_quote_command(subparsers)
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    """Run the pricebook CLI.

    Args:
        argv: Optional argument vector.

    Returns:
        Process exit code.
    """
    parser = build_parser()
    args = parser.parse_args(argv)
    try:
        client = _build_client(args.data_root, args.settings)
        if args.command == "import-catalog":
            return run_import_catalog_command(client, args)
        if args.command == "import-discounts":
            return run_import_discounts_command(client, args)
        if args.command == "quote":
            return run_quote_command(client, args)
    except PricebookError as error:
        print(f"error={error}")
        return 1
    parser.error(f"Unsupported command: {args.command}")
    return 2


def _build_client(data_root: str | None, settings_path: str | None) -> PricebookClient:
    """Build SDK client with optional path overrides.

    Args:
        data_root: Optional data root override.
        settings_path: Optional settings file override.

    Returns:
        Configured SDK client.
    """
    config = PricebookConfig.from_env()
    if data_root:
        config = replace(config, data_root=Path(data_root).expanduser().resolve())
    if settings_path:
        config = replace(config, settings_path=Path(settings_path).expanduser().resolve())
    return PricebookClient(config)
