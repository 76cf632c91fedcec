"""Import command wiring for the pricebook CLI.

This module isolates the catalog and discount import parsers and
their key=value report output.
"""

from __future__ import annotations

import argparse
from typing import Any, cast

from core.errors import FeedReadError
from core.types import SUPPORTED_PARTITIONS, ImportReport, Partition
from store.emission import EmissionReport
from store.pricebook_sdk import ImportBatchResult, PricebookClient


def add_import_catalog_command(subparsers: Any) -> None:
    """Register import-catalog subcommand."""
    parser = subparsers.add_parser(
        "import-catalog",
        help="Import seller catalog feed files",
    )
    parser.add_argument("files", nargs="+", help="Extracted catalog feed files")
    parser.add_argument(
        "--partition",
        choices=SUPPORTED_PARTITIONS,
        help="Only import lines of this partition",
    )
    parser.add_argument(
        "--force",
        action="store_true",
        help="Re-import files that were already imported",
    )


def add_import_discounts_command(subparsers: Any) -> None:
    """Register import-discounts subcommand."""
    parser = subparsers.add_parser(
        "import-discounts",
        help="Import one buyer discount feed file",
    )
    parser.add_argument("file", help="Extracted discount feed file")
    parser.add_argument("--buyer", help="Buyer number overriding the feed's buyer header")
    parser.add_argument(
        "--force",
        action="store_true",
        help="Re-import a file that was already imported",
    )


def run_import_catalog_command(client: PricebookClient, args: argparse.Namespace) -> int:
    """Execute catalog import and print per-file reports."""
    partition = cast("Partition | None", args.partition)
    try:
        result = client.import_catalogs(args.files, partition=partition, force=args.force)
    except FeedReadError as error:
        return _print_read_failure(error)
    return _print_batch(result)


def run_import_discounts_command(client: PricebookClient, args: argparse.Namespace) -> int:
    """Execute discount import and print the file report."""
    try:
        result = client.import_discounts(args.file, buyer_id=args.buyer, force=args.force)
    except FeedReadError as error:
        return _print_read_failure(error)
    return _print_batch(result)


def _print_batch(result: ImportBatchResult) -> int:
    for outcome in result.outcomes:
        print(f"source={outcome.source_uri}")
        if outcome.already_imported:
            print("status=already_imported")
            continue
        if outcome.report is not None:
            _print_report(outcome.report)
    if result.emission is not None:
        _print_emission(result.emission)
        return 0 if result.emission.failed == 0 else 1
    return 0


def _print_report(report: ImportReport) -> None:
    print(f"seller_id={report.seller_id or '-'}")
    if report.kind == "discount":
        print(f"buyer_id={report.buyer_id or '-'}")
    print(f"lines_read={report.lines_read}")
    print(f"records_accepted={report.records_accepted}")
    print(f"encoding_failures={report.encoding_failures}")
    print(f"classification_failures={report.classification_failures}")
    print(f"extraction_failures={report.extraction_failures}")
    print(f"filtered_lines={report.filtered_lines}")
    print(f"unknown_group_lines={report.unknown_group_lines}")
    for diagnostic in report.diagnostics:
        print(f"diagnostic={diagnostic.line_number}:{diagnostic.category}:{diagnostic.message}")


def _print_emission(emission: EmissionReport) -> None:
    for sink in emission.sinks:
        print(f"sink={sink.sink_name} written={sink.written} failed={sink.failed}")


def _print_read_failure(error: FeedReadError) -> int:
    print(f"import_error={error}")
    print(f"lines_read={error.report.lines_read}")
    print(f"records_accepted={error.report.records_accepted}")
    return 1
