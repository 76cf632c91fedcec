"""Unit tests for CLI command handling."""

from __future__ import annotations

from pathlib import Path

import pytest

from cli.main import main
from tests.edi_lines import sample_feed

CATALOG_PATH = str(sample_feed("catalog_iv.txt"))
DISCOUNT_PATH = str(sample_feed("discounts_b100.txt"))


@pytest.fixture(autouse=True)
def _clear_settings_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("PRICEBOOK_SETTINGS", raising=False)


def _output_lines(capsys: pytest.CaptureFixture[str]) -> list[str]:
    return capsys.readouterr().out.splitlines()


def test_cli_import_catalog_prints_counters(tmp_path: Path, capsys) -> None:
    """CLI catalog import should print per-file counters and sink totals."""
    exit_code = main(["--data-root", str(tmp_path), "import-catalog", CATALOG_PATH])
    lines = _output_lines(capsys)

    assert (
        exit_code,
        "records_accepted=8" in lines,
        "encoding_failures=1" in lines,
        "sink=json written=20 failed=0" in lines,
    ) == (0, True, True, True)


def test_cli_skips_already_imported_catalog(tmp_path: Path, capsys) -> None:
    """A second import of the same file should report it as already imported."""
    main(["--data-root", str(tmp_path), "import-catalog", CATALOG_PATH])
    capsys.readouterr()

    exit_code = main(["--data-root", str(tmp_path), "import-catalog", CATALOG_PATH])

    assert (exit_code, "status=already_imported" in _output_lines(capsys)) == (0, True)


def test_cli_quote_joins_catalog_and_discounts(tmp_path: Path, capsys) -> None:
    """Quotes should show listed prices with the buyer's discount percent."""
    main(["--data-root", str(tmp_path), "import-catalog", CATALOG_PATH])
    main(["--data-root", str(tmp_path), "import-discounts", DISCOUNT_PATH])
    capsys.readouterr()

    exit_code = main(
        [
            "--data-root",
            str(tmp_path),
            "quote",
            "--buyer",
            "B100",
            "--seller",
            "0123456789",
            "--partition",
            "iv",
        ]
    )
    lines = _output_lines(capsys)

    assert (exit_code, "1001\tI8631B\t01\t55.00\t55.00" in lines, "quotes=2" in lines) == (
        0,
        True,
        True,
    )


def test_cli_import_discounts_prints_buyer(tmp_path: Path, capsys) -> None:
    """Discount imports should print the buyer the groups were merged for."""
    exit_code = main(
        ["--data-root", str(tmp_path), "import-discounts", DISCOUNT_PATH, "--buyer", "B200"]
    )

    assert (exit_code, "buyer_id=B200" in _output_lines(capsys)) == (0, True)


def test_cli_reports_unreadable_feed(tmp_path: Path, capsys) -> None:
    """Missing feed files should print an import error and exit non-zero."""
    exit_code = main(
        ["--data-root", str(tmp_path), "import-catalog", str(tmp_path / "absent.txt")]
    )
    lines = _output_lines(capsys)

    assert (exit_code, any(line.startswith("import_error=") for line in lines)) == (1, True)


def test_cli_reports_invalid_settings(tmp_path: Path, capsys) -> None:
    """A missing settings file should print an error and exit non-zero."""
    exit_code = main(
        [
            "--data-root",
            str(tmp_path),
            "--settings",
            str(tmp_path / "absent.yaml"),
            "import-catalog",
            CATALOG_PATH,
        ]
    )

    assert (exit_code, any(line.startswith("error=") for line in _output_lines(capsys))) == (
        1,
        True,
    )
