"""Typed import settings loaded from YAML.

This module validates the settings file that names sellers, accepted
languages, buyer terms, and the enabled sinks. Missing files fall back
to defaults so the core runs without any settings at all.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Mapping, Sequence, cast

import yaml

from core.constants import DEFAULT_LANGUAGES, DEFAULT_VAT_PERCENT
from core.errors import PricebookConfigError
from core.types import SUPPORTED_LANGUAGES, Language


@dataclass(frozen=True)
class SinkSettings:
    """Sinks enabled for emission."""

    json: bool = True
    sql: bool = False


@dataclass(frozen=True)
class ImportSettings:
    """Validated import settings.

    Attributes:
        vat_percent: VAT percent recorded on buyer accounts.
        languages: Accepted languages; the first one is primary.
        sinks: Enabled emission sinks.
        database_url: Optional SQLAlchemy URL for the relational sink.
        seller_names: Display names keyed by seller organization number.
        require_known_groups: Reject discount lines whose groups are absent
            from the seller's catalog data.
    """

    vat_percent: Decimal = Decimal(DEFAULT_VAT_PERCENT)
    languages: tuple[Language, ...] = DEFAULT_LANGUAGES
    sinks: SinkSettings = SinkSettings()
    database_url: str | None = None
    seller_names: Mapping[str, str] = field(default_factory=dict)
    require_known_groups: bool = False

    @property
    def primary_language(self) -> Language:
        """Language whose product lines define seller products."""
        return self.languages[0]

    def seller_name(self, seller_id: str) -> str:
        """Return the configured display name, or the id when unnamed."""
        return self.seller_names.get(seller_id, seller_id)


def load_import_settings(settings_path: Path | str | None) -> ImportSettings:
    """Load and validate import settings from a YAML file.

    Args:
        settings_path: YAML file path, or None for defaults.

    Returns:
        Validated settings object.

    Raises:
        PricebookConfigError: If the file is unreadable or fails schema checks.
    """
    if settings_path is None:
        return ImportSettings()
    payload = _load_yaml_payload(Path(settings_path))
    root_mapping = _expect_mapping(payload, "settings root")
    _validate_root_keys(root_mapping)
    _parse_version(root_mapping)
    return ImportSettings(
        vat_percent=_parse_vat_percent(root_mapping),
        languages=_parse_languages(root_mapping),
        sinks=_parse_sinks(root_mapping),
        database_url=_optional_string(root_mapping, "database_url"),
        seller_names=_parse_sellers(root_mapping),
        require_known_groups=_parse_discount_options(root_mapping),
    )


def _load_yaml_payload(settings_file: Path) -> object:
    settings_file = settings_file.expanduser().resolve()
    if not settings_file.exists():
        raise PricebookConfigError(
            f"Settings file does not exist at {settings_file}. Provide a valid YAML file path."
        )
    try:
        payload = cast(object, yaml.safe_load(settings_file.read_text(encoding="utf-8")))
    except OSError as error:
        raise PricebookConfigError(
            f"Failed to read settings at {settings_file}: {error}. Check file permissions."
        ) from error
    except yaml.YAMLError as error:
        raise PricebookConfigError(
            f"Failed to parse YAML settings at {settings_file}: {error}. Fix YAML syntax."
        ) from error
    if payload is None:
        raise PricebookConfigError(
            f"Settings at {settings_file} are empty. Define at least 'version: 1'."
        )
    return payload


def _expect_mapping(value: object, context: str) -> Mapping[str, object]:
    if isinstance(value, Mapping):
        normalized_mapping = {}
        for key, payload in value.items():
            if not isinstance(key, str):
                raise PricebookConfigError(
                    f"Invalid {context}: expected string keys, got {type(key).__name__}."
                )
            normalized_mapping[key] = payload
        return normalized_mapping
    raise PricebookConfigError(
        f"Invalid {context}: expected object mapping, got {type(value).__name__}."
    )


def _expect_sequence(value: object, context: str) -> Sequence[object]:
    if isinstance(value, Sequence) and not isinstance(value, (str, bytes, bytearray)):
        return value
    raise PricebookConfigError(f"Invalid {context}: expected list, got {type(value).__name__}.")


def _parse_version(root_mapping: Mapping[str, object]) -> int:
    raw_version = root_mapping.get("version")
    if not isinstance(raw_version, int):
        raise PricebookConfigError("Settings field 'version' must be an integer. Set version: 1.")
    if raw_version != 1:
        raise PricebookConfigError(f"Unsupported settings version {raw_version}. Use version: 1.")
    return raw_version


def _parse_vat_percent(root_mapping: Mapping[str, object]) -> Decimal:
    raw_value = root_mapping.get("vat_percent")
    if raw_value is None:
        return Decimal(DEFAULT_VAT_PERCENT)
    if isinstance(raw_value, bool) or not isinstance(raw_value, (int, float, str)):
        raise PricebookConfigError("Settings field 'vat_percent' must be a number.")
    try:
        vat_percent = Decimal(str(raw_value))
    except InvalidOperation as error:
        raise PricebookConfigError(
            f"Settings field 'vat_percent' is not a number: '{raw_value}'."
        ) from error
    if vat_percent < 0 or vat_percent >= 100:
        raise PricebookConfigError(
            f"Settings field 'vat_percent' must be within [0, 100), got {vat_percent}."
        )
    return vat_percent


def _parse_languages(root_mapping: Mapping[str, object]) -> tuple[Language, ...]:
    raw_languages = root_mapping.get("languages")
    if raw_languages is None:
        return DEFAULT_LANGUAGES
    rows = _expect_sequence(raw_languages, "settings languages")
    if len(rows) == 0:
        raise PricebookConfigError("Settings field 'languages' must list at least one language.")
    languages: list[Language] = []
    for row in rows:
        if not isinstance(row, str) or row.strip().lower() not in SUPPORTED_LANGUAGES:
            supported = ", ".join(SUPPORTED_LANGUAGES)
            raise PricebookConfigError(
                f"Unsupported language '{row}' in settings. Use one of: {supported}."
            )
        language = cast(Language, row.strip().lower())
        if language not in languages:
            languages.append(language)
    return tuple(languages)


def _parse_sinks(root_mapping: Mapping[str, object]) -> SinkSettings:
    raw_sinks = root_mapping.get("sinks")
    if raw_sinks is None:
        return SinkSettings()
    sinks_mapping = _expect_mapping(raw_sinks, "settings sinks")
    unknown_keys = sorted(set(sinks_mapping) - {"json", "sql"})
    if unknown_keys:
        raise PricebookConfigError(f"Settings sinks contain unknown fields: {', '.join(unknown_keys)}.")
    return SinkSettings(
        json=_optional_bool(sinks_mapping, "json", True),
        sql=_optional_bool(sinks_mapping, "sql", False),
    )


def _parse_sellers(root_mapping: Mapping[str, object]) -> Mapping[str, str]:
    raw_sellers = root_mapping.get("sellers")
    if raw_sellers is None:
        return {}
    seller_names: dict[str, str] = {}
    for index, row in enumerate(_expect_sequence(raw_sellers, "settings sellers")):
        seller_mapping = _expect_mapping(row, f"settings seller #{index + 1}")
        seller_id = _optional_string(seller_mapping, "id")
        seller_name = _optional_string(seller_mapping, "name")
        if seller_id is None or seller_name is None:
            raise PricebookConfigError(
                f"Settings seller #{index + 1} needs both 'id' and 'name'."
            )
        seller_names[seller_id] = seller_name
    return seller_names


def _parse_discount_options(root_mapping: Mapping[str, object]) -> bool:
    raw_discounts = root_mapping.get("discounts")
    if raw_discounts is None:
        return False
    discounts_mapping = _expect_mapping(raw_discounts, "settings discounts")
    return _optional_bool(discounts_mapping, "require_known_groups", False)


def _optional_string(mapping: Mapping[str, object], field_name: str) -> str | None:
    raw_value = mapping.get(field_name)
    if raw_value is None:
        return None
    if isinstance(raw_value, (str, int)) and not isinstance(raw_value, bool):
        normalized_value = str(raw_value).strip()
        return normalized_value if normalized_value else None
    raise PricebookConfigError(f"Settings field '{field_name}' must be a string when provided.")


def _optional_bool(mapping: Mapping[str, object], field_name: str, default: bool) -> bool:
    raw_value = mapping.get(field_name)
    if raw_value is None:
        return default
    if isinstance(raw_value, bool):
        return raw_value
    raise PricebookConfigError(f"Settings field '{field_name}' must be true or false.")


def _validate_root_keys(root_mapping: Mapping[str, object]) -> None:
    allowed_keys = {
        "version",
        "vat_percent",
        "languages",
        "sinks",
        "database_url",
        "sellers",
        "discounts",
    }
    unknown_keys = sorted(set(root_mapping) - allowed_keys)
    if unknown_keys:
        raise PricebookConfigError(
            f"Settings contain unknown root fields: {', '.join(unknown_keys)}."
        )
