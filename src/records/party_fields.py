"""Field extraction for party header lines."""

from __future__ import annotations

from core.constants import BUYER_ROLE_CODE, SELLER_ROLE_CODE
from core.errors import FieldExtractionError
from core.record_types import ClassifiedLine, ExtractionResult, PartyRecord
from core.types import PartyRole
from records.field_layout import slice_fields
from records.field_values import optional_text, require_identifier
from records.layouts import PARTY_LAYOUT

_ROLES_BY_CODE: dict[str, PartyRole] = {
    SELLER_ROLE_CODE: "seller",
    BUYER_ROLE_CODE: "buyer",
}


def extract_party(line: ClassifiedLine) -> ExtractionResult:
    """Extract the seller or buyer header of a feed.

    Raises:
        FieldExtractionError: If the role is unknown or the party id is missing.
    """
    values = slice_fields(line.text, PARTY_LAYOUT)
    role = _ROLES_BY_CODE.get(values["role"].upper())
    if role is None:
        raise FieldExtractionError(
            "role",
            f"unknown party role '{values['role']}', expected "
            f"{SELLER_ROLE_CODE} or {BUYER_ROLE_CODE}",
        )
    record = PartyRecord(
        role=role,
        party_id=require_identifier(values["party_id"], "party_id"),
        party_code=optional_text(values["party_code"]),
    )
    return ExtractionResult(record=record)
