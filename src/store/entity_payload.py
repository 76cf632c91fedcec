"""Flat, JSON-safe payloads for model entities.

This module centralizes entity serialization for both sinks. Structured
keys are flattened into their component fields plus the serialized
string key; decimals travel as strings so zero and absent stay distinct
and exact.
"""

from __future__ import annotations

from dataclasses import dataclass, fields
from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Any, Mapping, cast

from core.record_types import PackagingTier
from core.types import PARTITIONED_ENTITY_KINDS, EntityKind, Language, Partition
from model.entities import (
    Buyer,
    DiscountGroup,
    Entity,
    Price,
    Product,
    ProductTranslation,
    SearchEntry,
    Seller,
    SellerProduct,
    entity_partition,
)
from model.keys import (
    BuyerKey,
    DiscountGroupKey,
    EntityKey,
    SellerProductKey,
    TranslationKey,
    serialize_key,
)
from records.layouts import PACKAGING_FIELD_PAIRS

DECIMAL_FIELD_NAMES = frozenset(
    {
        "unit_weight",
        "unit_volume",
        "usables_in_unit",
        "unit_price",
        "vat_percent",
        "percent_1",
        "percent_2",
        *(name for pair in PACKAGING_FIELD_PAIRS for name in pair),
    }
)
DATE_FIELD_NAMES = frozenset({"effective_date"})
INTEGER_FIELD_NAMES = frozenset(
    {"typical_packaging", "delivery_in_weeks", "units_included", "language_slot"}
)
BOOLEAN_FIELD_NAMES = frozenset({"stock_item"})

_ENTITY_TYPES: dict[EntityKind, type] = {
    "seller": Seller,
    "product": Product,
    "seller_product": SellerProduct,
    "translation": ProductTranslation,
    "price": Price,
    "search": SearchEntry,
    "buyer": Buyer,
    "discount_group": DiscountGroup,
}


@dataclass(frozen=True)
class EntityPayload:
    """Entity shaped for a sink.

    Attributes:
        kind: Entity kind.
        partition: Partition of partitioned kinds, else None.
        key: Serialized composite key.
        fields: Flat JSON-safe field values, key components included.
    """

    kind: EntityKind
    partition: Partition | None
    key: str
    fields: Mapping[str, object]


def entity_to_payload(entity: Entity) -> EntityPayload:
    """Serialize an entity into a flat payload.

    Args:
        entity: Model entity.

    Returns:
        Payload with JSON-safe field values.
    """
    values = _key_values(entity.key)
    for entity_field in fields(entity):
        if entity_field.name in ("key", "partition"):
            continue
        value = getattr(entity, entity_field.name)
        if entity_field.name == "packaging":
            values.update(_packaging_values(value))
        elif entity_field.name == "percent_tiers":
            values["percent_1"] = _encode_scalar(value[0])
            values["percent_2"] = _encode_scalar(value[1])
        else:
            values[entity_field.name] = _encode_scalar(value)
    return EntityPayload(
        kind=entity.kind,
        partition=entity_partition(entity),
        key=serialize_key(entity.key),
        fields=values,
    )


def entity_from_payload(payload: EntityPayload) -> Entity:
    """Deserialize a payload back into its entity.

    Args:
        payload: Payload produced by ``entity_to_payload`` or read from a sink.

    Returns:
        Typed entity.

    Raises:
        ValueError: If the payload kind, key fields, or values are invalid.
    """
    entity_type = _ENTITY_TYPES.get(payload.kind)
    if entity_type is None:
        raise ValueError(f"Unknown entity kind '{payload.kind}'.")
    if payload.kind in PARTITIONED_ENTITY_KINDS and payload.partition is None:
        raise ValueError(f"Payload '{payload.key}' of kind {payload.kind} needs a partition.")
    values = payload.fields
    arguments: dict[str, Any] = {}
    try:
        for entity_field in fields(entity_type):
            if entity_field.name == "key":
                arguments["key"] = _decode_key(payload.kind, values)
            elif entity_field.name == "partition":
                arguments["partition"] = payload.partition
            elif entity_field.name == "packaging":
                arguments["packaging"] = _decode_packaging(values)
            elif entity_field.name == "percent_tiers":
                arguments["percent_tiers"] = (
                    _decode_scalar("percent_1", values.get("percent_1")),
                    _decode_scalar("percent_2", values.get("percent_2")),
                )
            else:
                arguments[entity_field.name] = _decode_scalar(
                    entity_field.name, values.get(entity_field.name)
                )
    except (KeyError, ValueError, InvalidOperation) as error:
        raise ValueError(
            f"Invalid {payload.kind} payload '{payload.key}': {error!r}"
        ) from error
    return cast(Entity, entity_type(**arguments))


def _key_values(key: EntityKey) -> dict[str, object]:
    if isinstance(key, str):
        return {}
    if isinstance(key, TranslationKey):
        return {
            "seller_id": key.seller_product.seller_id,
            "product_id": key.seller_product.product_id,
            "language": key.language,
            "language_slot": key.language_slot,
        }
    return {key_field.name: getattr(key, key_field.name) for key_field in fields(key)}


def _decode_key(kind: EntityKind, values: Mapping[str, object]) -> EntityKey:
    if kind in ("seller_product", "price"):
        return SellerProductKey(
            seller_id=str(values["seller_id"]), product_id=str(values["product_id"])
        )
    if kind in ("translation", "search"):
        return TranslationKey(
            seller_product=SellerProductKey(
                seller_id=str(values["seller_id"]), product_id=str(values["product_id"])
            ),
            language=cast(Language, str(values["language"])),
        )
    if kind == "buyer":
        return BuyerKey(buyer_id=str(values["buyer_id"]), seller_id=str(values["seller_id"]))
    return DiscountGroupKey(
        buyer_id=str(values["buyer_id"]),
        seller_id=str(values["seller_id"]),
        discount_group=str(values["discount_group"]),
    )


def _packaging_values(tiers: tuple[PackagingTier, ...]) -> dict[str, object]:
    values: dict[str, object] = {}
    for (quantity_name, discount_name), tier in zip(PACKAGING_FIELD_PAIRS, tiers):
        values[quantity_name] = _encode_scalar(tier.quantity)
        values[discount_name] = _encode_scalar(tier.discount_percent)
    return values


def _decode_packaging(values: Mapping[str, object]) -> tuple[PackagingTier, ...]:
    return tuple(
        PackagingTier(
            quantity=_decode_scalar(quantity_name, values.get(quantity_name)),
            discount_percent=_decode_scalar(discount_name, values.get(discount_name)),
        )
        for quantity_name, discount_name in PACKAGING_FIELD_PAIRS
    )


def _encode_scalar(value: object) -> object:
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, date):
        return value.isoformat()
    return value


def _decode_scalar(field_name: str, raw_value: object) -> Any:
    if raw_value is None:
        return None
    if field_name in DECIMAL_FIELD_NAMES:
        return Decimal(str(raw_value))
    if field_name in DATE_FIELD_NAMES:
        if isinstance(raw_value, date):
            return raw_value
        return date.fromisoformat(str(raw_value))
    if field_name in INTEGER_FIELD_NAMES:
        return int(cast(Any, raw_value))
    if field_name in BOOLEAN_FIELD_NAMES:
        return bool(raw_value)
    return str(raw_value)
