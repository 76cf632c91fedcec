"""Structured composite keys and their string serialization.

Keys stay typed tuples inside the model. ``serialize_key`` is the only
place they are flattened into the concatenated string form that
string-keyed storage joins on.
"""

from __future__ import annotations

from dataclasses import dataclass
import hashlib
from typing import Union

from core.constants import HASH_ALGORITHM, LANGUAGE_SLOTS, PUBLIC_ID_LENGTH
from core.types import Language


@dataclass(frozen=True)
class SellerProductKey:
    """Seller product and price key: seller id plus product id."""

    seller_id: str
    product_id: str


@dataclass(frozen=True)
class TranslationKey:
    """Seller product key suffixed with the language slot."""

    seller_product: SellerProductKey
    language: Language

    @property
    def language_slot(self) -> int:
        """Numeric slot of the language (fin=1, swe=2, eng=3, nor=4)."""
        return LANGUAGE_SLOTS[self.language]


@dataclass(frozen=True)
class BuyerKey:
    """Buyer account key, scoped to the seller that issued it."""

    buyer_id: str
    seller_id: str


@dataclass(frozen=True)
class DiscountGroupKey:
    """Buyer discount terms for one seller discount-group label."""

    buyer_id: str
    seller_id: str
    discount_group: str

    @property
    def buyer(self) -> BuyerKey:
        """Buyer account the terms belong to."""
        return BuyerKey(buyer_id=self.buyer_id, seller_id=self.seller_id)


EntityKey = Union[str, SellerProductKey, TranslationKey, BuyerKey, DiscountGroupKey]


def serialize_key(key: EntityKey) -> str:
    """Flatten a structured key into its storage string.

    Components are concatenated without separators. Identifier fields
    never contain whitespace, and the seller id is the fixed-width
    organization number, so the concatenation stays unambiguous.

    Args:
        key: Plain id or structured composite key.

    Returns:
        Concatenated string key.
    """
    if isinstance(key, str):
        return key
    if isinstance(key, SellerProductKey):
        return f"{key.seller_id}{key.product_id}"
    if isinstance(key, TranslationKey):
        return f"{serialize_key(key.seller_product)}{key.language_slot}"
    if isinstance(key, BuyerKey):
        return f"{key.buyer_id}{key.seller_id}"
    return f"{key.buyer_id}{key.seller_id}{key.discount_group}"


def build_public_id(key: BuyerKey) -> str:
    """Derive the stable public token exposed instead of the buyer number.

    Args:
        key: Buyer account key.

    Returns:
        Lowercase hex token, identical across runs for the same buyer.
    """
    digest = hashlib.new(HASH_ALGORITHM)
    digest.update(f"{key.buyer_id}|{key.seller_id}".encode("utf-8"))
    return digest.hexdigest()[:PUBLIC_ID_LENGTH]
