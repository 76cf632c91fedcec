"""In-memory accumulation of typed entities per partition and kind.

A builder is owned by the caller of an import run. Mutations are
serialized by a lock so concurrent callers never lose updates, and the
last entity put for a key replaces the previous one in full.
"""

from __future__ import annotations

from dataclasses import dataclass
import threading
from types import MappingProxyType
from typing import Iterable, Iterator, Mapping, Optional

from core.logging_config import get_logger
from core.types import PARTITIONED_ENTITY_KINDS, EntityKind, Partition
from model.entities import Buyer, DiscountGroup, Entity, entity_partition
from model.keys import BuyerKey, EntityKey

_LOGGER = get_logger(__name__)

TableId = tuple[EntityKind, Optional[Partition]]


@dataclass(frozen=True)
class ModelSnapshot:
    """Immutable view of accumulated entities.

    Attributes:
        tables: Entities keyed by structured key, per (kind, partition).
    """

    tables: Mapping[TableId, Mapping[EntityKey, Entity]]

    def entities(self, kind: EntityKind, partition: Partition | None = None) -> Iterator[Entity]:
        """Iterate entities of a kind.

        For partitioned kinds, ``partition=None`` walks every partition.
        """
        for table_id in _matching_tables(self.tables, kind, partition):
            yield from self.tables[table_id].values()

    def get(
        self,
        kind: EntityKind,
        key: EntityKey,
        partition: Partition | None = None,
    ) -> Entity | None:
        """Return one entity by key, or None when absent."""
        table = self.tables.get((kind, partition))
        if table is None:
            return None
        return table.get(key)

    def partitions(self, kind: EntityKind) -> tuple[Partition, ...]:
        """Partitions holding at least one entity of the kind."""
        return _partitions_of(self.tables, kind)

    def count(self, kind: EntityKind, partition: Partition | None = None) -> int:
        """Number of entities of a kind."""
        return sum(
            len(self.tables[table_id])
            for table_id in _matching_tables(self.tables, kind, partition)
        )


class ModelBuilder:
    """Accumulates entities with last-write-wins replacement."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._tables: dict[TableId, dict[EntityKey, Entity]] = {}

    def put(self, entity: Entity) -> None:
        """Insert or fully replace the entity stored under its key."""
        table_id = (entity.kind, entity_partition(entity))
        with self._lock:
            self._tables.setdefault(table_id, {})[entity.key] = entity

    def put_if_absent(self, entity: Entity) -> bool:
        """Insert the entity unless its key is already present.

        Returns:
            True when the entity was inserted.
        """
        table_id = (entity.kind, entity_partition(entity))
        with self._lock:
            table = self._tables.setdefault(table_id, {})
            if entity.key in table:
                return False
            table[entity.key] = entity
            return True

    def replace_buyer_discounts(self, buyer: Buyer, groups: Iterable[DiscountGroup]) -> int:
        """Swap a buyer's full discount-group set in one step.

        Groups of other buyers are untouched. Groups belonging to another
        buyer than ``buyer`` are rejected.

        Args:
            buyer: Buyer account the set belongs to.
            groups: Complete new set of discount groups.

        Returns:
            Number of groups now held for the buyer.

        Raises:
            ValueError: If a group's key names another buyer.
        """
        staged = {}
        for group in groups:
            if group.key.buyer != buyer.key:
                raise ValueError(
                    f"Discount group {group.key} does not belong to buyer {buyer.key}."
                )
            staged[group.key] = group
        with self._lock:
            previous = self._tables.get(("discount_group", None), {})
            replaced = {
                key: group
                for key, group in previous.items()
                if isinstance(group, DiscountGroup) and group.key.buyer != buyer.key
            }
            replaced.update(staged)
            self._tables[("discount_group", None)] = replaced
            self._tables.setdefault(("buyer", None), {})[buyer.key] = buyer
        _LOGGER.debug(
            "buyer_discounts_replaced",
            buyer_id=buyer.key.buyer_id,
            seller_id=buyer.key.seller_id,
            group_count=len(staged),
        )
        return len(staged)

    def replace_kind(self, kind: EntityKind, entities: Iterable[Entity]) -> int:
        """Swap every entity of one kind, across all partitions, in one step.

        Args:
            kind: Entity kind to replace.
            entities: Complete new set of entities of that kind.

        Returns:
            Number of entities now held for the kind.

        Raises:
            ValueError: If an entity is of another kind.
        """
        staged: dict[TableId, dict[EntityKey, Entity]] = {}
        for entity in entities:
            if entity.kind != kind:
                raise ValueError(f"Entity {entity.key} is a {entity.kind}, not a {kind}.")
            staged.setdefault((kind, entity_partition(entity)), {})[entity.key] = entity
        with self._lock:
            for table_id in [table_id for table_id in self._tables if table_id[0] == kind]:
                del self._tables[table_id]
            self._tables.update(staged)
        return sum(len(table) for table in staged.values())

    def buyer_discounts(self, buyer_key: BuyerKey) -> tuple[DiscountGroup, ...]:
        """Discount groups currently held for one buyer."""
        return tuple(
            entity
            for entity in self.entities("discount_group")
            if isinstance(entity, DiscountGroup) and entity.key.buyer == buyer_key
        )

    def entities(self, kind: EntityKind, partition: Partition | None = None) -> Iterator[Entity]:
        """Iterate a point-in-time copy of the entities of a kind."""
        with self._lock:
            rows = [
                entity
                for table_id in _matching_tables(self._tables, kind, partition)
                for entity in self._tables[table_id].values()
            ]
        return iter(rows)

    def get(
        self,
        kind: EntityKind,
        key: EntityKey,
        partition: Partition | None = None,
    ) -> Entity | None:
        """Return one entity by key, or None when absent."""
        with self._lock:
            table = self._tables.get((kind, partition))
            return table.get(key) if table is not None else None

    def partitions(self, kind: EntityKind) -> tuple[Partition, ...]:
        """Partitions holding at least one entity of the kind."""
        with self._lock:
            return _partitions_of(self._tables, kind)

    def snapshot(self) -> ModelSnapshot:
        """Freeze the current state into an immutable snapshot."""
        with self._lock:
            frozen = {
                table_id: MappingProxyType(dict(table))
                for table_id, table in self._tables.items()
            }
        return ModelSnapshot(tables=MappingProxyType(frozen))

    def load(self, snapshot: ModelSnapshot) -> None:
        """Seed the builder from previously persisted state.

        Loaded entities obey the same replacement rule as imported ones.
        """
        loaded = 0
        with self._lock:
            for table_id, table in snapshot.tables.items():
                self._tables.setdefault(table_id, {}).update(table)
                loaded += len(table)
        _LOGGER.info("model_loaded", entity_count=loaded)


def _matching_tables(
    tables: Mapping[TableId, Mapping[EntityKey, Entity]],
    kind: EntityKind,
    partition: Partition | None,
) -> list[TableId]:
    if partition is not None or kind not in PARTITIONED_ENTITY_KINDS:
        table_id = (kind, partition)
        return [table_id] if table_id in tables else []
    return [table_id for table_id in tables if table_id[0] == kind]


def _partitions_of(
    tables: Mapping[TableId, Mapping[EntityKey, Entity]],
    kind: EntityKind,
) -> tuple[Partition, ...]:
    return tuple(
        partition
        for table_kind, partition in tables
        if table_kind == kind and partition is not None and tables[(table_kind, partition)]
    )
