"""Emission of accumulated entities to storage sinks.

Entities are written kind by kind in dependency order. A sink rejecting
one entity skips that entity for that sink only; other entities and
other sinks are unaffected.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol, Sequence

from core.constants import MAX_LINE_DIAGNOSTICS
from core.errors import SinkError
from core.logging_config import get_logger
from core.types import ENTITY_EMISSION_ORDER
from model.builder import ModelSnapshot
from model.entities import Buyer
from model.keys import BuyerKey
from store.entity_payload import EntityPayload, entity_to_payload

_LOGGER = get_logger(__name__)


class EntitySink(Protocol):
    """Storage target accepting entity payloads."""

    name: str

    def begin(self) -> None:
        """Start one emission pass."""

    def write(self, payload: EntityPayload) -> None:
        """Insert or replace one entity.

        Raises:
            SinkError: If the sink rejects the entity.
        """

    def clear_buyer_discounts(self, buyer_key: BuyerKey) -> None:
        """Drop every stored discount group of one buyer."""

    def commit(self) -> None:
        """Make the pass durable."""


@dataclass(frozen=True)
class SinkEmission:
    """Outcome of one emission pass on one sink.

    Attributes:
        sink_name: Sink identifier.
        written: Entities accepted by the sink.
        failed: Entities the sink rejected or lost on commit.
        committed: Whether the whole pass was made durable.
        failures: Bounded list of rejection messages.
    """

    sink_name: str
    written: int
    failed: int
    committed: bool
    failures: tuple[str, ...] = ()


@dataclass(frozen=True)
class EmissionReport:
    """Per-sink outcomes of one emission."""

    sinks: tuple[SinkEmission, ...]

    @property
    def failed(self) -> int:
        """Rejected entities summed across sinks."""
        return sum(sink.failed for sink in self.sinks)


def emit_model(snapshot: ModelSnapshot, sinks: Sequence[EntitySink]) -> EmissionReport:
    """Write every entity of a snapshot to each sink.

    Before a buyer's discount groups are written, the sink drops the
    buyer's stored groups, so the snapshot's set replaces them whole.

    Args:
        snapshot: Accumulated model state.
        sinks: Sinks to write to.

    Returns:
        Per-sink written and failed counts.
    """
    return EmissionReport(sinks=tuple(_emit_to_sink(snapshot, sink) for sink in sinks))


def _emit_to_sink(snapshot: ModelSnapshot, sink: EntitySink) -> SinkEmission:
    try:
        sink.begin()
    except SinkError as error:
        _LOGGER.warning("sink_begin_failed", sink_name=sink.name, error=str(error))
        return SinkEmission(
            sink_name=sink.name, written=0, failed=0, committed=False, failures=(str(error),)
        )
    written = 0
    failed = 0
    failures: list[str] = []
    for kind in ENTITY_EMISSION_ORDER:
        for entity in snapshot.entities(kind):
            payload = entity_to_payload(entity)
            try:
                sink.write(payload)
                if isinstance(entity, Buyer):
                    sink.clear_buyer_discounts(entity.key)
            except SinkError as error:
                _record_failure(failures, sink.name, payload, error)
                failed += 1
                continue
            written += 1
    committed, lost = _commit(sink, failures)
    written -= lost
    failed += lost
    _LOGGER.info(
        "sink_emission_completed",
        sink_name=sink.name,
        written=written,
        failed=failed,
        committed=committed,
    )
    return SinkEmission(
        sink_name=sink.name,
        written=written,
        failed=failed,
        committed=committed,
        failures=tuple(failures[:MAX_LINE_DIAGNOSTICS]),
    )


def _commit(sink: EntitySink, failures: list[str]) -> tuple[bool, int]:
    """Commit the pass; return whether it held and how many written entities it lost."""
    try:
        sink.commit()
    except SinkError as error:
        _LOGGER.warning(
            "sink_commit_failed",
            sink_name=sink.name,
            failed_entities=error.failed_entities,
            error=str(error),
        )
        failures.append(str(error))
        return False, error.failed_entities
    return True, 0


def _record_failure(
    failures: list[str],
    sink_name: str,
    payload: EntityPayload,
    error: SinkError,
) -> None:
    _LOGGER.warning(
        "sink_entity_failed",
        sink_name=sink_name,
        kind=payload.kind,
        partition=payload.partition,
        key=payload.key,
        error=str(error),
    )
    failures.append(f"{payload.kind} {payload.key}: {error}")
