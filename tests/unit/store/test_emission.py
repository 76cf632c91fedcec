"""Unit tests for the emission gateway."""

from __future__ import annotations

from decimal import Decimal

from core.errors import SinkError
from core.types import ENTITY_EMISSION_ORDER
from model.builder import ModelBuilder
from model.entities import Buyer, DiscountGroup, Product, Seller
from model.keys import BuyerKey, DiscountGroupKey
from store.emission import emit_model
from store.entity_payload import EntityPayload

SELLER_ID = "0123456789"


class RecordingSink:
    """In-memory sink recording the calls it receives."""

    def __init__(self, name: str = "recording", reject_kind: str | None = None) -> None:
        self.name = name
        self.reject_kind = reject_kind
        self.calls: list[str] = []
        self.fail_commit = False
        self.lost_on_commit = 0

    def begin(self) -> None:
        self.calls.append("begin")

    def write(self, payload: EntityPayload) -> None:
        if payload.kind == self.reject_kind:
            raise SinkError(self.name, f"{payload.kind} rejected")
        self.calls.append(payload.kind)

    def clear_buyer_discounts(self, buyer_key: BuyerKey) -> None:
        self.calls.append(f"clear:{buyer_key.buyer_id}")

    def commit(self) -> None:
        if self.fail_commit:
            raise SinkError(self.name, "disk full", failed_entities=self.lost_on_commit)
        self.calls.append("commit")


def _builder() -> ModelBuilder:
    builder = ModelBuilder()
    builder.put(Product(product_id="1001", tax_class="024"))
    builder.put(Product(product_id="1002", tax_class=None))
    builder.put(Seller(seller_id=SELLER_ID, name="Onninen"))
    builder.replace_buyer_discounts(
        Buyer(key=BuyerKey("B100", SELLER_ID), public_id="token", vat_percent=Decimal("25.5")),
        [
            DiscountGroup(
                key=DiscountGroupKey("B100", SELLER_ID, "I8631B"),
                price_group="01",
                percent_tiers=(Decimal("55.00"), None),
                group_name=None,
                range_start=None,
                range_end=None,
                partition_hint="iv",
            )
        ],
    )
    return builder


def test_emission_follows_dependency_order() -> None:
    """Kinds should be written in dependency order, clearing before discounts."""
    sink = RecordingSink()

    emit_model(_builder().snapshot(), [sink])

    assert sink.calls == [
        "begin",
        "seller",
        "product",
        "product",
        "buyer",
        "clear:B100",
        "discount_group",
        "commit",
    ]


def test_emission_order_lists_shared_kinds_first() -> None:
    """Sellers and products should precede the kinds that reference them."""
    assert ENTITY_EMISSION_ORDER.index("seller") < ENTITY_EMISSION_ORDER.index("buyer")


def test_rejected_entities_are_counted_and_skipped() -> None:
    """One rejected kind should not stop the remaining entities."""
    sink = RecordingSink(reject_kind="product")

    report = emit_model(_builder().snapshot(), [sink])

    assert (report.sinks[0].written, report.sinks[0].failed) == (3, 2)


def test_failing_sink_does_not_affect_other_sinks() -> None:
    """Rejections in one sink should leave the other sink's counts intact."""
    failing = RecordingSink(name="failing", reject_kind="seller")
    healthy = RecordingSink(name="healthy")

    report = emit_model(_builder().snapshot(), [failing, healthy])

    assert [(sink.sink_name, sink.written, sink.failed) for sink in report.sinks] == [
        ("failing", 4, 1),
        ("healthy", 5, 0),
    ]


def test_commit_failure_marks_pass_uncommitted() -> None:
    """A failed commit should be reported without counting entity failures."""
    sink = RecordingSink()
    sink.fail_commit = True

    report = emit_model(_builder().snapshot(), [sink])

    assert (report.sinks[0].committed, report.failed) == (False, 0)


def test_entities_lost_on_commit_move_from_written_to_failed() -> None:
    """Entities a failed commit dropped should be reported as failed."""
    sink = RecordingSink()
    sink.fail_commit = True
    sink.lost_on_commit = 2

    report = emit_model(_builder().snapshot(), [sink])

    assert (report.sinks[0].written, report.sinks[0].failed) == (3, 2)
