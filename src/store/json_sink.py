"""Document sink writing entities as JSON files.

Each document holds the entities of one kind and partition keyed by
their serialized key. Writes overlay the documents already on disk, so
the last write for a key wins across runs. A buyer's discount document
is replaced whole once the buyer is cleared.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, cast

from core.errors import SinkError
from core.logging_config import get_logger
from core.types import EntityKind, Partition
from model.builder import ModelBuilder, ModelSnapshot
from model.keys import BuyerKey
from store.entity_payload import EntityPayload, entity_from_payload

_LOGGER = get_logger(__name__)

_SINK_NAME = "json"
_SELLERS_DIR_NAME = "sellers"


class JsonDocumentSink:
    """JSON document store rooted at one directory."""

    name = _SINK_NAME

    def __init__(self, root: Path) -> None:
        self._root = root
        self._documents: dict[Path, dict[str, Any]] = {}
        self._dirty: set[Path] = set()
        self._pass_entities: dict[Path, int] = {}

    @property
    def root(self) -> Path:
        return self._root

    def begin(self) -> None:
        self._documents = {}
        self._dirty = set()
        self._pass_entities = {}

    def write(self, payload: EntityPayload) -> None:
        document_path = self._document_path(payload)
        document = self._load_document(document_path, payload.kind, payload.partition)
        document["entities"][payload.key] = dict(payload.fields)
        self._dirty.add(document_path)
        self._pass_entities[document_path] = self._pass_entities.get(document_path, 0) + 1

    def clear_buyer_discounts(self, buyer_key: BuyerKey) -> None:
        document_path = self._buyer_dir(buyer_key) / "discounts.json"
        self._documents[document_path] = _empty_document("discount_group", None)
        self._dirty.add(document_path)

    def commit(self) -> None:
        """Write every changed document, continuing past documents that fail.

        Raises:
            SinkError: If any document could not be written; carries the
                number of this pass's entities those documents held.
        """
        failed_paths: list[str] = []
        failed_entities = 0
        for document_path in sorted(self._dirty):
            document = self._documents[document_path]
            try:
                _write_document(document_path, document)
            except OSError as error:
                _LOGGER.warning(
                    "json_document_failed", document_path=str(document_path), error=str(error)
                )
                failed_paths.append(str(document_path))
                failed_entities += self._pass_entities.get(document_path, 0)
        written_documents = len(self._dirty) - len(failed_paths)
        _LOGGER.info("json_documents_written", root=str(self._root), documents=written_documents)
        self._dirty = set()
        self._pass_entities = {}
        if failed_paths:
            raise SinkError(
                _SINK_NAME,
                f"Failed to write {len(failed_paths)} document(s): {', '.join(failed_paths)}. "
                "Check that the document root is writable.",
                failed_entities=failed_entities,
            )

    def load_snapshot(self) -> ModelSnapshot:
        """Read every stored document back into a snapshot.

        Returns:
            Snapshot of persisted entities; empty when the root does not exist.

        Raises:
            SinkError: If a document is unreadable or malformed.
        """
        builder = ModelBuilder()
        if not self._root.exists():
            return builder.snapshot()
        for document_path in sorted(self._root.rglob("*.json")):
            document = _read_document(document_path)
            kind = cast(EntityKind, document["kind"])
            partition = cast("Partition | None", document.get("partition"))
            for key, fields in document["entities"].items():
                if not isinstance(fields, dict):
                    raise SinkError(
                        _SINK_NAME, f"Document {document_path} entity '{key}' is not an object."
                    )
                payload = EntityPayload(kind=kind, partition=partition, key=key, fields=fields)
                try:
                    builder.put(entity_from_payload(payload))
                except ValueError as error:
                    raise SinkError(
                        _SINK_NAME, f"Document {document_path} holds an invalid entity: {error}"
                    ) from error
        return builder.snapshot()

    def _document_path(self, payload: EntityPayload) -> Path:
        fields = payload.fields
        if payload.kind == "seller":
            return self._root / "sellers.json"
        if payload.kind == "product":
            return self._root / "products.json"
        seller_dir = self._root / _SELLERS_DIR_NAME / _path_segment(fields.get("seller_id"))
        if payload.kind == "seller_product":
            return seller_dir / "products" / f"{payload.partition}.json"
        if payload.kind == "translation":
            language = _path_segment(fields.get("language"))
            return seller_dir / "products" / f"{payload.partition}.{language}.json"
        if payload.kind == "price":
            return seller_dir / "prices" / f"{payload.partition}.json"
        if payload.kind == "search":
            return seller_dir / "search" / f"{payload.partition}.json"
        buyer_key = BuyerKey(
            buyer_id=_path_segment(fields.get("buyer_id")),
            seller_id=_path_segment(fields.get("seller_id")),
        )
        if payload.kind == "buyer":
            return self._buyer_dir(buyer_key) / "buyer.json"
        return self._buyer_dir(buyer_key) / "discounts.json"

    def _buyer_dir(self, buyer_key: BuyerKey) -> Path:
        return (
            self._root
            / _SELLERS_DIR_NAME
            / _path_segment(buyer_key.seller_id)
            / "buyers"
            / _path_segment(buyer_key.buyer_id)
        )

    def _load_document(
        self,
        document_path: Path,
        kind: EntityKind,
        partition: Partition | None,
    ) -> dict[str, Any]:
        document = self._documents.get(document_path)
        if document is None:
            if document_path.exists():
                document = _read_document(document_path)
            else:
                document = _empty_document(kind, partition)
            self._documents[document_path] = document
        return document


def _empty_document(kind: EntityKind, partition: Partition | None) -> dict[str, Any]:
    return {"kind": kind, "partition": partition, "entities": {}}


def _read_document(document_path: Path) -> dict[str, Any]:
    """Read and validate one entity document.

    Raises:
        SinkError: If the document is unreadable or malformed.
    """
    try:
        payload = json.loads(document_path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as error:
        raise SinkError(
            _SINK_NAME,
            f"Failed to read document {document_path}: {error}. "
            "Remove or repair the document and re-run the import.",
        ) from error
    if (
        not isinstance(payload, dict)
        or not isinstance(payload.get("kind"), str)
        or not isinstance(payload.get("entities"), dict)
    ):
        raise SinkError(
            _SINK_NAME,
            f"Document {document_path} is malformed: expected kind and entities fields.",
        )
    return payload


def _path_segment(raw_value: object) -> str:
    """Validate an identifier used as a directory or file name.

    Raises:
        SinkError: If the identifier is missing or not a safe path segment.
    """
    segment = "" if raw_value is None else str(raw_value)
    if not segment or segment in (".", "..") or "/" in segment or "\\" in segment:
        raise SinkError(_SINK_NAME, f"Identifier '{segment}' cannot be used as a document path.")
    return segment


def _write_document(document_path: Path, document: dict[str, Any]) -> None:
    """Write one document through a temporary file replaced into place."""
    document_path.parent.mkdir(parents=True, exist_ok=True)
    temporary_path = document_path.with_name(f"{document_path.name}.tmp")
    temporary_path.write_text(
        json.dumps(document, indent=2, sort_keys=True) + "\n", encoding="utf-8"
    )
    temporary_path.replace(document_path)
