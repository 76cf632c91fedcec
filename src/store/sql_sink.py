"""Relational sink on SQLAlchemy Core.

Tables are created on first use from the payload field names. Every
entity is upserted on its serialized key inside its own savepoint, so
one rejected row leaves the rest of the pass intact.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Any

from sqlalchemy import (
    Boolean,
    Column,
    Date,
    Integer,
    MetaData,
    Numeric,
    String,
    Table,
    Text,
    create_engine,
    delete,
    event,
    inspect,
)
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.engine import Connection, Engine, Transaction
from sqlalchemy.exc import SQLAlchemyError

from core.errors import PricebookConfigError, SinkError
from core.logging_config import get_logger
from core.types import EntityKind, Partition
from model.keys import BuyerKey
from store.entity_payload import (
    BOOLEAN_FIELD_NAMES,
    DATE_FIELD_NAMES,
    DECIMAL_FIELD_NAMES,
    INTEGER_FIELD_NAMES,
    EntityPayload,
)

_LOGGER = get_logger(__name__)

_SINK_NAME = "sql"
_KEY_COLUMN = "id"
_LONG_TEXT_FIELD_NAMES = frozenset({"body"})
_DISCOUNTS_TABLE = "discounts"
_SHARED_TABLE_NAMES: dict[EntityKind, str] = {
    "seller": "sellers",
    "product": "products",
    "buyer": "buyers",
    "discount_group": _DISCOUNTS_TABLE,
}
_INSERT_BUILDERS = {
    "sqlite": sqlite.insert,
    "postgresql": postgresql.insert,
}


class SqlEntitySink:
    """Upserting relational sink."""

    name = _SINK_NAME

    def __init__(self, database_url: str) -> None:
        self._engine = _create_engine(database_url)
        self._insert = _INSERT_BUILDERS[self._engine.dialect.name]
        self._metadata = MetaData()
        self._connection: Connection | None = None
        self._transaction: Transaction | None = None
        self._pass_written = 0

    @property
    def engine(self) -> Engine:
        return self._engine

    def begin(self) -> None:
        try:
            self._connection = self._engine.connect()
            self._transaction = self._connection.begin()
            self._pass_written = 0
        except SQLAlchemyError as error:
            raise SinkError(
                _SINK_NAME,
                f"Failed to open database {self._engine.url}: {error}. "
                "Check database_url in the settings file.",
            ) from error

    def write(self, payload: EntityPayload) -> None:
        connection = self._require_connection()
        try:
            table_name = table_name_for(payload.kind, payload.partition)
        except ValueError as error:
            raise SinkError(_SINK_NAME, f"Cannot place {payload.key}: {error}") from error
        try:
            table = self._ensure_table(connection, table_name, payload)
            row = _row_values(table, payload)
            statement = self._insert(table).values(**row)
            statement = statement.on_conflict_do_update(
                index_elements=[table.c[_KEY_COLUMN]],
                set_={name: statement.excluded[name] for name in row if name != _KEY_COLUMN},
            )
            with connection.begin_nested():
                connection.execute(statement)
            self._pass_written += 1
        except (SQLAlchemyError, ValueError, ArithmeticError) as error:
            raise SinkError(
                _SINK_NAME, f"Failed to upsert {payload.key} into {table_name}: {error}"
            ) from error

    def clear_buyer_discounts(self, buyer_key: BuyerKey) -> None:
        connection = self._require_connection()
        try:
            if not inspect(connection).has_table(_DISCOUNTS_TABLE):
                return
            table = self._metadata.tables.get(_DISCOUNTS_TABLE)
            if table is None:
                table = Table(_DISCOUNTS_TABLE, self._metadata, autoload_with=connection)
            with connection.begin_nested():
                connection.execute(
                    delete(table).where(
                        table.c.buyer_id == buyer_key.buyer_id,
                        table.c.seller_id == buyer_key.seller_id,
                    )
                )
        except SQLAlchemyError as error:
            raise SinkError(
                _SINK_NAME,
                f"Failed to clear discounts of buyer {buyer_key.buyer_id}: {error}",
            ) from error

    def commit(self) -> None:
        connection = self._require_connection()
        try:
            if self._transaction is not None:
                self._transaction.commit()
        except SQLAlchemyError as error:
            raise SinkError(
                _SINK_NAME,
                f"Failed to commit database pass: {error}",
                failed_entities=self._pass_written,
            ) from error
        finally:
            connection.close()
            self._connection = None
            self._transaction = None
        _LOGGER.info("sql_pass_committed", database_url=str(self._engine.url))

    def _require_connection(self) -> Connection:
        if self._connection is None:
            raise SinkError(_SINK_NAME, "No open database pass. Call begin() before writing.")
        return self._connection

    def _ensure_table(self, connection: Connection, table_name: str, payload: EntityPayload) -> Table:
        table = self._metadata.tables.get(table_name)
        if table is not None:
            return table
        if inspect(connection).has_table(table_name):
            return Table(table_name, self._metadata, autoload_with=connection)
        columns = [Column(_KEY_COLUMN, String(128), primary_key=True)]
        columns.extend(Column(name, _column_type(name)) for name in payload.fields)
        table = Table(table_name, self._metadata, *columns)
        table.create(connection)
        _LOGGER.info("sql_table_created", table_name=table_name)
        return table


def table_name_for(kind: EntityKind, partition: Partition | None) -> str:
    """Return the table holding entities of a kind and partition.

    Raises:
        ValueError: If a partitioned kind arrives without a partition.
    """
    shared_name = _SHARED_TABLE_NAMES.get(kind)
    if shared_name is not None:
        return shared_name
    if partition is None:
        raise ValueError(f"{kind} entities need a partition")
    if kind == "seller_product":
        return f"products_{partition}"
    if kind == "translation":
        return f"product_{partition}_t"
    if kind == "search":
        return f"search_{partition}"
    return f"prices_{partition}"


def _create_engine(database_url: str) -> Engine:
    try:
        engine = create_engine(database_url)
    except (SQLAlchemyError, ValueError) as error:
        raise PricebookConfigError(
            f"Invalid database_url '{database_url}': {error}. Use an SQLAlchemy URL."
        ) from error
    if engine.dialect.name not in _INSERT_BUILDERS:
        raise PricebookConfigError(
            f"Unsupported database dialect '{engine.dialect.name}'. "
            f"Use one of: {', '.join(_INSERT_BUILDERS)}."
        )
    if engine.dialect.name == "sqlite":
        _enable_sqlite_savepoints(engine)
    return engine


def _enable_sqlite_savepoints(engine: Engine) -> None:
    """Let SQLAlchemy own BEGIN so nested savepoints roll back correctly on pysqlite."""

    @event.listens_for(engine, "connect")
    def _disable_driver_transactions(dbapi_connection: Any, connection_record: Any) -> None:
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _emit_begin(connection: Connection) -> None:
        connection.exec_driver_sql("BEGIN")


def _column_type(field_name: str) -> Any:
    if field_name in DECIMAL_FIELD_NAMES:
        return Numeric(18, 4)
    if field_name in DATE_FIELD_NAMES:
        return Date()
    if field_name in INTEGER_FIELD_NAMES:
        return Integer()
    if field_name in BOOLEAN_FIELD_NAMES:
        return Boolean()
    if field_name in _LONG_TEXT_FIELD_NAMES:
        return Text()
    return String(255)


def _row_values(table: Table, payload: EntityPayload) -> dict[str, Any]:
    row: dict[str, Any] = {_KEY_COLUMN: payload.key}
    for name, value in payload.fields.items():
        if name not in table.c:
            continue
        row[name] = _column_value(name, value)
    return row


def _column_value(field_name: str, value: object) -> Any:
    if value is None:
        return None
    if field_name in DECIMAL_FIELD_NAMES:
        return Decimal(str(value))
    if field_name in DATE_FIELD_NAMES:
        return date.fromisoformat(str(value))
    return value
