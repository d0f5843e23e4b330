"""Generic record CRUD over any collection, typed by the desired schema."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from dbproxy.db.executor import QueryError, QueryExecutor, QueryResult
from dbproxy.schema.loader import DEFAULT_PRIMARY_KEY, DesiredSchema
from dbproxy.schemas.records import CreateResult, MutationResult

logger = logging.getLogger(__name__)


class RecordError(RuntimeError):
    """Base class for request-time record failures."""


class UnknownFieldError(RecordError):
    """A record field has no column in the desired schema for its collection."""

    def __init__(self, collection: str, field: str) -> None:
        super().__init__(f"Unknown field '{field}' for collection '{collection}'")
        self.collection = collection
        self.field = field


class EmptyRecordError(RecordError):
    """An update carried no fields."""


class RecordOperationError(RecordError):
    """The statement failed; the message is deliberately generic."""


def create_record(
    db: QueryExecutor,
    schema: DesiredSchema,
    collection: str,
    record: Mapping[str, Any],
) -> CreateResult:
    """Insert one row and return its generated identifier."""

    values = _bind_fields(schema, collection, record)
    columns = ", ".join(db.quote(name) for name in values)
    placeholders = ", ".join(f":{param}" for param in _param_names(values))
    statement = f"INSERT INTO {db.quote(collection)} ({columns}) VALUES ({placeholders});"

    result = _run(db, statement, _params(values), failure="Creation failed")
    return CreateResult(message="Successful creation", insert_id=result.lastrowid)


def read_record(db: QueryExecutor, schema: DesiredSchema, collection: str, record_id: int) -> list[dict[str, Any]]:
    """Return the matching row as a zero- or one-element list."""

    key = db.quote(_key_column(schema, collection))
    statement = f"SELECT * FROM {db.quote(collection)} WHERE {key} = :id LIMIT 1;"
    result = _run(db, statement, {"id": record_id}, failure="Read failed")
    return result.rows


def update_record(
    db: QueryExecutor,
    schema: DesiredSchema,
    collection: str,
    record_id: int,
    record: Mapping[str, Any],
) -> MutationResult:
    """Apply a partial update to one row."""

    if not record:
        raise EmptyRecordError("At least one field must be provided.")
    values = _bind_fields(schema, collection, record)
    assignments = ", ".join(
        f"{db.quote(name)} = :{param}" for name, param in zip(values, _param_names(values))
    )
    key = db.quote(_key_column(schema, collection))
    statement = f"UPDATE {db.quote(collection)} SET {assignments} WHERE {key} = :id;"

    _run(db, statement, {**_params(values), "id": record_id}, failure="Update failed")
    return MutationResult(message="Successful update")


def delete_record(db: QueryExecutor, schema: DesiredSchema, collection: str, record_id: int) -> MutationResult:
    """Delete one row by key."""

    key = db.quote(_key_column(schema, collection))
    statement = f"DELETE FROM {db.quote(collection)} WHERE {key} = :id;"
    _run(db, statement, {"id": record_id}, failure="Deletion failed")
    return MutationResult(message="Successful deletion")


def _bind_fields(schema: DesiredSchema, collection: str, record: Mapping[str, Any]) -> dict[str, Any]:
    """Coerce each field per its desired column type; any unknown field aborts the whole record."""

    table = schema.table(collection)
    values: dict[str, Any] = {}
    for name, value in record.items():
        column_type = table.column_type(name) if table is not None else None
        if column_type is None:
            raise UnknownFieldError(collection, name)
        if column_type == "string" and value is not None:
            value = str(value)
        values[name] = value
    return values


def _param_names(values: Mapping[str, Any]) -> list[str]:
    # Column names are arbitrary identifiers, so bind names are positional.
    return [f"v{index}" for index in range(len(values))]


def _params(values: Mapping[str, Any]) -> dict[str, Any]:
    return dict(zip(_param_names(values), values.values()))


def _key_column(schema: DesiredSchema, collection: str) -> str:
    table = schema.table(collection)
    return table.primary_key_name if table is not None else DEFAULT_PRIMARY_KEY


def _run(db: QueryExecutor, statement: str, params: dict[str, Any], *, failure: str) -> QueryResult:
    try:
        return db.execute(statement, params)
    except QueryError as exc:
        logger.error("records.query_failed statement=%s cause=%s", exc.statement, exc.cause)
        raise RecordOperationError(failure) from exc
