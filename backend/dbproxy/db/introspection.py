"""Read the live table/column/primary-key layout through SQLAlchemy reflection."""

from __future__ import annotations

from dataclasses import dataclass, field

from sqlalchemy.exc import CompileError

from dbproxy.db.executor import QueryExecutor
from dbproxy.schema.types import AbstractType, from_native_type


@dataclass(frozen=True, slots=True)
class LiveColumn:
    """A column as reported by the database, with its type already classified."""

    name: str
    type: AbstractType
    autoincrement: bool = field(default=False, compare=False)


class LiveSchemaInspector:
    """Reflection queries used by reconciliation. Results are never cached."""

    def __init__(self, db: QueryExecutor) -> None:
        self._db = db

    def table_names(self) -> list[str]:
        return self._db.inspect(lambda inspector: list(inspector.get_table_names()))

    def columns(self, table_name: str) -> list[LiveColumn]:
        reflected = self._db.inspect(lambda inspector: inspector.get_columns(table_name))
        return [
            LiveColumn(
                name=column["name"],
                type=from_native_type(native_type_name(column["type"])),
                # The MySQL dialect reports True only for AUTO_INCREMENT columns; other dialects may say "auto".
                autoincrement=column.get("autoincrement") is True,
            )
            for column in reflected
        ]

    def primary_key(self, table_name: str) -> tuple[str, ...]:
        constraint = self._db.inspect(lambda inspector: inspector.get_pk_constraint(table_name))
        if not constraint:
            return ()
        return tuple(constraint.get("constrained_columns") or ())


def native_type_name(column_type: object) -> str:
    """Render a reflected type the way MySQL reports it (``int``, ``varchar(255)``)."""

    try:
        rendered = str(column_type)
    except CompileError:
        # NullType and other reflected placeholders have no DDL form.
        rendered = type(column_type).__name__
    return rendered.lower()
