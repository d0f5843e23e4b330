"""Boot-time reconciliation of the live database schema to the desired schema.

Reconciliation runs once, strictly sequentially, and is not transactional:
every DDL statement commits on its own, so a failure part-way through leaves
the database partially migrated and aborts startup.

Order of work:

1. Table diff. Live and desired table names are compared as ordered
   sequences; when they differ, extra live tables are dropped and then
   missing desired tables are created.
2. Column diff, for every desired table. Columns are compared as
   ``(name, type)`` pairs regardless of order, so a changed type shows up
   as one removal plus one addition. Removals run before additions, and the
   primary key is dropped before its column goes and re-added once the
   desired key column exists.

MySQL refuses ``DROP PRIMARY KEY`` while an AUTO_INCREMENT column would be
left unkeyed. A removed key column is therefore dropped in the same statement
as the key, and a surviving AUTO_INCREMENT key column is first redeclared as a
plain ``NOT NULL`` column.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from time import perf_counter
from typing import Literal, Protocol, TypeVar

from dbproxy.db.executor import QueryError, QueryResult
from dbproxy.db.introspection import LiveColumn
from dbproxy.schema import ddl
from dbproxy.schema.loader import DesiredSchema, TableSpec
from dbproxy.schema.types import to_native_type

logger = logging.getLogger(__name__)

T = TypeVar("T")

OperationKind = Literal[
    "drop_table",
    "create_table",
    "drop_column",
    "add_column",
    "modify_column",
    "drop_primary_key",
    "add_primary_key",
]


class StatementRunner(Protocol):
    def execute(self, statement: str, params: dict | None = None) -> QueryResult: ...

    def quote(self, identifier: str) -> str: ...


class SchemaReader(Protocol):
    def table_names(self) -> list[str]: ...

    def columns(self, table_name: str) -> list[LiveColumn]: ...

    def primary_key(self, table_name: str) -> tuple[str, ...]: ...


@dataclass(frozen=True, slots=True)
class SchemaOperation:
    """One DDL statement issued during reconciliation."""

    kind: OperationKind
    table: str
    statement: str
    column: str | None = None


@dataclass(slots=True)
class ReconciliationReport:
    operations: list[SchemaOperation] = field(default_factory=list)

    @property
    def statements(self) -> list[str]:
        return [operation.statement for operation in self.operations]


class ReconciliationError(RuntimeError):
    """A DDL or introspection step failed; the database may be partially migrated."""

    def __init__(self, message: str, *, operation: SchemaOperation | None = None) -> None:
        super().__init__(message)
        self.operation = operation


class SchemaReconciler:
    """Converge the live schema behind ``db`` to ``schema``."""

    def __init__(self, schema: DesiredSchema, db: StatementRunner, inspector: SchemaReader) -> None:
        self._schema = schema
        self._db = db
        self._inspector = inspector

    def run(self) -> ReconciliationReport:
        started = perf_counter()
        report = ReconciliationReport()
        self._reconcile_tables(report)
        for table in self._schema.tables:
            self._reconcile_columns(table, report)
        logger.info(
            "schema.reconciled tables=%d statements=%d elapsed_ms=%.2f",
            len(self._schema.tables),
            len(report.operations),
            (perf_counter() - started) * 1000.0,
        )
        return report

    def _reconcile_tables(self, report: ReconciliationReport) -> None:
        live_names = self._read(self._inspector.table_names)
        desired_names = self._schema.table_names
        if live_names == desired_names:
            return

        quote = self._db.quote
        for name in live_names:
            if name not in desired_names:
                self._apply(report, SchemaOperation("drop_table", name, ddl.drop_table(name, quote)))
        for table in self._schema.tables:
            if table.name not in live_names:
                self._apply(
                    report,
                    SchemaOperation("create_table", table.name, ddl.create_table(table, quote)),
                )

    def _reconcile_columns(self, table: TableSpec, report: ReconciliationReport) -> None:
        live_columns = self._read(lambda: self._inspector.columns(table.name))
        desired_columns = table.effective_columns
        live_pairs = {(column.name, column.type) for column in live_columns}
        desired_pairs = {(column.name, column.abstract_type) for column in desired_columns}

        to_remove = [column for column in live_columns if (column.name, column.type) not in desired_pairs]
        to_add = [column for column in desired_columns if (column.name, column.abstract_type) not in live_pairs]
        live_key = self._read(lambda: self._inspector.primary_key(table.name))
        desired_key = (table.primary_key_name,)
        if not to_remove and not to_add and live_key == desired_key:
            return

        quote = self._db.quote
        current_key = live_key
        live_auto = {column.name: column for column in live_columns if column.autoincrement}
        for column in to_remove:
            if column.name in current_key:
                statement = ddl.drop_primary_key_and_column(table.name, column.name, quote)
                current_key = ()
            else:
                statement = ddl.drop_column(table.name, column.name, quote)
            self._apply(report, SchemaOperation("drop_column", table.name, statement, column=column.name))
            live_auto.pop(column.name, None)

        if current_key and current_key != desired_key:
            for name in current_key:
                if name in live_auto:
                    self._strip_auto_increment(report, table.name, live_auto.pop(name))
            self._drop_primary_key(report, table.name)
            current_key = ()

        for column in to_add:
            self._apply(
                report,
                SchemaOperation(
                    "add_column",
                    table.name,
                    ddl.add_column(table, column, quote),
                    column=column.name,
                ),
            )
            if column.name == table.primary_key_name:
                if not table.has_implicit_primary_key:
                    self._add_primary_key(report, table)
                current_key = desired_key

        if current_key != desired_key:
            self._add_primary_key(report, table)

    def _drop_primary_key(self, report: ReconciliationReport, table_name: str) -> None:
        self._apply(
            report,
            SchemaOperation("drop_primary_key", table_name, ddl.drop_primary_key(table_name, self._db.quote)),
        )

    def _strip_auto_increment(self, report: ReconciliationReport, table_name: str, column: LiveColumn) -> None:
        self._apply(
            report,
            SchemaOperation(
                "modify_column",
                table_name,
                ddl.strip_auto_increment(table_name, column.name, to_native_type(column.type), self._db.quote),
                column=column.name,
            ),
        )

    def _add_primary_key(self, report: ReconciliationReport, table: TableSpec) -> None:
        self._apply(
            report,
            SchemaOperation(
                "add_primary_key",
                table.name,
                ddl.add_primary_key(table.name, table.primary_key_name, self._db.quote),
                column=table.primary_key_name,
            ),
        )

    def _apply(self, report: ReconciliationReport, operation: SchemaOperation) -> None:
        logger.info("schema.ddl kind=%s table=%s statement=%s", operation.kind, operation.table, operation.statement)
        try:
            self._db.execute(operation.statement)
        except QueryError as exc:
            raise ReconciliationError(
                f"Reconciliation stopped at {operation.kind} on '{operation.table}': {exc.cause}",
                operation=operation,
            ) from exc
        report.operations.append(operation)

    def _read(self, fn: Callable[[], T]) -> T:
        try:
            return fn()
        except QueryError as exc:
            raise ReconciliationError(f"Schema introspection failed: {exc.cause}") from exc
