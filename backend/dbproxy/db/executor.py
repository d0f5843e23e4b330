"""Serialized statement execution over the proxy's single connection."""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from typing import Any, TypeVar

from sqlalchemy import Connection, inspect, text
from sqlalchemy.engine import Dialect, Inspector
from sqlalchemy.exc import SQLAlchemyError

logger = logging.getLogger(__name__)

T = TypeVar("T")


class QueryError(RuntimeError):
    """A statement failed at the driver level."""

    def __init__(self, statement: str, cause: BaseException) -> None:
        super().__init__(f"Query failed: {statement}")
        self.statement = statement
        self.cause = cause


@dataclass(slots=True)
class QueryResult:
    """Rows (for statements that return them) plus cursor metadata."""

    rows: list[dict[str, Any]] = field(default_factory=list)
    rowcount: int = 0
    lastrowid: int | None = None


class QueryExecutor:
    """Run one statement at a time against a shared connection."""

    def __init__(self, connection: Connection) -> None:
        self._connection = connection
        self._lock = threading.Lock()

    @property
    def dialect(self) -> Dialect:
        return self._connection.dialect

    def quote(self, identifier: str) -> str:
        """Quote a table/column name for the connected dialect when required."""

        return self.dialect.identifier_preparer.quote(identifier)

    def execute(self, statement: str, params: Mapping[str, Any] | None = None) -> QueryResult:
        """Execute ``statement`` with bound ``params`` and return its result."""

        with self._lock:
            logger.debug("db.execute statement=%s", statement)
            try:
                result = self._connection.execute(text(statement), dict(params or {}))
                if result.returns_rows:
                    rows = [dict(row._mapping) for row in result]
                    return QueryResult(rows=rows, rowcount=len(rows))
                return QueryResult(rowcount=result.rowcount, lastrowid=result.lastrowid)
            except SQLAlchemyError as exc:
                logger.warning("db.execute_failed statement=%s error=%s", statement, exc)
                raise QueryError(statement, exc) from exc

    def inspect(self, fn: Callable[[Inspector], T]) -> T:
        """Run ``fn`` with a fresh inspector so reflection never reads a stale cache."""

        with self._lock:
            try:
                return fn(inspect(self._connection))
            except SQLAlchemyError as exc:
                logger.warning("db.inspect_failed error=%s", exc)
                raise QueryError("<introspection>", exc) from exc

    def close(self) -> None:
        with self._lock:
            self._connection.close()
