"""MySQL DDL statement rendering for reconciliation."""

from __future__ import annotations

from collections.abc import Callable

from dbproxy.schema.loader import ColumnSpec, TableSpec
from dbproxy.schema.types import to_native_type

Quote = Callable[[str], str]

_AUTO_INCREMENT_KEY = "INT NOT NULL AUTO_INCREMENT"


def column_definition(table: TableSpec, column: ColumnSpec, quote: Quote) -> str:
    """Render ``name TYPE`` with key constraints for the table's primary key column."""

    if column.name == table.primary_key_name:
        if table.has_implicit_primary_key:
            return f"{quote(column.name)} {_AUTO_INCREMENT_KEY}"
        return f"{quote(column.name)} {to_native_type(column.type)} NOT NULL"
    return f"{quote(column.name)} {to_native_type(column.type)}"


def create_table(table: TableSpec, quote: Quote) -> str:
    parts = [column_definition(table, column, quote) for column in table.effective_columns]
    parts.append(f"PRIMARY KEY ({quote(table.primary_key_name)})")
    return f"CREATE TABLE {quote(table.name)} ({', '.join(parts)});"


def drop_table(table_name: str, quote: Quote) -> str:
    return f"DROP TABLE {quote(table_name)};"


def add_column(table: TableSpec, column: ColumnSpec, quote: Quote) -> str:
    definition = column_definition(table, column, quote)
    if column.name == table.primary_key_name and table.has_implicit_primary_key:
        # An AUTO_INCREMENT column must be keyed in the same statement.
        definition = f"{definition} PRIMARY KEY"
    return f"ALTER TABLE {quote(table.name)} ADD COLUMN {definition};"


def drop_column(table_name: str, column_name: str, quote: Quote) -> str:
    return f"ALTER TABLE {quote(table_name)} DROP COLUMN {quote(column_name)};"


def add_primary_key(table_name: str, column_name: str, quote: Quote) -> str:
    return f"ALTER TABLE {quote(table_name)} ADD PRIMARY KEY ({quote(column_name)});"


def drop_primary_key(table_name: str, quote: Quote) -> str:
    return f"ALTER TABLE {quote(table_name)} DROP PRIMARY KEY;"


def drop_primary_key_and_column(table_name: str, column_name: str, quote: Quote) -> str:
    """Drop the key and its column together; MySQL refuses to unkey an AUTO_INCREMENT column on its own."""

    return f"ALTER TABLE {quote(table_name)} DROP PRIMARY KEY, DROP COLUMN {quote(column_name)};"


def strip_auto_increment(table_name: str, column_name: str, native_type: str, quote: Quote) -> str:
    return f"ALTER TABLE {quote(table_name)} MODIFY COLUMN {quote(column_name)} {native_type} NOT NULL;"
