"""Desired schema document model and loader."""

from __future__ import annotations

import json
import logging
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from dbproxy.schema.types import AbstractType, is_known_type, normalize_type

logger = logging.getLogger(__name__)

DEFAULT_PRIMARY_KEY = "id"


class SchemaLoadError(RuntimeError):
    """Raised when the desired schema document cannot be read or is invalid."""


class ColumnSpec(BaseModel):
    """One desired column."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(min_length=1)
    type: str = "string"

    @property
    def abstract_type(self) -> AbstractType:
        return normalize_type(self.type)


class TableSpec(BaseModel):
    """One desired table with its ordered columns and optional primary key."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    name: str = Field(min_length=1)
    columns: tuple[ColumnSpec, ...] = ()
    primary_key: str | None = Field(default=None, alias="primaryKey", min_length=1)

    @model_validator(mode="after")
    def validate_unique_columns(self) -> "TableSpec":
        seen: set[str] = set()
        for column in self.columns:
            if column.name in seen:
                raise ValueError(f"Duplicate column '{column.name}' in table '{self.name}'.")
            seen.add(column.name)
        return self

    @property
    def primary_key_name(self) -> str:
        return self.primary_key or DEFAULT_PRIMARY_KEY

    @property
    def has_implicit_primary_key(self) -> bool:
        """True when the key column is generated rather than declared."""

        return all(column.name != self.primary_key_name for column in self.columns)

    @property
    def effective_columns(self) -> tuple[ColumnSpec, ...]:
        """Declared columns, with the generated integer key column prepended when needed."""

        if self.has_implicit_primary_key:
            return (ColumnSpec(name=self.primary_key_name, type="integer"), *self.columns)
        return self.columns

    def column_type(self, column_name: str) -> AbstractType | None:
        for column in self.effective_columns:
            if column.name == column_name:
                return column.abstract_type
        return None


class DesiredSchema(BaseModel):
    """Target state the database is reconciled to. Immutable once loaded."""

    model_config = ConfigDict(frozen=True)

    tables: tuple[TableSpec, ...] = ()

    @model_validator(mode="after")
    def validate_unique_tables(self) -> "DesiredSchema":
        seen: set[str] = set()
        for table in self.tables:
            if table.name in seen:
                raise ValueError(f"Duplicate table '{table.name}'.")
            seen.add(table.name)
        return self

    @property
    def table_names(self) -> list[str]:
        return [table.name for table in self.tables]

    def table(self, name: str) -> TableSpec | None:
        return next((table for table in self.tables if table.name == name), None)


def parse_desired_schema(payload: object) -> DesiredSchema:
    """Validate an already-decoded schema document."""

    try:
        schema = DesiredSchema.model_validate(payload)
    except ValidationError as exc:
        raise SchemaLoadError(f"Desired schema failed validation: {exc}") from exc
    _warn_unknown_types(schema)
    return schema


def load_desired_schema(path: str | Path) -> DesiredSchema:
    """Read and validate the desired schema JSON document at ``path``."""

    schema_file = Path(path)
    try:
        raw = schema_file.read_text(encoding="utf-8")
    except OSError as exc:
        raise SchemaLoadError(f"Failed to read desired schema file: {schema_file}") from exc
    try:
        payload = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise SchemaLoadError(f"Desired schema file is not valid JSON: {schema_file}") from exc

    schema = parse_desired_schema(payload)
    logger.info(
        "schema.loaded path=%s tables=%d",
        schema_file,
        len(schema.tables),
    )
    return schema


def _warn_unknown_types(schema: DesiredSchema) -> None:
    for table in schema.tables:
        for column in table.columns:
            if not is_known_type(column.type):
                logger.warning(
                    "schema.unknown_column_type table=%s column=%s type=%s fallback=string",
                    table.name,
                    column.name,
                    column.type,
                )
