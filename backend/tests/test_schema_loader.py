"""Unit tests for desired schema loading and validation."""

from __future__ import annotations

import json
import tempfile
import unittest
from pathlib import Path

from pydantic import ValidationError

from dbproxy.schema.loader import DesiredSchema, SchemaLoadError, load_desired_schema, parse_desired_schema


class SchemaLoaderTests(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.tmp_path = Path(self._tmp.name)

    def tearDown(self) -> None:
        self._tmp.cleanup()

    def _write(self, payload: object) -> Path:
        path = self.tmp_path / "schema.json"
        path.write_text(json.dumps(payload), encoding="utf-8")
        return path

    def test_loads_tables_columns_and_primary_key(self) -> None:
        path = self._write(
            {
                "tables": [
                    {
                        "name": "users",
                        "columns": [{"name": "email", "type": "string"}],
                        "primaryKey": "id",
                    },
                    {"name": "posts", "columns": [{"name": "title", "type": "string"}]},
                ]
            }
        )

        schema = load_desired_schema(path)

        self.assertEqual(schema.table_names, ["users", "posts"])
        users = schema.table("users")
        assert users is not None
        self.assertEqual(users.primary_key, "id")
        self.assertEqual([column.name for column in users.columns], ["email"])
        self.assertIsNone(schema.table("missing"))

    def test_implicit_key_column_is_prepended(self) -> None:
        schema = parse_desired_schema(
            {"tables": [{"name": "posts", "columns": [{"name": "title", "type": "string"}]}]}
        )
        posts = schema.tables[0]

        self.assertEqual(posts.primary_key_name, "id")
        self.assertTrue(posts.has_implicit_primary_key)
        self.assertEqual(
            [(column.name, column.abstract_type) for column in posts.effective_columns],
            [("id", "integer"), ("title", "string")],
        )

    def test_declared_primary_key_column_is_not_duplicated(self) -> None:
        schema = parse_desired_schema(
            {
                "tables": [
                    {
                        "name": "items",
                        "columns": [
                            {"name": "code", "type": "string"},
                            {"name": "qty", "type": "integer"},
                        ],
                        "primaryKey": "code",
                    }
                ]
            }
        )
        items = schema.tables[0]

        self.assertFalse(items.has_implicit_primary_key)
        self.assertEqual([column.name for column in items.effective_columns], ["code", "qty"])
        self.assertEqual(items.column_type("code"), "string")
        self.assertEqual(items.column_type("qty"), "integer")
        self.assertIsNone(items.column_type("id"))

    def test_unknown_column_type_is_accepted_with_warning(self) -> None:
        with self.assertLogs("dbproxy.schema.loader", level="WARNING") as captured:
            schema = parse_desired_schema(
                {"tables": [{"name": "notes", "columns": [{"name": "body", "type": "text"}]}]}
            )

        self.assertEqual(schema.tables[0].column_type("body"), "string")
        self.assertIn("column=body", captured.output[0])

    def test_duplicate_column_names_are_rejected(self) -> None:
        with self.assertRaises(SchemaLoadError):
            parse_desired_schema(
                {
                    "tables": [
                        {
                            "name": "users",
                            "columns": [
                                {"name": "email", "type": "string"},
                                {"name": "email", "type": "integer"},
                            ],
                        }
                    ]
                }
            )

    def test_duplicate_table_names_are_rejected(self) -> None:
        with self.assertRaises(SchemaLoadError):
            parse_desired_schema({"tables": [{"name": "users"}, {"name": "users"}]})

    def test_missing_file_raises_schema_load_error(self) -> None:
        with self.assertRaises(SchemaLoadError):
            load_desired_schema(self.tmp_path / "absent.json")

    def test_invalid_json_raises_schema_load_error(self) -> None:
        path = self.tmp_path / "schema.json"
        path.write_text("{tables: [", encoding="utf-8")
        with self.assertRaises(SchemaLoadError):
            load_desired_schema(path)

    def test_loaded_schema_is_immutable(self) -> None:
        schema = parse_desired_schema({"tables": [{"name": "users"}]})
        with self.assertRaises(ValidationError):
            schema.tables[0].name = "renamed"
        self.assertIsInstance(schema, DesiredSchema)


if __name__ == "__main__":
    unittest.main()
