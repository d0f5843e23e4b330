"""HTTP tests for record routes and the startup barrier."""

from __future__ import annotations

import unittest
from unittest import mock

from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool

from dbproxy.config import Settings, get_settings
from dbproxy.db.executor import QueryExecutor
from dbproxy.db.session import ConnectivityError
from dbproxy.main import create_app, prepare_database
from dbproxy.schema.loader import SchemaLoadError, parse_desired_schema
from dbproxy.schema.reconciler import ReconciliationReport

SCHEMA = parse_desired_schema(
    {
        "tables": [
            {
                "name": "users",
                "columns": [{"name": "email", "type": "string"}, {"name": "age", "type": "integer"}],
                "primaryKey": "id",
            }
        ]
    }
)


def _sqlite_executor() -> QueryExecutor:
    engine = create_engine(
        "sqlite+pysqlite:///:memory:",
        future=True,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    db = QueryExecutor(engine.connect().execution_options(isolation_level="AUTOCOMMIT"))
    db.execute("CREATE TABLE users (id INTEGER PRIMARY KEY AUTOINCREMENT, email VARCHAR(255), age INT);")
    return db


class RecordRoutesTests(unittest.TestCase):
    def setUp(self) -> None:
        self.db = _sqlite_executor()
        self.app = create_app()
        self.app.state.db = self.db
        self.app.state.schema = SCHEMA
        self.client = TestClient(self.app)

    def tearDown(self) -> None:
        self.db.close()

    def test_health(self) -> None:
        response = self.client.get("/health")

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json(), {"status": "ok"})

    def test_create_then_read(self) -> None:
        created = self.client.post("/users", json={"email": "a@b.com", "age": 33})

        self.assertEqual(created.status_code, 200)
        self.assertEqual(created.json(), {"message": "Successful creation", "insertId": 1})

        fetched = self.client.get("/users/1")
        self.assertEqual(fetched.status_code, 200)
        self.assertEqual(fetched.json(), [{"id": 1, "email": "a@b.com", "age": 33}])

    def test_read_missing_row_is_empty_list(self) -> None:
        response = self.client.get("/users/42")

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json(), [])

    def test_unknown_field_is_reported_by_name(self) -> None:
        response = self.client.post("/users", json={"unknown_field": 1})

        self.assertEqual(response.status_code, 400)
        self.assertIn("unknown_field", response.json()["detail"])
        self.assertEqual(self.client.get("/users/1").json(), [])

    def test_update_via_post_with_id(self) -> None:
        self.client.post("/users", json={"email": "a@b.com", "age": 1})

        response = self.client.post("/users/1", json={"age": 2})

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json(), {"message": "Successful update"})
        self.assertEqual(self.client.get("/users/1").json()[0]["age"], 2)

    def test_empty_update_is_rejected(self) -> None:
        response = self.client.post("/users/1", json={})

        self.assertEqual(response.status_code, 400)

    def test_delete(self) -> None:
        self.client.post("/users", json={"email": "a@b.com"})

        response = self.client.delete("/users/1")

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json(), {"message": "Successful deletion"})
        self.assertEqual(self.client.get("/users/1").json(), [])

    def test_database_errors_are_not_exposed(self) -> None:
        with self.assertLogs("dbproxy.services.records", level="ERROR"):
            response = self.client.get("/ghosts/1")

        self.assertEqual(response.status_code, 500)
        self.assertEqual(response.json(), {"detail": "Read failed"})

    def test_non_numeric_id_is_rejected(self) -> None:
        response = self.client.get("/users/abc")

        self.assertEqual(response.status_code, 422)

    def test_nested_values_are_rejected(self) -> None:
        response = self.client.post("/users", json={"email": {"nested": True}})

        self.assertEqual(response.status_code, 422)


class StartupTests(unittest.TestCase):
    def test_requests_are_served_only_after_preparation(self) -> None:
        db = _sqlite_executor()
        engine = mock.Mock(name="engine")
        app = create_app()

        with mock.patch(
            "dbproxy.main.prepare_database",
            return_value=(engine, db, SCHEMA, ReconciliationReport()),
        ) as prepare:
            with TestClient(app) as client:
                prepare.assert_called_once()
                self.assertIs(app.state.db, db)
                response = client.post("/users", json={"email": "a@b.com"})
                self.assertEqual(response.json()["insertId"], 1)
                engine.dispose.assert_not_called()

        engine.dispose.assert_called_once_with()

    def test_connectivity_failure_aborts_startup(self) -> None:
        app = create_app()

        with mock.patch("dbproxy.main.prepare_database", side_effect=ConnectivityError("down")):
            with self.assertLogs("dbproxy.main", level="CRITICAL"):
                with self.assertRaises(ConnectivityError):
                    with TestClient(app):
                        pass

    def test_routes_refuse_service_before_startup(self) -> None:
        client = TestClient(create_app())

        response = client.get("/users/1")

        self.assertEqual(response.status_code, 503)

    def test_application_title_comes_from_settings(self) -> None:
        self.assertEqual(create_app().title, get_settings().app_name)


class PrepareDatabaseTests(unittest.TestCase):
    def setUp(self) -> None:
        self.engine = mock.Mock(name="engine")
        patcher = mock.patch("dbproxy.main.create_db_engine", return_value=self.engine)
        patcher.start()
        self.addCleanup(patcher.stop)

    def test_engine_is_disposed_when_connection_never_succeeds(self) -> None:
        with mock.patch("dbproxy.main.connect_with_retry", side_effect=ConnectivityError("down")):
            with self.assertRaises(ConnectivityError):
                prepare_database(Settings())

        self.engine.dispose.assert_called_once_with()

    def test_engine_and_connection_are_released_when_schema_load_fails(self) -> None:
        connection = mock.Mock(name="connection")
        settings = Settings(schema_path="/nonexistent/schema.json")

        with mock.patch("dbproxy.main.connect_with_retry", return_value=connection):
            with self.assertRaises(SchemaLoadError):
                prepare_database(settings)

        connection.close.assert_called_once_with()
        self.engine.dispose.assert_called_once_with()


if __name__ == "__main__":
    unittest.main()
