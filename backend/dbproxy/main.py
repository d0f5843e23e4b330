"""FastAPI application entrypoint.

Run locally:
    python -m dbproxy.main
or
    uvicorn dbproxy.main:app --host 0.0.0.0 --port 8080
"""

from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI
from sqlalchemy import Engine

from dbproxy.config import Settings, get_settings
from dbproxy.db.executor import QueryExecutor
from dbproxy.db.introspection import LiveSchemaInspector
from dbproxy.db.session import RetryPolicy, connect_with_retry, create_db_engine
from dbproxy.routers import records
from dbproxy.schema.loader import DesiredSchema, load_desired_schema
from dbproxy.schema.reconciler import ReconciliationReport, SchemaReconciler

logger = logging.getLogger(__name__)

_LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"


def prepare_database(settings: Settings) -> tuple[Engine, QueryExecutor, DesiredSchema, ReconciliationReport]:
    """Connect, load the desired schema and reconcile; every failure here is fatal."""

    engine = create_db_engine(settings)
    try:
        connection = connect_with_retry(engine, RetryPolicy.from_settings(settings))
    except Exception:
        engine.dispose()
        raise
    db = QueryExecutor(connection)
    try:
        schema = load_desired_schema(settings.schema_path)
        report = SchemaReconciler(schema, db, LiveSchemaInspector(db)).run()
    except Exception:
        db.close()
        engine.dispose()
        raise
    return engine, db, schema, report


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()
    try:
        engine, db, schema, _report = prepare_database(settings)
    except Exception:
        logger.critical("Startup aborted; the proxy will not serve requests.", exc_info=True)
        raise
    app.state.db = db
    app.state.schema = schema
    try:
        yield
    finally:
        db.close()
        engine.dispose()
        logger.info("Database connection closed.")


def create_app() -> FastAPI:
    application = FastAPI(title=get_settings().app_name, version="0.1.0", lifespan=lifespan)

    @application.get("/health")
    def health() -> dict[str, str]:
        """Simple health check endpoint."""

        return {"status": "ok"}

    application.include_router(records.router, tags=["records"])
    return application


app = create_app()


def run() -> None:
    import uvicorn

    settings = get_settings()
    logging.basicConfig(level=settings.log_level.upper(), format=_LOG_FORMAT)
    uvicorn.run(app, host=settings.dbproxy_host, port=settings.dbproxy_port)


if __name__ == "__main__":
    run()
