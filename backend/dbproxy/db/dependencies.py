"""FastAPI dependencies handing out the boot-time database state."""

from fastapi import HTTPException, Request

from dbproxy.db.executor import QueryExecutor
from dbproxy.schema.loader import DesiredSchema


def get_db(request: Request) -> QueryExecutor:
    """Return the executor opened during startup."""

    executor = getattr(request.app.state, "db", None)
    if executor is None:
        raise HTTPException(status_code=503, detail="Database not ready")
    return executor


def get_schema(request: Request) -> DesiredSchema:
    """Return the desired schema loaded during startup."""

    schema = getattr(request.app.state, "schema", None)
    if schema is None:
        raise HTTPException(status_code=503, detail="Schema not loaded")
    return schema
