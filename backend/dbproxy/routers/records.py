"""Generic collection CRUD routes."""

from typing import Any

from fastapi import APIRouter, Body, Depends, HTTPException, Path

from dbproxy.db.dependencies import get_db, get_schema
from dbproxy.db.executor import QueryExecutor
from dbproxy.schema.loader import DesiredSchema
from dbproxy.schemas.records import CreateResult, MutationResult
from dbproxy.services.records import (
    EmptyRecordError,
    RecordOperationError,
    UnknownFieldError,
    create_record,
    delete_record,
    read_record,
    update_record,
)

RecordBody = dict[str, str | int | float | bool | None]

router = APIRouter()


@router.get("/{collection}/{record_id}", response_model=list[dict[str, Any]])
def get_record(
    collection: str = Path(..., min_length=1),
    record_id: int = Path(...),
    db: QueryExecutor = Depends(get_db),
    schema: DesiredSchema = Depends(get_schema),
) -> list[dict[str, Any]]:
    """Return the row with ``record_id`` (empty list when absent)."""

    try:
        return read_record(db, schema, collection, record_id)
    except RecordOperationError as exc:
        raise HTTPException(status_code=500, detail=str(exc)) from exc


@router.post("/{collection}", response_model=CreateResult)
def post_record(
    payload: RecordBody = Body(...),
    collection: str = Path(..., min_length=1),
    db: QueryExecutor = Depends(get_db),
    schema: DesiredSchema = Depends(get_schema),
) -> CreateResult:
    """Insert one row."""

    try:
        return create_record(db, schema, collection, payload)
    except UnknownFieldError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except RecordOperationError as exc:
        raise HTTPException(status_code=500, detail=str(exc)) from exc


@router.post("/{collection}/{record_id}", response_model=MutationResult)
def post_record_update(
    payload: RecordBody = Body(...),
    collection: str = Path(..., min_length=1),
    record_id: int = Path(...),
    db: QueryExecutor = Depends(get_db),
    schema: DesiredSchema = Depends(get_schema),
) -> MutationResult:
    """Update fields of one row."""

    try:
        return update_record(db, schema, collection, record_id, payload)
    except (UnknownFieldError, EmptyRecordError) as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except RecordOperationError as exc:
        raise HTTPException(status_code=500, detail=str(exc)) from exc


@router.delete("/{collection}/{record_id}", response_model=MutationResult)
def remove_record(
    collection: str = Path(..., min_length=1),
    record_id: int = Path(...),
    db: QueryExecutor = Depends(get_db),
    schema: DesiredSchema = Depends(get_schema),
) -> MutationResult:
    """Delete one row."""

    try:
        return delete_record(db, schema, collection, record_id)
    except RecordOperationError as exc:
        raise HTTPException(status_code=500, detail=str(exc)) from exc
