"""Response payloads for record routes."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class CreateResult(BaseModel):
    """Outcome of a successful insert."""

    model_config = ConfigDict(populate_by_name=True)

    message: str
    insert_id: int | None = Field(default=None, alias="insertId")


class MutationResult(BaseModel):
    """Outcome of a successful update or delete."""

    message: str
