"""Mapping between abstract schema column types and native MySQL declarations."""

from __future__ import annotations

from typing import Literal

AbstractType = Literal["integer", "string"]

_NATIVE_TYPES: dict[str, str] = {
    "integer": "INT",
    "string": "VARCHAR(255)",
}
_FALLBACK_NATIVE_TYPE = "VARCHAR(255)"


def to_native_type(abstract_type: str) -> str:
    """Return the column declaration for an abstract type; unknown types fall back to VARCHAR(255)."""

    return _NATIVE_TYPES.get(abstract_type, _FALLBACK_NATIVE_TYPE)


def from_native_type(native_type: str) -> AbstractType:
    """Classify a native column type as reported by introspection.

    Matching is a case-sensitive substring check, so ``bigint`` and ``tinyint(1)``
    both classify as integer and anything unrecognized is a string.

    ``to_native_type`` emits uppercase declarations (``INT``), which this
    function classifies as string. Callers lowercase first: the introspector
    does so for reflected types and ``normalize_type`` does so for desired ones.
    """

    if "int" in native_type:
        return "integer"
    if "varchar" in native_type:
        return "string"
    return "string"


def normalize_type(abstract_type: str) -> AbstractType:
    """Collapse a desired type to the value it will read back as after creation."""

    return from_native_type(to_native_type(abstract_type).lower())


def is_known_type(abstract_type: str) -> bool:
    return abstract_type in _NATIVE_TYPES
