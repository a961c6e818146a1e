"""Translate sparse filter mappings into SQLAlchemy conditions."""

from __future__ import annotations

from collections.abc import Mapping
from enum import Enum
from typing import Any

from pydantic import BaseModel, TypeAdapter
from sqlalchemy import ColumnElement, Table, and_, true

_JSON = TypeAdapter(Any)


def to_storage(value: Any) -> Any:
    """Convert a domain value into something every driver can bind.

    Enums bind by value; pydantic models and plain dicts / lists (promotion
    rules, benefits) become JSON-compatible structures.
    """
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json")
    if isinstance(value, (dict, list)):
        return _JSON.dump_python(value, mode="json")
    return value


def build_where_clause(where: Mapping[str, Any] | None, table: Table) -> ColumnElement[bool]:
    """AND together ``column == value`` for every non-None entry.

    An empty or missing mapping matches every row. Unknown keys raise
    ValueError rather than being silently dropped.
    """
    conditions = []
    for key, value in (where or {}).items():
        if value is None:
            continue
        if key not in table.c:
            raise ValueError(f"Unknown filter column '{key}' for table '{table.name}'")
        conditions.append(table.c[key] == to_storage(value))
    return and_(true(), *conditions)
