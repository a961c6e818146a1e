"""Shared building blocks for domain models.

Entities are frozen pydantic models built from row mappings. Every auditable
entity carries the same seven bookkeeping fields; UtcDateTime normalises
naive timestamps (SQLite hands them back without tzinfo) to UTC so
comparisons against datetime.now(timezone.utc) stay valid on every backend.
"""

from __future__ import annotations

import re
import unicodedata
from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal
from typing import Annotated, Any, ClassVar, Generic, TypeVar
from uuid import UUID

from pydantic import (
    AfterValidator,
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
    model_validator,
)

from booking_core.config import settings


def ensure_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def quantize_money(value: Decimal) -> Decimal:
    """Round half-up to two decimal places."""
    return value.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)


UtcDateTime = Annotated[datetime, AfterValidator(ensure_utc)]
CurrencyCode = Annotated[str, Field(min_length=3, max_length=3, pattern=r"^[A-Z]{3}$")]

T = TypeVar("T")


class AuditedEntity(BaseModel):
    """Bookkeeping fields present on every auditable row."""

    model_config = ConfigDict(frozen=True, from_attributes=True)

    id: UUID
    created_at: UtcDateTime
    updated_at: UtcDateTime
    created_by_id: UUID | None = None
    updated_by_id: UUID | None = None
    deleted_at: UtcDateTime | None = None
    deleted_by_id: UUID | None = None

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None


class Page(BaseModel, Generic[T]):
    """One page of a paginated query plus the total number of matches."""

    model_config = ConfigDict(frozen=True)

    items: list[T]
    total: int


class CountResult(BaseModel):
    """Outcome of a bulk mutation (soft delete, restore, hard delete)."""

    model_config = ConfigDict(frozen=True)

    count: int


class InputModel(BaseModel):
    """Base for create/update payloads: unknown keys are rejected."""

    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)


class SearchParams(BaseModel):
    """Pagination and sort controls shared by every <Entity>Search schema.

    Subclasses add their sparse filter fields; filters() returns only the
    ones the caller actually set.
    """

    model_config = ConfigDict(extra="forbid")

    page: int = Field(default=1, ge=1)
    page_size: int = Field(default_factory=lambda: settings.default_page_size, ge=1)
    sort_by: str | None = None
    sort_order: str = Field(default="asc", pattern=r"^(asc|desc)$")

    _CONTROL_FIELDS: ClassVar[frozenset[str]] = frozenset(
        {"page", "page_size", "sort_by", "sort_order"}
    )

    @field_validator("page_size")
    @classmethod
    def _cap_page_size(cls, value: int) -> int:
        if value > settings.max_page_size:
            raise ValueError(f"page_size must be at most {settings.max_page_size}")
        return value

    def filters(self) -> dict:
        return {
            key: value
            for key, value in self.model_dump(exclude_none=True).items()
            if key not in self._CONTROL_FIELDS
        }


_SLUG_STRIP = re.compile(r"[^a-z0-9]+")


def slugify(value: str) -> str:
    """Lower-case ASCII slug: "Casa del Río" -> "casa-del-rio"."""
    normalized = unicodedata.normalize("NFKD", value).encode("ascii", "ignore").decode()
    return _SLUG_STRIP.sub("-", normalized.lower()).strip("-")


class SluggedInput(InputModel):
    """Create payload whose slug defaults to a slugified name."""

    @model_validator(mode="before")
    @classmethod
    def _default_slug(cls, data: Any) -> Any:
        if isinstance(data, dict) and not data.get("slug") and data.get("name"):
            return {**data, "slug": slugify(str(data["name"]))}
        return data
