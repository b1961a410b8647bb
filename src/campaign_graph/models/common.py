"""Shared pieces of the data-transfer models."""
from __future__ import annotations

import json
from datetime import UTC, datetime
from enum import Enum
from typing import Annotated, Any, ClassVar, Generic, TypeVar
from uuid import UUID

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, model_validator
from uuid_utils import uuid7 as _uuid7

T = TypeVar("T")


def new_id() -> str:
    """Generate a time-ordered UUID7 identifier."""
    return str(UUID(str(_uuid7())))


def utcnow() -> str:
    """Current UTC time as stored on nodes."""
    return datetime.now(UTC).isoformat()


def decode_json(value: Any) -> Any:
    if isinstance(value, str):
        return json.loads(value)
    return value


def to_property(value: Any) -> Any:
    """Convert a dumped model value into something a node property can hold.

    Nested maps, and lists containing maps, are stored as JSON text.
    """
    if isinstance(value, dict):
        return json.dumps(value)
    if isinstance(value, list) and any(isinstance(v, dict) for v in value):
        return json.dumps(value)
    return value


# Map-valued fields are persisted as JSON strings
JsonDict = Annotated[dict[str, Any] | None, BeforeValidator(decode_json)]


class SortDirection(str, Enum):
    """Ordering direction for listings."""

    ASC = "asc"
    DESC = "desc"


class ListOptions(BaseModel):
    """Pagination, search and ordering shared by every listing."""

    page: int = Field(default=1, ge=1)
    limit: int = Field(default=20, ge=1, le=100)
    search: str | None = Field(default=None, description="Substring matched against name/description")
    sort_by: str | None = None
    sort_direction: SortDirection | None = None

    @property
    def skip(self) -> int:
        return (self.page - 1) * self.limit


class Page(BaseModel, Generic[T]):
    """One page of a listing plus the size of the full result."""

    items: list[T]
    total: int
    page: int
    limit: int

    @property
    def pages(self) -> int:
        return (self.total + self.limit - 1) // self.limit


class NodeModel(BaseModel):
    """Fields every stored entity carries."""

    model_config = ConfigDict(extra="ignore")

    created_at: datetime
    updated_at: datetime | None = None
    created_by: str | None = None


class CreateParams(BaseModel):
    """Base for creation parameters."""

    def node_properties(self, exclude: set[str] | frozenset[str] = frozenset()) -> dict[str, Any]:
        """Node properties for the fields not handled as edges."""
        data = self.model_dump(mode="json", exclude=set(exclude))
        return {key: to_property(value) for key, value in data.items()}


class Patch(BaseModel):
    """Base for typed partial updates.

    Only the fields a caller actually set take part in the update. A field set
    to ``None`` removes the property (or, for foreign keys, the edge).
    """

    # Fields that may be changed but never cleared
    not_nullable: ClassVar[frozenset[str]] = frozenset({"name"})

    @model_validator(mode="after")
    def check_not_nullable(self) -> Patch:
        cleared = sorted(
            name for name in self.not_nullable
            if name in self.model_fields_set and getattr(self, name) is None
        )
        if cleared:
            raise ValueError(f"Fields cannot be cleared: {', '.join(cleared)}")
        return self

    def to_changes(self) -> dict[str, Any]:
        data = self.model_dump(mode="json", exclude_unset=True)
        return {key: to_property(value) for key, value in data.items()}

    def is_set(self, name: str) -> bool:
        return name in self.model_fields_set
