"""Typed links between any two story entities of a campaign."""
from __future__ import annotations

from enum import Enum
from typing import ClassVar

from pydantic import Field

from campaign_graph.models.common import CreateParams, ListOptions, NodeModel, Patch


class EntityType(str, Enum):
    """Entity kinds a relationship can join."""

    CHARACTER = "CHARACTER"
    LOCATION = "LOCATION"
    EVENT = "EVENT"
    ITEM = "ITEM"

    @property
    def label(self) -> str:
        return self.value.capitalize()

    @property
    def id_field(self) -> str:
        return f"{self.value.lower()}_id"


class Relationship(NodeModel):
    """A ``Relationship`` node: ``RELATES`` its source, ``RELATES_TO`` its target.

    An endpoint id reads as ``None`` once that entity is gone.
    """

    relationship_id: str
    campaign_id: str | None = None
    source_entity_id: str | None = None
    source_entity_type: EntityType
    target_entity_id: str | None = None
    target_entity_type: EntityType
    relationship_type: str
    description: str | None = None


class RelationshipCreate(CreateParams):
    campaign_id: str
    source_entity_id: str
    source_entity_type: EntityType
    target_entity_id: str
    target_entity_type: EntityType
    relationship_type: str = Field(min_length=1, description="Free text, e.g. 'guards', 'was forged in'")
    description: str | None = None


class RelationshipUpdate(Patch):
    """Only the kind and description change; endpoints are fixed at creation."""

    not_nullable: ClassVar[frozenset[str]] = frozenset({"relationship_type"})

    relationship_type: str | None = Field(default=None, min_length=1)
    description: str | None = None


class RelationshipFilter(ListOptions):
    campaign_id: str | None = None
    source_entity_id: str | None = None
    source_entity_type: EntityType | None = None
    target_entity_id: str | None = None
    target_entity_type: EntityType | None = None
    relationship_type: str | None = None
    # Either end
    entity_id: str | None = None
    entity_type: EntityType | None = None
