"""Characters and the typed relationships between them."""
from __future__ import annotations

from datetime import datetime
from typing import ClassVar

from pydantic import BaseModel, Field, model_validator

from campaign_graph.models.common import CreateParams, ListOptions, NodeModel, Patch


class Character(NodeModel):
    """A player or non-player character of a campaign."""

    character_id: str
    campaign_id: str | None = None
    name: str
    description: str | None = None
    character_type: str | None = Field(default=None, description="Free-form, e.g. 'NPC', 'villain'")
    is_player_character: bool = False
    player_id: str | None = None


class CharacterCreate(CreateParams):
    campaign_id: str
    name: str = Field(min_length=1)
    description: str | None = None
    character_type: str | None = None
    is_player_character: bool = False
    player_id: str | None = None


class CharacterUpdate(Patch):
    campaign_id: str | None = None
    name: str | None = Field(default=None, min_length=1)
    description: str | None = None
    character_type: str | None = None
    is_player_character: bool | None = None
    player_id: str | None = None


class CharacterFilter(ListOptions):
    campaign_id: str | None = None
    character_type: str | None = None
    is_player_character: bool | None = None


class CharacterRelationship(BaseModel):
    """A directed ``RELATES_TO`` edge between two characters."""

    relationship_id: str
    source_character_id: str
    target_character_id: str
    relationship_type: str
    description: str | None = None
    created_at: datetime
    updated_at: datetime | None = None


class CharacterRelationshipCreate(BaseModel):
    source_character_id: str
    target_character_id: str
    relationship_type: str = Field(min_length=1, description="e.g. 'ally', 'rival', 'sibling'")
    description: str | None = None

    @model_validator(mode="after")
    def validate_endpoints(self) -> CharacterRelationshipCreate:
        if self.source_character_id == self.target_character_id:
            raise ValueError("A character cannot relate to itself")
        return self


class CharacterRelationshipUpdate(Patch):
    """Only the edge's own fields; endpoints are fixed once created."""

    not_nullable: ClassVar[frozenset[str]] = frozenset({"relationship_type"})

    relationship_type: str | None = Field(default=None, min_length=1)
    description: str | None = None
