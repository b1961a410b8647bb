"""Worlds, campaigns and sessions: the containment spine of the graph."""
from __future__ import annotations

from pydantic import BaseModel, Field

from campaign_graph.models.common import CreateParams, ListOptions, NodeModel, Patch


class World(NodeModel):
    """A game world (stored as ``RPGWorld``), root of containment."""

    world_id: str
    name: str
    description: str | None = None
    system_version: str | None = Field(default=None, description="Rules system and edition, e.g. '5e'")
    genre: str | None = None
    tags: list[str] = Field(default_factory=list)
    image_url: str | None = None


class WorldCreate(CreateParams):
    name: str = Field(min_length=1)
    description: str | None = None
    system_version: str | None = None
    genre: str | None = None
    tags: list[str] = Field(default_factory=list)
    image_url: str | None = None


class WorldUpdate(Patch):
    name: str | None = Field(default=None, min_length=1)
    description: str | None = None
    system_version: str | None = None
    genre: str | None = None
    tags: list[str] | None = None
    image_url: str | None = None


class WorldFilter(ListOptions):
    genre: str | None = None


class Campaign(NodeModel):
    """A campaign played in one world."""

    campaign_id: str
    world_id: str | None = None
    name: str
    description: str | None = None
    status: str | None = None
    is_active: bool = True
    start_date: str | None = None
    end_date: str | None = None
    tags: list[str] = Field(default_factory=list)
    image_url: str | None = None


class CampaignCreate(CreateParams):
    world_id: str
    name: str = Field(min_length=1)
    description: str | None = None
    status: str | None = None
    is_active: bool = True
    start_date: str | None = None
    end_date: str | None = None
    tags: list[str] = Field(default_factory=list)
    image_url: str | None = None


class CampaignUpdate(Patch):
    world_id: str | None = None
    name: str | None = Field(default=None, min_length=1)
    description: str | None = None
    status: str | None = None
    is_active: bool | None = None
    start_date: str | None = None
    end_date: str | None = None
    tags: list[str] | None = None
    image_url: str | None = None


class CampaignFilter(ListOptions):
    world_id: str | None = None
    is_active: bool | None = None
    status: str | None = None


class CampaignStatistics(BaseModel):
    """Counts of what a campaign owns."""

    campaign_id: str
    sessions: int = 0
    characters: int = 0
    locations: int = 0
    items: int = 0
    events: int = 0
    powers: int = 0


class Session(NodeModel):
    """One play session of a campaign."""

    session_id: str
    campaign_id: str | None = None
    name: str
    description: str | None = None
    number: int | None = None
    date: str | None = None
    duration_minutes: int | None = None
    is_completed: bool = False
    summary: str | None = None


class SessionCreate(CreateParams):
    campaign_id: str
    name: str = Field(min_length=1)
    description: str | None = None
    number: int | None = Field(default=None, ge=0)
    date: str | None = None
    duration_minutes: int | None = Field(default=None, ge=0)
    is_completed: bool = False
    summary: str | None = None


class SessionUpdate(Patch):
    campaign_id: str | None = None
    name: str | None = Field(default=None, min_length=1)
    description: str | None = None
    number: int | None = Field(default=None, ge=0)
    date: str | None = None
    duration_minutes: int | None = Field(default=None, ge=0)
    is_completed: bool | None = None
    summary: str | None = None


class SessionFilter(ListOptions):
    campaign_id: str | None = None
    is_completed: bool | None = None
