"""Locations and their containment hierarchy."""
from __future__ import annotations

from pydantic import Field

from campaign_graph.models.common import CreateParams, ListOptions, NodeModel, Patch


class Location(NodeModel):
    """A place; optionally ``LOCATED_IN`` one parent location."""

    location_id: str
    campaign_id: str | None = None
    parent_location_id: str | None = None
    name: str
    description: str | None = None
    location_type: str | None = Field(default=None, description="e.g. 'city', 'dungeon', 'region'")


class LocationCreate(CreateParams):
    campaign_id: str
    parent_location_id: str | None = None
    name: str = Field(min_length=1)
    description: str | None = None
    location_type: str | None = None


class LocationUpdate(Patch):
    campaign_id: str | None = None
    parent_location_id: str | None = None
    name: str | None = Field(default=None, min_length=1)
    description: str | None = None
    location_type: str | None = None


class LocationFilter(ListOptions):
    campaign_id: str | None = None
    parent_location_id: str | None = None
    top_level_only: bool = False
    location_type: str | None = None
