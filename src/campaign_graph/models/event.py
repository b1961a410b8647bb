"""Campaign events and their timeline."""
from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import ClassVar

from pydantic import BaseModel, Field

from campaign_graph.models.common import CreateParams, ListOptions, NodeModel, Patch


class EventType(str, Enum):
    BATTLE = "BATTLE"
    SOCIAL = "SOCIAL"
    EXPLORATION = "EXPLORATION"
    DISCOVERY = "DISCOVERY"
    QUEST = "QUEST"
    TRAVEL = "TRAVEL"
    REST = "REST"
    OTHER = "OTHER"


class Event(NodeModel):
    """Something that happened in the campaign, ordered by ``timeline_position``."""

    event_id: str
    campaign_id: str | None = None
    session_id: str | None = None
    location_id: str | None = None
    name: str
    description: str | None = None
    event_type: EventType = EventType.OTHER
    event_date: str | None = Field(default=None, description="In-game date, free-form")
    timeline_position: int = 0


class EventCreate(CreateParams):
    campaign_id: str
    session_id: str | None = None
    location_id: str | None = None
    name: str = Field(min_length=1)
    description: str | None = None
    event_type: EventType = EventType.OTHER
    event_date: str | None = None
    timeline_position: int | None = Field(default=None, description="Appended to the timeline when omitted")


class EventUpdate(Patch):
    not_nullable: ClassVar[frozenset[str]] = frozenset({"name", "event_type", "timeline_position"})

    campaign_id: str | None = None
    session_id: str | None = None
    location_id: str | None = None
    name: str | None = Field(default=None, min_length=1)
    description: str | None = None
    event_type: EventType | None = None
    event_date: str | None = None
    timeline_position: int | None = None


class EventFilter(ListOptions):
    campaign_id: str | None = None
    session_id: str | None = None
    location_id: str | None = None
    event_type: EventType | None = None


class EventCharacter(BaseModel):
    """Join node: a character's part in an event."""

    event_character_id: str
    event_id: str
    character_id: str
    role: str | None = None
    notes: str | None = None
    created_at: datetime
    updated_at: datetime | None = None


class EventCharacterCreate(BaseModel):
    event_id: str
    character_id: str
    role: str | None = None
    notes: str | None = None


class EventItem(BaseModel):
    """Join node: an item's part in an event."""

    event_item_id: str
    event_id: str
    item_id: str
    role: str | None = None
    notes: str | None = None
    created_at: datetime
    updated_at: datetime | None = None


class EventItemCreate(BaseModel):
    event_id: str
    item_id: str
    role: str | None = None
    notes: str | None = None


class EventParticipationUpdate(Patch):
    """Patch for either event join: only role and notes change."""

    role: str | None = None
    notes: str | None = None
