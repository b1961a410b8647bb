"""Pydantic data models."""

from .analysis import (
    AnalysisStatus,
    CharacterInsight,
    CharacterInteraction,
    KeyPoint,
    PlotDevelopment,
    RelatedEntity,
    SessionAnalysis,
    SessionAnalysisCreate,
    SessionAnalysisUpdate,
    Topic,
)
from .audio import (
    AudioRecording,
    AudioRecordingCreate,
    AudioRecordingUpdate,
    Speaker,
    SpeakerIdentification,
    SpeakerUpsert,
    Transcription,
    TranscriptionCreate,
    TranscriptionSegment,
    TranscriptionStatus,
    TranscriptionUpdate,
)
from .campaign import (
    Campaign,
    CampaignCreate,
    CampaignStatistics,
    CampaignUpdate,
    Session,
    SessionCreate,
    SessionUpdate,
    World,
    WorldCreate,
    WorldUpdate,
)
from .character import (
    Character,
    CharacterCreate,
    CharacterRelationship,
    CharacterRelationshipCreate,
    CharacterRelationshipUpdate,
    CharacterUpdate,
)
from .common import ListOptions, Page, SortDirection
from .event import Event, EventCharacter, EventCreate, EventItem, EventUpdate
from .graph import EdgeType, GraphData, GraphEdge, GraphNode, GraphQuery, NodeType
from .item import CharacterItem, Item, ItemCreate, ItemUpdate, LocationItem
from .location import Location, LocationCreate, LocationFilter, LocationUpdate
from .power import CharacterPower, Power, PowerCreate, PowerUpdate
from .proposal import ChangeProposal, ChangeProposalCreate, ProposalBatch, ProposalStatus
from .relationship import EntityType, Relationship, RelationshipCreate, RelationshipFilter, RelationshipUpdate

__all__ = [
    "ListOptions",
    "Page",
    "SortDirection",
    "World",
    "WorldCreate",
    "WorldUpdate",
    "Campaign",
    "CampaignCreate",
    "CampaignUpdate",
    "CampaignStatistics",
    "Session",
    "SessionCreate",
    "SessionUpdate",
    "Character",
    "CharacterCreate",
    "CharacterUpdate",
    "CharacterRelationship",
    "CharacterRelationshipCreate",
    "CharacterRelationshipUpdate",
    "Location",
    "LocationCreate",
    "LocationUpdate",
    "LocationFilter",
    "Item",
    "ItemCreate",
    "ItemUpdate",
    "CharacterItem",
    "LocationItem",
    "Power",
    "PowerCreate",
    "PowerUpdate",
    "CharacterPower",
    "Event",
    "EventCreate",
    "EventUpdate",
    "EventCharacter",
    "EventItem",
    "EntityType",
    "Relationship",
    "RelationshipCreate",
    "RelationshipUpdate",
    "RelationshipFilter",
    "AudioRecording",
    "AudioRecordingCreate",
    "AudioRecordingUpdate",
    "Transcription",
    "TranscriptionCreate",
    "TranscriptionUpdate",
    "TranscriptionSegment",
    "TranscriptionStatus",
    "Speaker",
    "SpeakerUpsert",
    "SpeakerIdentification",
    "AnalysisStatus",
    "SessionAnalysis",
    "SessionAnalysisCreate",
    "SessionAnalysisUpdate",
    "KeyPoint",
    "CharacterInsight",
    "CharacterInteraction",
    "PlotDevelopment",
    "RelatedEntity",
    "Topic",
    "ChangeProposal",
    "ChangeProposalCreate",
    "ProposalBatch",
    "ProposalStatus",
    "NodeType",
    "EdgeType",
    "GraphNode",
    "GraphEdge",
    "GraphData",
    "GraphQuery",
]
