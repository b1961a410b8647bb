"""Session analysis aggregate.

An analysis node owns four collections of child nodes. Each child carries its
own identifier so a collection can be replaced wholesale on update.
"""
from __future__ import annotations

from enum import Enum
from typing import Any, ClassVar

from pydantic import BaseModel, ConfigDict, Field

from campaign_graph.models.common import CreateParams, JsonDict, ListOptions, NodeModel, Patch, new_id


class AnalysisStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


class KeyPointCategory(str, Enum):
    DECISION = "decision"
    DISCOVERY = "discovery"
    COMBAT = "combat"
    INTERACTION = "interaction"
    QUEST = "quest"
    LORE = "lore"
    PLOT = "plot"
    OTHER = "other"


class RelatedEntityType(str, Enum):
    CHARACTER = "character"
    LOCATION = "location"
    ITEM = "item"
    EVENT = "event"
    OTHER = "other"


class _Child(BaseModel):
    model_config = ConfigDict(extra="ignore")


class KeyPoint(_Child):
    key_point_id: str = Field(default_factory=new_id)
    text: str
    segment_ids: list[str] = Field(default_factory=list)
    importance_score: float = Field(default=0.0, ge=0.0, le=1.0)
    category: KeyPointCategory = KeyPointCategory.OTHER


class CharacterInteraction(_Child):
    interaction_id: str = Field(default_factory=new_id)
    name: str = Field(description="The other party in the interaction")
    interaction_count: int = Field(default=0, ge=0)
    sentiment_score: float | None = Field(default=None, ge=-1.0, le=1.0)
    context: str | None = None


class CharacterInsight(_Child):
    insight_id: str = Field(default_factory=new_id)
    name: str
    character_id: str | None = None
    speaker_id: str | None = None
    participation_score: float = Field(default=0.0, ge=0.0, le=1.0)
    sentiment_score: float | None = Field(default=None, ge=-1.0, le=1.0)
    topics_of_interest: list[str] = Field(default_factory=list)
    notable_quotes: list[str] = Field(default_factory=list)
    interactions: list[CharacterInteraction] = Field(default_factory=list)


class RelatedEntity(_Child):
    related_entity_id: str = Field(default_factory=new_id)
    entity_id: str | None = None
    entity_type: RelatedEntityType = RelatedEntityType.OTHER
    name: str
    relevance_score: float = Field(default=0.0, ge=0.0, le=1.0)


class PlotDevelopment(_Child):
    plot_development_id: str = Field(default_factory=new_id)
    title: str
    description: str | None = None
    segment_ids: list[str] = Field(default_factory=list)
    importance_score: float = Field(default=0.0, ge=0.0, le=1.0)
    related_entities: list[RelatedEntity] = Field(default_factory=list)


class Topic(_Child):
    topic_id: str = Field(default_factory=new_id)
    name: str
    keywords: list[str] = Field(default_factory=list)
    relevance_score: float = Field(default=0.0, ge=0.0, le=1.0)
    segment_ids: list[str] = Field(default_factory=list)


class SessionAnalysis(NodeModel):
    """Analysis of one session, assembled with all child collections."""

    analysis_id: str
    session_id: str | None = None
    transcription_id: str | None = None
    status: AnalysisStatus = AnalysisStatus.PENDING
    summary: str | None = None
    sentiment_analysis: JsonDict = None
    metadata: JsonDict = None
    error: str | None = None

    key_points: list[KeyPoint] = Field(default_factory=list)
    character_insights: list[CharacterInsight] = Field(default_factory=list)
    plot_developments: list[PlotDevelopment] = Field(default_factory=list)
    topics: list[Topic] = Field(default_factory=list)


class SessionAnalysisCreate(CreateParams):
    session_id: str
    transcription_id: str | None = None
    status: AnalysisStatus = AnalysisStatus.PENDING
    summary: str | None = None
    sentiment_analysis: dict[str, Any] | None = None
    metadata: dict[str, Any] | None = None
    error: str | None = None

    key_points: list[KeyPoint] = Field(default_factory=list)
    character_insights: list[CharacterInsight] = Field(default_factory=list)
    plot_developments: list[PlotDevelopment] = Field(default_factory=list)
    topics: list[Topic] = Field(default_factory=list)


class SessionAnalysisUpdate(Patch):
    """Scalar fields patch in place; any collection present replaces the stored one."""

    not_nullable: ClassVar[frozenset[str]] = frozenset({"status"})

    status: AnalysisStatus | None = None
    summary: str | None = None
    sentiment_analysis: dict[str, Any] | None = None
    metadata: dict[str, Any] | None = None
    error: str | None = None

    key_points: list[KeyPoint] | None = None
    character_insights: list[CharacterInsight] | None = None
    plot_developments: list[PlotDevelopment] | None = None
    topics: list[Topic] | None = None


class SessionAnalysisFilter(ListOptions):
    session_id: str | None = None
    transcription_id: str | None = None
    status: AnalysisStatus | None = None
