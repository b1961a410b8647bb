"""Generic node/edge shapes for rendering parts of the campaign graph."""
from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, Field, model_validator


class NodeType(str, Enum):
    """Entity kinds that can be drawn."""

    WORLD = "world"
    CAMPAIGN = "campaign"
    SESSION = "session"
    CHARACTER = "character"
    LOCATION = "location"
    ITEM = "item"
    EVENT = "event"
    POWER = "power"

    @property
    def label(self) -> str:
        return NODE_LABELS[self][0]

    @property
    def id_field(self) -> str:
        return NODE_LABELS[self][1]


# (node label, identifier property)
NODE_LABELS: dict[NodeType, tuple[str, str]] = {
    NodeType.WORLD: ("RPGWorld", "world_id"),
    NodeType.CAMPAIGN: ("Campaign", "campaign_id"),
    NodeType.SESSION: ("Session", "session_id"),
    NodeType.CHARACTER: ("Character", "character_id"),
    NodeType.LOCATION: ("Location", "location_id"),
    NodeType.ITEM: ("Item", "item_id"),
    NodeType.EVENT: ("Event", "event_id"),
    NodeType.POWER: ("Power", "power_id"),
}

LABEL_TO_NODE_TYPE: dict[str, NodeType] = {label: node_type for node_type, (label, _) in NODE_LABELS.items()}


class EdgeType(str, Enum):
    """Relationship types between drawable entities."""

    # Containment
    PART_OF = "PART_OF"
    BELONGS_TO = "BELONGS_TO"
    LOCATED_IN = "LOCATED_IN"

    # Participation
    APPEARS_IN = "APPEARS_IN"
    OCCURRED_IN = "OCCURRED_IN"
    OCCURRED_AT = "OCCURRED_AT"

    # Character to character
    RELATES_TO = "RELATES_TO"

    # Stored through a join node, drawn as one edge from owner to target
    HAS_POWER = "HAS_POWER"
    HAS_ITEM = "HAS_ITEM"
    CONTAINS_ITEM = "CONTAINS_ITEM"
    PARTICIPATED_IN = "PARTICIPATED_IN"
    FEATURED_IN = "FEATURED_IN"


class GraphNode(BaseModel):
    id: str
    label: str = ""
    type: NodeType
    image_url: str | None = Field(default=None, serialization_alias="imageUrl")
    properties: dict[str, Any] = Field(default_factory=dict)


class GraphEdge(BaseModel):
    id: str
    source: str
    target: str
    type: str
    label: str = ""
    properties: dict[str, Any] = Field(default_factory=dict)


class GraphData(BaseModel):
    """Deduplicated nodes and edges ready for a renderer."""

    nodes: list[GraphNode] = Field(default_factory=list)
    edges: list[GraphEdge] = Field(default_factory=list)

    def to_json_dict(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


class GraphQuery(BaseModel):
    """Where to start a mind-map expansion and how far to go.

    At most one start id may be given. Without one the repository returns a
    bounded sample of the whole graph instead.
    """

    world_id: str | None = None
    campaign_id: str | None = None
    session_id: str | None = None
    character_id: str | None = None
    location_id: str | None = None
    item_id: str | None = None
    event_id: str | None = None
    power_id: str | None = None

    depth: int = Field(default=2, ge=1, le=5)
    node_types: list[NodeType] | None = None
    edge_types: list[EdgeType] | None = None
    limit: int = Field(default=50, ge=1, le=500, description="Sample size when no start entity is given")
    include_images: bool = True

    @model_validator(mode="after")
    def validate_single_start(self) -> GraphQuery:
        if len(self.starts()) > 1:
            raise ValueError("Provide at most one starting entity id")
        return self

    def starts(self) -> list[tuple[NodeType, str]]:
        return [
            (node_type, getattr(self, node_type.id_field))
            for node_type in NodeType
            if getattr(self, node_type.id_field) is not None
        ]

    @property
    def start(self) -> tuple[NodeType, str] | None:
        starts = self.starts()
        return starts[0] if starts else None
