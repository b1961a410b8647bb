"""Change proposals: reviewable suggestions to edit the campaign graph."""
from __future__ import annotations

from datetime import UTC, datetime
from enum import Enum
from typing import Annotated, Any, ClassVar

from pydantic import BaseModel, BeforeValidator, Field

from campaign_graph.models.common import CreateParams, JsonDict, ListOptions, NodeModel, Patch, decode_json, new_id
from campaign_graph.models.graph import NodeType


class ProposalStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    MODIFIED = "modified"


class ProposalType(str, Enum):
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"
    RELATE = "relate"


class ProposalEntityType(str, Enum):
    """What a proposal targets; every value but ``relationship`` is a node type."""

    WORLD = "world"
    CAMPAIGN = "campaign"
    SESSION = "session"
    CHARACTER = "character"
    LOCATION = "location"
    ITEM = "item"
    EVENT = "event"
    POWER = "power"
    RELATIONSHIP = "relationship"

    @property
    def node_type(self) -> NodeType | None:
        if self is ProposalEntityType.RELATIONSHIP:
            return None
        return NodeType(self.value)


class ChangeField(BaseModel):
    field: str
    old_value: Any = None
    new_value: Any = None
    description: str | None = None


class RelationshipChange(BaseModel):
    source_id: str
    source_type: ProposalEntityType
    target_id: str
    target_type: ProposalEntityType
    relationship_type: str
    properties: dict[str, Any] = Field(default_factory=dict)


class ProposalComment(BaseModel):
    comment_id: str = Field(default_factory=new_id)
    content: str = Field(min_length=1)
    created_by: str
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))


class EntityRef(BaseModel):
    """Short description of a node a proposal points at."""

    id: str
    name: str | None = None
    type: str


class ChangeProposal(NodeModel):
    proposal_id: str
    proposal_type: ProposalType
    entity_type: ProposalEntityType
    entity_id: str | None = None
    context_id: str | None = Field(default=None, description="Campaign or session the proposal was made in")
    title: str
    description: str | None = None
    reason: str | None = None
    status: ProposalStatus = ProposalStatus.PENDING
    changes: Annotated[list[ChangeField], BeforeValidator(decode_json)] = Field(default_factory=list)
    relationship_changes: Annotated[list[RelationshipChange], BeforeValidator(decode_json)] = Field(
        default_factory=list
    )
    comments: Annotated[list[ProposalComment], BeforeValidator(decode_json)] = Field(default_factory=list)
    prompt_id: str | None = None
    llm_model: str | None = None
    metadata: JsonDict = None
    reviewed_by: str | None = None
    reviewed_at: datetime | None = None

    entity_details: EntityRef | None = None
    context_details: EntityRef | None = None


class ChangeProposalCreate(CreateParams):
    proposal_type: ProposalType
    entity_type: ProposalEntityType
    entity_id: str | None = None
    context_id: str | None = None
    title: str = Field(min_length=1)
    description: str | None = None
    reason: str | None = None
    changes: list[ChangeField] = Field(default_factory=list)
    relationship_changes: list[RelationshipChange] = Field(default_factory=list)
    prompt_id: str | None = None
    llm_model: str | None = None
    metadata: dict[str, Any] | None = None


class ChangeProposalUpdate(Patch):
    not_nullable: ClassVar[frozenset[str]] = frozenset({"title", "status"})

    title: str | None = Field(default=None, min_length=1)
    description: str | None = None
    reason: str | None = None
    status: ProposalStatus | None = None
    changes: list[ChangeField] | None = None
    relationship_changes: list[RelationshipChange] | None = None
    metadata: dict[str, Any] | None = None


class ProposalFilter(ListOptions):
    statuses: list[ProposalStatus] = Field(default_factory=list)
    types: list[ProposalType] = Field(default_factory=list)
    entity_types: list[ProposalEntityType] = Field(default_factory=list)
    entity_id: str | None = None
    context_id: str | None = None
    created_by: str | None = None
    created_after: datetime | None = None
    created_before: datetime | None = None


class ProposalBatch(NodeModel):
    """A reviewable group of proposals."""

    batch_id: str
    title: str
    description: str | None = None
    status: ProposalStatus = ProposalStatus.PENDING
    context_id: str | None = None
    proposal_ids: list[str] = Field(default_factory=list)
    proposals: list[ChangeProposal] = Field(default_factory=list)
    context_details: EntityRef | None = None


class ProposalBatchCreate(CreateParams):
    title: str = Field(min_length=1)
    description: str | None = None
    context_id: str | None = None
    proposal_ids: list[str] = Field(default_factory=list)


class ProposalBatchUpdate(Patch):
    not_nullable: ClassVar[frozenset[str]] = frozenset({"title", "status"})

    title: str | None = Field(default=None, min_length=1)
    description: str | None = None
    status: ProposalStatus | None = None
