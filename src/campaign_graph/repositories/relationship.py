"""Repository for free-form relationships between story entities.

A relationship is a node of its own rather than an edge, so it can join any
pair of characters, locations, events and items and still carry an id, a
campaign and a creator::

    (source)<-[:RELATES]-(r:Relationship)-[:RELATES_TO]->(target)
                          (r)-[:BELONGS_TO]->(:Campaign)

The endpoint labels come from the stored ``source_entity_type`` and
``target_entity_type``; the endpoints themselves never change after creation.
Deleting an endpoint entity deletes the relationships that point at it.
"""
from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING, Any

from campaign_graph.models.common import ListOptions, SortDirection
from campaign_graph.models.relationship import Relationship, RelationshipCreate, RelationshipFilter
from campaign_graph.repositories.base import BaseRepository, Link

if TYPE_CHECKING:
    from campaign_graph.db.executor import Transaction
    from campaign_graph.models.common import CreateParams


class RelationshipSort(str, Enum):
    RELATIONSHIP_TYPE = "relationship_type"
    SOURCE_ENTITY_TYPE = "source_entity_type"
    TARGET_ENTITY_TYPE = "target_entity_type"
    CREATED_AT = "created_at"
    UPDATED_AT = "updated_at"


# Endpoint id read through the identifier property its type names
SOURCE_ID = "source[toLower(n.source_entity_type) + '_id']"
TARGET_ID = "target[toLower(n.target_entity_type) + '_id']"

# (end, edge from the relationship node)
ENDS = (("source", "RELATES"), ("target", "RELATES_TO"))


class RelationshipRepository(BaseRepository[Relationship]):
    """Relationships, ``BELONGS_TO`` a campaign."""

    label = "Relationship"
    id_field = "relationship_id"
    model = Relationship
    filter_model = RelationshipFilter
    links = (Link("campaign_id", "BELONGS_TO", "Campaign", "campaign_id"),)
    extra_matches = (
        "OPTIONAL MATCH (n)-[:RELATES]->(source)",
        "OPTIONAL MATCH (n)-[:RELATES_TO]->(target)",
    )
    extra_scope = ("source", "target")
    extra_fields = (f"source_entity_id: {SOURCE_ID}", f"target_entity_id: {TARGET_ID}")
    non_properties = frozenset({"source_entity_id", "target_entity_id"})
    sort_fields = RelationshipSort
    default_sort = ("created_at", SortDirection.DESC)
    search_fields = ("relationship_type", "description")
    filter_fields = {
        "campaign_id": "campaign.campaign_id",
        "source_entity_id": SOURCE_ID,
        "source_entity_type": "n.source_entity_type",
        "target_entity_id": TARGET_ID,
        "target_entity_type": "n.target_entity_type",
        "relationship_type": "n.relationship_type",
    }

    def _filters(self, options: ListOptions) -> tuple[list[str], dict[str, Any]]:
        where, params = super()._filters(options)
        if not isinstance(options, RelationshipFilter):
            return where, params
        if options.entity_id is not None:
            where.append(f"({SOURCE_ID} = $entity_id OR {TARGET_ID} = $entity_id)")
            params["entity_id"] = options.entity_id
        if options.entity_type is not None:
            where.append("(n.source_entity_type = $entity_type OR n.target_entity_type = $entity_type)")
            params["entity_type"] = options.entity_type.value
        return where, params

    def _after_create(self, tx: Transaction, entity_id: str, params: CreateParams) -> None:
        if not isinstance(params, RelationshipCreate):
            return
        for end, rel_type in ENDS:
            entity_type = getattr(params, f"{end}_entity_type")
            link = Link(f"{end}_entity_id", rel_type, entity_type.label, entity_type.id_field)
            self._link(tx, entity_id, link, getattr(params, link.field))
