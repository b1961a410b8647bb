"""Repository for locations and their ``LOCATED_IN`` hierarchy.

The hierarchy is a forest: every location has at most one parent and no
location may end up as its own ancestor. Any write that attaches a parent
first checks for a cycle inside the same write transaction and aborts before
touching the graph when one would form.

Known limitation: the check and the write share a transaction but not a lock.
Two concurrent re-parentings under read-committed isolation can each pass
their check and together close a cycle.
"""
from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING, Any

from campaign_graph.exceptions import CircularReferenceError
from campaign_graph.models.common import ListOptions
from campaign_graph.models.location import Location, LocationCreate, LocationFilter, LocationUpdate
from campaign_graph.repositories.base import BaseRepository, Link

if TYPE_CHECKING:
    from campaign_graph.db.executor import Transaction
    from campaign_graph.models.common import CreateParams, Patch


class LocationSort(str, Enum):
    NAME = "name"
    LOCATION_TYPE = "location_type"
    CREATED_AT = "created_at"
    UPDATED_AT = "updated_at"


PARENT = Link("parent_location_id", "LOCATED_IN", "Location", "location_id")


class LocationRepository(BaseRepository[Location]):
    """Locations, ``BELONGS_TO`` a campaign and optionally ``LOCATED_IN`` a parent.

    A location with child locations cannot be deleted; its item placements
    are removed with it.
    """

    label = "Location"
    id_field = "location_id"
    model = Location
    filter_model = LocationFilter
    links = (Link("campaign_id", "BELONGS_TO", "Campaign", "campaign_id"), PARENT)
    sort_fields = LocationSort
    filter_fields = {
        "campaign_id": "campaign.campaign_id",
        "parent_location_id": "parent_location.location_id",
        "location_type": "n.location_type",
    }

    def _filters(self, options: ListOptions) -> tuple[list[str], dict[str, Any]]:
        where, params = super()._filters(options)
        if isinstance(options, LocationFilter) and options.top_level_only:
            where.append("parent_location IS NULL")
        return where, params

    # ---------------------------- Hierarchy ----------------------------

    def _would_cycle(self, tx: Transaction, location_id: str, parent_id: str) -> bool:
        rows = tx.run(
            """
            MATCH (proposed:Location {location_id: $parent_id})
            MATCH (location:Location {location_id: $location_id})
            RETURN proposed = location OR EXISTS { (proposed)-[:LOCATED_IN*1..]->(location) } AS cycle
            """,
            {"parent_id": parent_id, "location_id": location_id},
        )
        return bool(rows) and bool(rows[0]["cycle"])

    def check_circular_reference(self, location_id: str, parent_id: str) -> bool:
        """Whether making ``parent_id`` the parent of ``location_id`` would form a cycle.

        True when ``location_id`` is reachable from ``parent_id`` by following
        ``LOCATED_IN`` edges (the proposed parent is the location itself or one
        of its descendants).
        """
        return self._read("check_circular_reference", lambda tx: self._would_cycle(tx, location_id, parent_id))

    def has_children(self, location_id: str) -> bool:
        def work(tx: Transaction) -> bool:
            rows = tx.run(
                f"{self._match()}\nRETURN EXISTS {{ (n)<-[:LOCATED_IN]-(:Location) }} AS has_children",
                {"id": location_id},
            )
            return bool(rows) and bool(rows[0]["has_children"])

        return self._read("has_children", work)

    def get_children(self, location_id: str) -> list[Location]:
        """Direct children, by name."""

        def work(tx: Transaction) -> list[Location]:
            rows = tx.run(
                f"""
                MATCH (n:Location)-[:LOCATED_IN]->(:Location {{location_id: $id}})
                {self._hydrate_matches()}
                RETURN {self._projection()} AS entity
                ORDER BY n.name ASC
                """,
                {"id": location_id},
            )
            return [Location.model_validate(row["entity"]) for row in rows]

        return self._read("get_children", work)

    def get_ancestors(self, location_id: str) -> list[Location]:
        """Ancestors from the direct parent up to the root."""

        def work(tx: Transaction) -> list[Location]:
            rows = tx.run(
                f"""
                MATCH path = (:Location {{location_id: $id}})-[:LOCATED_IN*1..]->(n:Location)
                WITH n, length(path) AS distance
                {self._hydrate_matches()}
                RETURN {self._projection()} AS entity
                ORDER BY distance ASC
                """,
                {"id": location_id},
            )
            return [Location.model_validate(row["entity"]) for row in rows]

        return self._read("get_ancestors", work)

    # ---------------------------- Hooks ----------------------------

    def _before_create(self, tx: Transaction, params: CreateParams, props: dict[str, Any]) -> None:
        # A new node has no descendants, so only the parent's existence matters
        if isinstance(params, LocationCreate) and params.parent_location_id is not None:
            self._require(tx, "Location", "location_id", params.parent_location_id)

    def _before_update(self, tx: Transaction, entity_id: str, patch: Patch) -> None:
        if not isinstance(patch, LocationUpdate) or not patch.is_set(PARENT.field):
            return
        parent_id = patch.parent_location_id
        if parent_id is None:
            return
        self._require(tx, "Location", "location_id", parent_id)
        if self._would_cycle(tx, entity_id, parent_id):
            raise CircularReferenceError("Location", entity_id)

    def _before_delete(self, tx: Transaction, entity_id: str) -> None:
        self._guard(tx, entity_id, "(n)<-[:LOCATED_IN]-(:Location)", "location still has child locations")
        self._drop_relationships(tx, entity_id)
        tx.run(
            f"""
            {self._match()}-[:CONTAINS_ITEM]->(j:LocationItem)
            DETACH DELETE j
            """,
            {"id": entity_id},
        )
