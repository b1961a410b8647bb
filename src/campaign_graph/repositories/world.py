"""Repository for game worlds, the roots of containment."""
from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING

from campaign_graph.models.campaign import Campaign, World, WorldFilter
from campaign_graph.repositories.base import BaseRepository

if TYPE_CHECKING:
    from campaign_graph.db.executor import Transaction


class WorldSort(str, Enum):
    NAME = "name"
    GENRE = "genre"
    CREATED_AT = "created_at"
    UPDATED_AT = "updated_at"


class WorldRepository(BaseRepository[World]):
    """Worlds (``RPGWorld`` nodes). A world with campaigns cannot be deleted."""

    label = "RPGWorld"
    id_field = "world_id"
    model = World
    filter_model = WorldFilter
    sort_fields = WorldSort
    filter_fields = {"genre": "n.genre"}

    def find_by_name(self, name: str) -> World | None:
        def work(tx: Transaction) -> World | None:
            rows = tx.run(
                """
                MATCH (n:RPGWorld)
                WHERE toLower(n.name) = toLower($name)
                RETURN n {.*} AS entity
                ORDER BY n.created_at ASC
                LIMIT 1
                """,
                {"name": name},
            )
            return World.model_validate(rows[0]["entity"]) if rows else None

        return self._read("find_by_name", work)

    def get_campaigns(self, world_id: str) -> list[Campaign]:
        """Campaigns set in a world, by name."""

        def work(tx: Transaction) -> list[Campaign]:
            rows = tx.run(
                """
                MATCH (c:Campaign)-[:PART_OF]->(w:RPGWorld {world_id: $id})
                RETURN c {.*, world_id: w.world_id} AS entity
                ORDER BY c.name ASC
                """,
                {"id": world_id},
            )
            return [Campaign.model_validate(row["entity"]) for row in rows]

        return self._read("get_campaigns", work)

    def _before_delete(self, tx: Transaction, entity_id: str) -> None:
        self._guard(tx, entity_id, "(n)<-[:PART_OF]-(:Campaign)", "world still has campaigns")
