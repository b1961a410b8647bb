"""Repository for campaigns."""
from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING

from campaign_graph.models.campaign import Campaign, CampaignFilter, CampaignStatistics, Session
from campaign_graph.repositories.base import BaseRepository, Link

if TYPE_CHECKING:
    from campaign_graph.db.executor import Transaction


class CampaignSort(str, Enum):
    NAME = "name"
    STATUS = "status"
    START_DATE = "start_date"
    CREATED_AT = "created_at"
    UPDATED_AT = "updated_at"


# (label, edge into the campaign) for everything a campaign owns
OWNED = (
    ("sessions", "Session", "PART_OF"),
    ("characters", "Character", "BELONGS_TO"),
    ("locations", "Location", "BELONGS_TO"),
    ("items", "Item", "BELONGS_TO"),
    ("events", "Event", "BELONGS_TO"),
    ("powers", "Power", "BELONGS_TO"),
)


class CampaignRepository(BaseRepository[Campaign]):
    """Campaigns, ``PART_OF`` a world.

    A campaign that still owns sessions, characters, locations, items, events,
    powers or relationships cannot be deleted.
    """

    label = "Campaign"
    id_field = "campaign_id"
    model = Campaign
    filter_model = CampaignFilter
    links = (Link("world_id", "PART_OF", "RPGWorld", "world_id"),)
    sort_fields = CampaignSort
    filter_fields = {"world_id": "world.world_id", "is_active": "n.is_active", "status": "n.status"}

    def find_by_name(self, name: str) -> Campaign | None:
        def work(tx: Transaction) -> Campaign | None:
            rows = tx.run(
                f"""
                MATCH (n:Campaign)
                WHERE toLower(n.name) = toLower($name)
                {self._hydrate_matches()}
                RETURN {self._projection()} AS entity
                ORDER BY n.created_at ASC
                LIMIT 1
                """,
                {"name": name},
            )
            return Campaign.model_validate(rows[0]["entity"]) if rows else None

        return self._read("find_by_name", work)

    def get_sessions(self, campaign_id: str) -> list[Session]:
        """Sessions of a campaign, most recent first."""

        def work(tx: Transaction) -> list[Session]:
            rows = tx.run(
                """
                MATCH (s:Session)-[:PART_OF]->(c:Campaign {campaign_id: $id})
                RETURN s {.*, campaign_id: c.campaign_id} AS entity
                ORDER BY s.date DESC, s.number DESC
                """,
                {"id": campaign_id},
            )
            return [Session.model_validate(row["entity"]) for row in rows]

        return self._read("get_sessions", work)

    def get_statistics(self, campaign_id: str) -> CampaignStatistics | None:
        """Counts of owned entities, or None if the campaign does not exist."""
        counts = ",\n".join(
            f"COUNT {{ (n)<-[:{rel}]-(:{label}) }} AS {name}" for name, label, rel in OWNED
        )

        def work(tx: Transaction) -> CampaignStatistics | None:
            rows = tx.run(f"{self._match()}\nRETURN n.campaign_id AS campaign_id,\n{counts}", {"id": campaign_id})
            return CampaignStatistics.model_validate(rows[0]) if rows else None

        return self._read("get_statistics", work)

    def _before_delete(self, tx: Transaction, entity_id: str) -> None:
        for name, label, rel in OWNED:
            self._guard(tx, entity_id, f"(n)<-[:{rel}]-(:{label})", f"campaign still has {name}")
        self._guard(tx, entity_id, "(n)<-[:BELONGS_TO]-(:Relationship)", "campaign still has relationships")
