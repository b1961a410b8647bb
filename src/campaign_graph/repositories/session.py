"""Repository for play sessions."""
from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING

from campaign_graph.logging import get_logger
from campaign_graph.models.campaign import Session, SessionFilter
from campaign_graph.models.character import Character
from campaign_graph.models.common import SortDirection, utcnow
from campaign_graph.repositories.base import BaseRepository, Link

if TYPE_CHECKING:
    from campaign_graph.db.executor import Transaction

logger = get_logger(__name__)


class SessionSort(str, Enum):
    NAME = "name"
    NUMBER = "number"
    DATE = "date"
    CREATED_AT = "created_at"
    UPDATED_AT = "updated_at"


class SessionRepository(BaseRepository[Session]):
    """Sessions, ``PART_OF`` a campaign.

    Characters are attached with ``APPEARS_IN`` edges. A session with audio
    recordings or analyses cannot be deleted; its speakers go with it.
    """

    label = "Session"
    id_field = "session_id"
    model = Session
    filter_model = SessionFilter
    links = (Link("campaign_id", "PART_OF", "Campaign", "campaign_id"),)
    sort_fields = SessionSort
    default_sort = ("date", SortDirection.DESC)
    search_fields = ("name", "description", "summary")
    filter_fields = {"campaign_id": "campaign.campaign_id", "is_completed": "n.is_completed"}

    def add_character(self, session_id: str, character_id: str) -> bool:
        """Record that a character appeared in a session.

        Returns:
            True if the edge was created, False if it already existed.
        """

        def work(tx: Transaction) -> bool:
            self._require(tx, "Session", "session_id", session_id)
            self._require(tx, "Character", "character_id", character_id)
            rows = tx.run(
                """
                MATCH (s:Session {session_id: $session_id})
                MATCH (c:Character {character_id: $character_id})
                WHERE NOT EXISTS { (c)-[:APPEARS_IN]->(s) }
                CREATE (c)-[:APPEARS_IN {created_at: $now}]->(s)
                RETURN c.character_id AS character_id
                """,
                {"session_id": session_id, "character_id": character_id, "now": utcnow()},
            )
            return bool(rows)

        created = self._write("add_character", work)
        if created:
            logger.info("session.add_character", session_id=session_id, character_id=character_id)
        return created

    def remove_character(self, session_id: str, character_id: str) -> bool:
        def work(tx: Transaction) -> bool:
            rows = tx.run(
                """
                MATCH (c:Character {character_id: $character_id})-[r:APPEARS_IN]->(s:Session {session_id: $session_id})
                DELETE r
                RETURN count(r) AS removed
                """,
                {"session_id": session_id, "character_id": character_id},
            )
            return bool(rows) and rows[0]["removed"] > 0

        removed = self._write("remove_character", work)
        if removed:
            logger.info("session.remove_character", session_id=session_id, character_id=character_id)
        return removed

    def get_characters(self, session_id: str) -> list[Character]:
        """Characters that appeared in a session, by name."""

        def work(tx: Transaction) -> list[Character]:
            rows = tx.run(
                """
                MATCH (c:Character)-[:APPEARS_IN]->(:Session {session_id: $id})
                OPTIONAL MATCH (c)-[:BELONGS_TO]->(campaign:Campaign)
                RETURN c {.*, campaign_id: campaign.campaign_id} AS entity
                ORDER BY c.name ASC
                """,
                {"id": session_id},
            )
            return [Character.model_validate(row["entity"]) for row in rows]

        return self._read("get_characters", work)

    def _before_delete(self, tx: Transaction, entity_id: str) -> None:
        self._guard(tx, entity_id, "(n)<-[:BELONGS_TO]-(:AudioRecording)", "session still has audio recordings")
        self._guard(tx, entity_id, "(n)<-[:ANALYZES]-(:SessionAnalysis)", "session still has analyses")
        tx.run(
            f"""
            {self._match()}<-[:SPEAKS_IN]-(speaker:Speaker)
            DETACH DELETE speaker
            """,
            {"id": entity_id},
        )
