"""Repository for characters and the relationships between them."""
from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING

from campaign_graph.exceptions import EntityNotFoundError
from campaign_graph.logging import get_logger
from campaign_graph.models.character import (
    Character,
    CharacterFilter,
    CharacterRelationship,
    CharacterRelationshipCreate,
    CharacterRelationshipUpdate,
)
from campaign_graph.models.common import new_id, utcnow
from campaign_graph.repositories.base import BaseRepository, Link

if TYPE_CHECKING:
    from campaign_graph.db.executor import Record, Transaction

logger = get_logger(__name__)

RELATIONSHIP_PROJECTION = (
    "r {.*, source_character_id: source.character_id, target_character_id: target.character_id}"
)


class CharacterSort(str, Enum):
    NAME = "name"
    CHARACTER_TYPE = "character_type"
    CREATED_AT = "created_at"
    UPDATED_AT = "updated_at"


class CharacterRepository(BaseRepository[Character]):
    """Characters, ``BELONGS_TO`` a campaign.

    Deleting a character removes its power, item and event join nodes along
    with every edge touching it.
    """

    label = "Character"
    id_field = "character_id"
    model = Character
    filter_model = CharacterFilter
    links = (Link("campaign_id", "BELONGS_TO", "Campaign", "campaign_id"),)
    sort_fields = CharacterSort
    filter_fields = {
        "campaign_id": "campaign.campaign_id",
        "character_type": "n.character_type",
        "is_player_character": "n.is_player_character",
    }

    def _before_delete(self, tx: Transaction, entity_id: str) -> None:
        self._drop_relationships(tx, entity_id)
        tx.run(
            f"""
            {self._match()}-[:HAS_POWER|HAS_ITEM|PARTICIPATED_IN]->(j)
            WHERE j:CharacterPower OR j:CharacterItem OR j:EventCharacter
            DETACH DELETE j
            """,
            {"id": entity_id},
        )

    # ---------------------------- Relationships ----------------------------

    def _fetch_relationship(self, tx: Transaction, relationship_id: str) -> Record | None:
        rows = tx.run(
            f"""
            MATCH (source:Character)-[r:RELATES_TO {{relationship_id: $relationship_id}}]->(target:Character)
            RETURN {RELATIONSHIP_PROJECTION} AS relationship
            """,
            {"relationship_id": relationship_id},
        )
        return rows[0]["relationship"] if rows else None

    def get_relationships(self, character_id: str) -> list[CharacterRelationship]:
        """Outgoing relationships of a character, oldest first."""

        def work(tx: Transaction) -> list[Record]:
            return tx.run(
                f"""
                MATCH (source:Character {{character_id: $id}})-[r:RELATES_TO]->(target:Character)
                RETURN {RELATIONSHIP_PROJECTION} AS relationship
                ORDER BY r.created_at ASC
                """,
                {"id": character_id},
            )

        rows = self._read("get_relationships", work)
        return [CharacterRelationship.model_validate(row["relationship"]) for row in rows]

    def get_relationship(self, relationship_id: str) -> CharacterRelationship | None:
        data = self._read("get_relationship", lambda tx: self._fetch_relationship(tx, relationship_id))
        return CharacterRelationship.model_validate(data) if data is not None else None

    def create_relationship(self, params: CharacterRelationshipCreate) -> CharacterRelationship:
        """Create a directed ``RELATES_TO`` edge.

        Raises:
            EntityNotFoundError: Either character does not exist.
        """
        relationship_id = new_id()
        props = {
            "relationship_id": relationship_id,
            "relationship_type": params.relationship_type,
            "description": params.description,
            "created_at": utcnow(),
        }

        def work(tx: Transaction) -> Record:
            self._require(tx, "Character", "character_id", params.source_character_id)
            self._require(tx, "Character", "character_id", params.target_character_id)
            tx.run(
                """
                MATCH (source:Character {character_id: $source_id})
                MATCH (target:Character {character_id: $target_id})
                CREATE (source)-[:RELATES_TO $props]->(target)
                """,
                {
                    "source_id": params.source_character_id,
                    "target_id": params.target_character_id,
                    "props": props,
                },
            )
            data = self._fetch_relationship(tx, relationship_id)
            if data is None:
                raise EntityNotFoundError("RELATES_TO", relationship_id)
            return data

        data = self._write("create_relationship", work)
        logger.info(
            "character.relationship.create",
            relationship_id=relationship_id,
            source_character_id=params.source_character_id,
            target_character_id=params.target_character_id,
        )
        return CharacterRelationship.model_validate(data)

    def update_relationship(self, relationship_id: str, patch: CharacterRelationshipUpdate) -> CharacterRelationship:
        """Change type or description; the endpoints stay as they are."""

        def work(tx: Transaction) -> Record:
            rows = tx.run(
                """
                MATCH (:Character)-[r:RELATES_TO {relationship_id: $relationship_id}]->(:Character)
                SET r += $props, r.updated_at = $now
                RETURN r.relationship_id AS id
                """,
                {"relationship_id": relationship_id, "props": patch.to_changes(), "now": utcnow()},
            )
            if not rows:
                raise EntityNotFoundError("RELATES_TO", relationship_id)
            data = self._fetch_relationship(tx, relationship_id)
            if data is None:
                raise EntityNotFoundError("RELATES_TO", relationship_id)
            return data

        data = self._write("update_relationship", work)
        logger.info("character.relationship.update", relationship_id=relationship_id)
        return CharacterRelationship.model_validate(data)

    def delete_relationship(self, relationship_id: str) -> bool:
        def work(tx: Transaction) -> bool:
            rows = tx.run(
                """
                MATCH (:Character)-[r:RELATES_TO {relationship_id: $relationship_id}]->(:Character)
                DELETE r
                RETURN count(r) AS deleted
                """,
                {"relationship_id": relationship_id},
            )
            return bool(rows) and rows[0]["deleted"] > 0

        deleted = self._write("delete_relationship", work)
        if deleted:
            logger.info("character.relationship.delete", relationship_id=relationship_id)
        return deleted
