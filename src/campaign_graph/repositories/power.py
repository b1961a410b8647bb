"""Repository for powers and the characters that have them."""
from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING

from campaign_graph.models.character import Character
from campaign_graph.models.power import (
    CharacterPower,
    CharacterPowerCreate,
    CharacterPowerUpdate,
    Power,
    PowerFilter,
)
from campaign_graph.repositories.base import BaseRepository, JoinSpec, Link

if TYPE_CHECKING:
    from campaign_graph.db.executor import Transaction


class PowerSort(str, Enum):
    NAME = "name"
    POWER_TYPE = "power_type"
    CREATED_AT = "created_at"
    UPDATED_AT = "updated_at"


CHARACTER_POWER = JoinSpec(
    label="CharacterPower",
    key="character_power_id",
    owner_label="Character",
    owner_key="character_id",
    owner_rel="HAS_POWER",
    target_label="Power",
    target_key="power_id",
    target_rel="POWER_DETAILS",
)


class PowerRepository(BaseRepository[Power]):
    """Powers, ``BELONGS_TO`` a campaign.

    A power referenced by any ``CharacterPower`` cannot be deleted; remove
    it from the characters first.
    """

    label = "Power"
    id_field = "power_id"
    model = Power
    filter_model = PowerFilter
    links = (Link("campaign_id", "BELONGS_TO", "Campaign", "campaign_id"),)
    sort_fields = PowerSort
    filter_fields = {"campaign_id": "campaign.campaign_id", "power_type": "n.power_type"}

    def _before_delete(self, tx: Transaction, entity_id: str) -> None:
        self._guard(
            tx, entity_id, "(n)<-[:POWER_DETAILS]-(:CharacterPower)", "power is still assigned to characters"
        )

    def get_character_powers(self, character_id: str) -> list[CharacterPower]:
        return self._join_list(CHARACTER_POWER, CharacterPower, "o", character_id, order="t.name ASC")

    def get_characters_with_power(self, power_id: str) -> list[Character]:
        """Characters that have a power, by name."""

        def work(tx: Transaction) -> list[Character]:
            rows = tx.run(
                f"""
                MATCH {CHARACTER_POWER.pattern}
                WHERE t.power_id = $id
                OPTIONAL MATCH (o)-[:BELONGS_TO]->(campaign:Campaign)
                RETURN o {{.*, campaign_id: campaign.campaign_id}} AS entity
                ORDER BY o.name ASC
                """,
                {"id": power_id},
            )
            return [Character.model_validate(row["entity"]) for row in rows]

        return self._read("get_characters_with_power", work)

    def get_character_power(self, character_power_id: str) -> CharacterPower | None:
        return self._join_get(CHARACTER_POWER, CharacterPower, character_power_id)

    def add_power_to_character(self, params: CharacterPowerCreate) -> CharacterPower:
        """Grant a power to a character.

        Raises:
            EntityNotFoundError: The character or power does not exist.
            ConflictError: The character already has the power.
        """
        props = params.model_dump(mode="json", exclude={"character_id", "power_id"})
        return self._join_add(CHARACTER_POWER, CharacterPower, params.character_id, params.power_id, props)

    def update_character_power(self, character_power_id: str, patch: CharacterPowerUpdate) -> CharacterPower:
        return self._join_update(CHARACTER_POWER, CharacterPower, character_power_id, patch)

    def remove_power_from_character(self, character_power_id: str) -> bool:
        return self._join_remove(CHARACTER_POWER, character_power_id)
