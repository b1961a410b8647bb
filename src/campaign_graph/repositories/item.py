"""Repository for items, who carries them and where they lie."""
from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING

from campaign_graph.models.item import (
    CharacterItem,
    CharacterItemCreate,
    CharacterItemUpdate,
    Item,
    ItemFilter,
    LocationItem,
    LocationItemCreate,
    LocationItemUpdate,
)
from campaign_graph.repositories.base import BaseRepository, JoinSpec, Link

if TYPE_CHECKING:
    from campaign_graph.db.executor import Transaction


class ItemSort(str, Enum):
    NAME = "name"
    ITEM_TYPE = "item_type"
    RARITY = "rarity"
    VALUE = "value"
    WEIGHT = "weight"
    CREATED_AT = "created_at"
    UPDATED_AT = "updated_at"


CHARACTER_ITEM = JoinSpec(
    label="CharacterItem",
    key="character_item_id",
    owner_label="Character",
    owner_key="character_id",
    owner_rel="HAS_ITEM",
    target_label="Item",
    target_key="item_id",
    target_rel="ITEM_DETAILS",
)

LOCATION_ITEM = JoinSpec(
    label="LocationItem",
    key="location_item_id",
    owner_label="Location",
    owner_key="location_id",
    owner_rel="CONTAINS_ITEM",
    target_label="Item",
    target_key="item_id",
    target_rel="ITEM_DETAILS",
)


class ItemRepository(BaseRepository[Item]):
    """Items, ``BELONGS_TO`` a campaign.

    An item still held by a character or placed at a location cannot be
    deleted. Its event appearances are removed with it.
    """

    label = "Item"
    id_field = "item_id"
    model = Item
    filter_model = ItemFilter
    links = (Link("campaign_id", "BELONGS_TO", "Campaign", "campaign_id"),)
    sort_fields = ItemSort
    filter_fields = {"campaign_id": "campaign.campaign_id", "item_type": "n.item_type", "rarity": "n.rarity"}

    def _before_delete(self, tx: Transaction, entity_id: str) -> None:
        self._guard(tx, entity_id, "(n)<-[:ITEM_DETAILS]-(:CharacterItem)", "item is held by characters")
        self._guard(tx, entity_id, "(n)<-[:ITEM_DETAILS]-(:LocationItem)", "item is placed at locations")
        self._drop_relationships(tx, entity_id)
        tx.run(
            f"""
            {self._match()}-[:FEATURED_IN]->(j:EventItem)
            DETACH DELETE j
            """,
            {"id": entity_id},
        )

    # ---------------------------- Character items ----------------------------

    def get_character_items(self, character_id: str) -> list[CharacterItem]:
        """Everything a character carries, equipped items first."""
        return self._join_list(
            CHARACTER_ITEM, CharacterItem, "o", character_id, order="j.is_equipped DESC, t.name ASC"
        )

    def get_item_holders(self, item_id: str) -> list[CharacterItem]:
        return self._join_list(CHARACTER_ITEM, CharacterItem, "t", item_id)

    def get_character_item(self, character_item_id: str) -> CharacterItem | None:
        return self._join_get(CHARACTER_ITEM, CharacterItem, character_item_id)

    def add_item_to_character(self, params: CharacterItemCreate) -> CharacterItem:
        """Give an item to a character.

        Raises:
            EntityNotFoundError: The character or item does not exist.
            ConflictError: The character already holds the item.
        """
        props = params.model_dump(mode="json", exclude={"character_id", "item_id"})
        return self._join_add(CHARACTER_ITEM, CharacterItem, params.character_id, params.item_id, props)

    def update_character_item(self, character_item_id: str, patch: CharacterItemUpdate) -> CharacterItem:
        return self._join_update(CHARACTER_ITEM, CharacterItem, character_item_id, patch)

    def remove_item_from_character(self, character_item_id: str) -> bool:
        return self._join_remove(CHARACTER_ITEM, character_item_id)

    # ---------------------------- Location items ----------------------------

    def get_location_items(self, location_id: str) -> list[LocationItem]:
        return self._join_list(LOCATION_ITEM, LocationItem, "o", location_id, order="t.name ASC")

    def get_item_locations(self, item_id: str) -> list[LocationItem]:
        return self._join_list(LOCATION_ITEM, LocationItem, "t", item_id)

    def get_location_item(self, location_item_id: str) -> LocationItem | None:
        return self._join_get(LOCATION_ITEM, LocationItem, location_item_id)

    def add_item_to_location(self, params: LocationItemCreate) -> LocationItem:
        props = params.model_dump(mode="json", exclude={"location_id", "item_id"})
        return self._join_add(LOCATION_ITEM, LocationItem, params.location_id, params.item_id, props)

    def update_location_item(self, location_item_id: str, patch: LocationItemUpdate) -> LocationItem:
        return self._join_update(LOCATION_ITEM, LocationItem, location_item_id, patch)

    def remove_item_from_location(self, location_item_id: str) -> bool:
        return self._join_remove(LOCATION_ITEM, location_item_id)
