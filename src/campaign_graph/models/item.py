"""Items and where they are held or placed."""
from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import ClassVar

from pydantic import BaseModel, Field

from campaign_graph.models.common import CreateParams, ListOptions, NodeModel, Patch


class ItemType(str, Enum):
    """Kinds of items."""

    WEAPON = "WEAPON"
    ARMOR = "ARMOR"
    POTION = "POTION"
    SCROLL = "SCROLL"
    WAND = "WAND"
    RING = "RING"
    AMULET = "AMULET"
    TOOL = "TOOL"
    TREASURE = "TREASURE"
    CLOTHING = "CLOTHING"
    CONTAINER = "CONTAINER"
    FOOD = "FOOD"
    MOUNT = "MOUNT"
    VEHICLE = "VEHICLE"
    MISCELLANEOUS = "MISCELLANEOUS"


class ItemRarity(str, Enum):
    COMMON = "COMMON"
    UNCOMMON = "UNCOMMON"
    RARE = "RARE"
    VERY_RARE = "VERY_RARE"
    LEGENDARY = "LEGENDARY"
    ARTIFACT = "ARTIFACT"


class Item(NodeModel):
    item_id: str
    campaign_id: str | None = None
    name: str
    description: str | None = None
    item_type: ItemType = ItemType.MISCELLANEOUS
    rarity: ItemRarity | None = None
    value: float | None = None
    weight: float | None = None
    properties: str | None = Field(default=None, description="Free-form rules text")


class ItemCreate(CreateParams):
    campaign_id: str
    name: str = Field(min_length=1)
    description: str | None = None
    item_type: ItemType = ItemType.MISCELLANEOUS
    rarity: ItemRarity | None = None
    value: float | None = Field(default=None, ge=0)
    weight: float | None = Field(default=None, ge=0)
    properties: str | None = None


class ItemUpdate(Patch):
    not_nullable: ClassVar[frozenset[str]] = frozenset({"name", "item_type"})

    campaign_id: str | None = None
    name: str | None = Field(default=None, min_length=1)
    description: str | None = None
    item_type: ItemType | None = None
    rarity: ItemRarity | None = None
    value: float | None = Field(default=None, ge=0)
    weight: float | None = Field(default=None, ge=0)
    properties: str | None = None


class ItemFilter(ListOptions):
    campaign_id: str | None = None
    item_type: ItemType | None = None
    rarity: ItemRarity | None = None


class CharacterItem(BaseModel):
    """Join node: a character holding some quantity of an item."""

    character_item_id: str
    character_id: str
    item_id: str
    quantity: int = 1
    notes: str | None = None
    is_equipped: bool = False
    created_at: datetime
    updated_at: datetime | None = None


class CharacterItemCreate(BaseModel):
    character_id: str
    item_id: str
    quantity: int = Field(default=1, ge=1)
    notes: str | None = None
    is_equipped: bool = False


class CharacterItemUpdate(Patch):
    not_nullable: ClassVar[frozenset[str]] = frozenset({"quantity", "is_equipped"})

    quantity: int | None = Field(default=None, ge=1)
    notes: str | None = None
    is_equipped: bool | None = None


class LocationItem(BaseModel):
    """Join node: an item placed at a location."""

    location_item_id: str
    location_id: str
    item_id: str
    quantity: int = 1
    notes: str | None = None
    created_at: datetime
    updated_at: datetime | None = None


class LocationItemCreate(BaseModel):
    location_id: str
    item_id: str
    quantity: int = Field(default=1, ge=1)
    notes: str | None = None


class LocationItemUpdate(Patch):
    not_nullable: ClassVar[frozenset[str]] = frozenset({"quantity"})

    quantity: int | None = Field(default=None, ge=1)
    notes: str | None = None
