"""Powers (skills, spells, feats) and who holds them."""
from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import ClassVar

from pydantic import BaseModel, Field

from campaign_graph.models.common import CreateParams, ListOptions, NodeModel, Patch


class PowerType(str, Enum):
    SKILL = "SKILL"
    ABILITY = "ABILITY"
    SPELL = "SPELL"
    FEAT = "FEAT"
    TRAIT = "TRAIT"
    OTHER = "OTHER"


class Power(NodeModel):
    power_id: str
    campaign_id: str | None = None
    name: str
    description: str | None = None
    power_type: PowerType = PowerType.OTHER
    effect: str | None = None
    requirements: str | None = None


class PowerCreate(CreateParams):
    campaign_id: str
    name: str = Field(min_length=1)
    description: str | None = None
    power_type: PowerType = PowerType.OTHER
    effect: str | None = None
    requirements: str | None = None


class PowerUpdate(Patch):
    not_nullable: ClassVar[frozenset[str]] = frozenset({"name", "power_type"})

    campaign_id: str | None = None
    name: str | None = Field(default=None, min_length=1)
    description: str | None = None
    power_type: PowerType | None = None
    effect: str | None = None
    requirements: str | None = None


class PowerFilter(ListOptions):
    campaign_id: str | None = None
    power_type: PowerType | None = None


class CharacterPower(BaseModel):
    """Join node linking a character to a power it has."""

    character_power_id: str
    character_id: str
    power_id: str
    proficiency_level: int | None = None
    notes: str | None = None
    created_at: datetime
    updated_at: datetime | None = None


class CharacterPowerCreate(BaseModel):
    character_id: str
    power_id: str
    proficiency_level: int | None = Field(default=None, ge=0)
    notes: str | None = None


class CharacterPowerUpdate(Patch):
    proficiency_level: int | None = Field(default=None, ge=0)
    notes: str | None = None
