"""Errors raised by the repositories.

Absence on reads is not an error: ``find_by_id`` style lookups return ``None``.
The classes here cover the cases a caller has to tell apart:

- a referenced node does not exist (create/update/link)
- a delete or link is blocked by existing graph structure
- a query was asked for something the repository does not allow
"""
from __future__ import annotations

from dataclasses import dataclass


class CampaignGraphError(Exception):
    """Base class for repository errors."""


@dataclass
class EntityNotFoundError(CampaignGraphError):
    """A node required by a write matched no rows."""

    entity: str
    entity_id: str

    def __str__(self) -> str:
        return f"{self.entity} not found: {self.entity_id}"


@dataclass
class ConflictError(CampaignGraphError):
    """The operation would break a structural rule of the graph."""

    entity: str
    entity_id: str
    reason: str

    def __str__(self) -> str:
        return f"Cannot modify {self.entity} {self.entity_id}: {self.reason}"


@dataclass
class CircularReferenceError(ConflictError):
    """Attaching the parent would make a location its own ancestor."""

    reason: str = "parent would create a circular location hierarchy"


class InvalidQueryError(CampaignGraphError, ValueError):
    """Unsupported sort field or malformed query options."""
