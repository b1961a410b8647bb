"""Repository for events and the campaign timeline."""
from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING, Any

from campaign_graph.models.common import SortDirection
from campaign_graph.models.event import (
    Event,
    EventCharacter,
    EventCharacterCreate,
    EventCreate,
    EventFilter,
    EventItem,
    EventItemCreate,
    EventParticipationUpdate,
    EventUpdate,
)
from campaign_graph.repositories.base import BaseRepository, JoinSpec, Link

if TYPE_CHECKING:
    from campaign_graph.db.executor import Transaction
    from campaign_graph.models.common import CreateParams


class EventSort(str, Enum):
    TIMELINE_POSITION = "timeline_position"
    NAME = "name"
    EVENT_TYPE = "event_type"
    EVENT_DATE = "event_date"
    CREATED_AT = "created_at"
    UPDATED_AT = "updated_at"


EVENT_CHARACTER = JoinSpec(
    label="EventCharacter",
    key="event_character_id",
    owner_label="Character",
    owner_key="character_id",
    owner_rel="PARTICIPATED_IN",
    target_label="Event",
    target_key="event_id",
    target_rel="EVENT_DETAILS",
)

EVENT_ITEM = JoinSpec(
    label="EventItem",
    key="event_item_id",
    owner_label="Item",
    owner_key="item_id",
    owner_rel="FEATURED_IN",
    target_label="Event",
    target_key="event_id",
    target_rel="EVENT_DETAILS",
)


class EventRepository(BaseRepository[Event]):
    """Events, ``BELONGS_TO`` a campaign, optionally ``OCCURRED_IN`` a session
    and ``OCCURRED_AT`` a location.

    Events created without a timeline position are appended after the last
    event of their campaign. Deleting an event removes its participation
    join nodes.
    """

    label = "Event"
    id_field = "event_id"
    model = Event
    filter_model = EventFilter
    links = (
        Link("campaign_id", "BELONGS_TO", "Campaign", "campaign_id"),
        Link("session_id", "OCCURRED_IN", "Session", "session_id"),
        Link("location_id", "OCCURRED_AT", "Location", "location_id"),
    )
    sort_fields = EventSort
    default_sort = ("timeline_position", SortDirection.ASC)
    filter_fields = {
        "campaign_id": "campaign.campaign_id",
        "session_id": "session.session_id",
        "location_id": "location.location_id",
        "event_type": "n.event_type",
    }

    def _highest_position(self, tx: Transaction, campaign_id: str) -> int:
        rows = tx.run(
            """
            MATCH (e:Event)-[:BELONGS_TO]->(:Campaign {campaign_id: $campaign_id})
            RETURN coalesce(max(e.timeline_position), 0) AS highest
            """,
            {"campaign_id": campaign_id},
        )
        return rows[0]["highest"] if rows else 0

    def _before_create(self, tx: Transaction, params: CreateParams, props: dict[str, Any]) -> None:
        if isinstance(params, EventCreate) and params.timeline_position is None:
            props["timeline_position"] = self._highest_position(tx, params.campaign_id) + 1

    def _before_delete(self, tx: Transaction, entity_id: str) -> None:
        self._drop_relationships(tx, entity_id)
        tx.run(
            f"""
            {self._match()}<-[:EVENT_DETAILS]-(j)
            WHERE j:EventCharacter OR j:EventItem
            DETACH DELETE j
            """,
            {"id": entity_id},
        )

    # ---------------------------- Timeline ----------------------------

    def get_highest_timeline_position(self, campaign_id: str) -> int:
        return self._read("get_highest_timeline_position", lambda tx: self._highest_position(tx, campaign_id))

    def get_campaign_timeline(self, campaign_id: str) -> list[Event]:
        """All events of a campaign in timeline order."""

        def work(tx: Transaction) -> list[Event]:
            rows = tx.run(
                f"""
                MATCH (n:Event)-[:BELONGS_TO]->(:Campaign {{campaign_id: $campaign_id}})
                {self._hydrate_matches()}
                RETURN {self._projection()} AS entity
                ORDER BY n.timeline_position ASC, n.event_id ASC
                """,
                {"campaign_id": campaign_id},
            )
            return [Event.model_validate(row["entity"]) for row in rows]

        return self._read("get_campaign_timeline", work)

    def update_timeline_position(self, event_id: str, timeline_position: int) -> Event:
        return self.update(event_id, EventUpdate(timeline_position=timeline_position))

    # ---------------------------- Participants ----------------------------

    def get_event_characters(self, event_id: str) -> list[EventCharacter]:
        return self._join_list(EVENT_CHARACTER, EventCharacter, "t", event_id, order="o.name ASC")

    def get_character_events(self, character_id: str) -> list[EventCharacter]:
        return self._join_list(EVENT_CHARACTER, EventCharacter, "o", character_id, order="t.timeline_position ASC")

    def add_character_to_event(self, params: EventCharacterCreate) -> EventCharacter:
        props = params.model_dump(mode="json", exclude={"event_id", "character_id"})
        return self._join_add(EVENT_CHARACTER, EventCharacter, params.character_id, params.event_id, props)

    def update_event_character(self, event_character_id: str, patch: EventParticipationUpdate) -> EventCharacter:
        return self._join_update(EVENT_CHARACTER, EventCharacter, event_character_id, patch)

    def remove_character_from_event(self, event_character_id: str) -> bool:
        return self._join_remove(EVENT_CHARACTER, event_character_id)

    def get_event_items(self, event_id: str) -> list[EventItem]:
        return self._join_list(EVENT_ITEM, EventItem, "t", event_id, order="o.name ASC")

    def add_item_to_event(self, params: EventItemCreate) -> EventItem:
        props = params.model_dump(mode="json", exclude={"event_id", "item_id"})
        return self._join_add(EVENT_ITEM, EventItem, params.item_id, params.event_id, props)

    def update_event_item(self, event_item_id: str, patch: EventParticipationUpdate) -> EventItem:
        return self._join_update(EVENT_ITEM, EventItem, event_item_id, patch)

    def remove_item_from_event(self, event_item_id: str) -> bool:
        return self._join_remove(EVENT_ITEM, event_item_id)
