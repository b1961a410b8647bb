"""Repository for the session analysis aggregate.

An analysis owns four child collections, each a set of nodes ``PART_OF`` the
analysis. Two of them own children of their own:

- ``KeyPoint``
- ``CharacterInsight`` <- ``CharacterInteraction``
- ``PlotDevelopment`` <- ``RelatedEntity``
- ``Topic``

A collection is always rewritten as a whole: an update carrying a collection
deletes every stored node of that kind (with its nested children) and creates
the new set. Collections absent from the update are left alone.
"""
from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel

from campaign_graph.models.analysis import (
    CharacterInsight,
    KeyPoint,
    PlotDevelopment,
    SessionAnalysis,
    SessionAnalysisCreate,
    SessionAnalysisFilter,
    SessionAnalysisUpdate,
    Topic,
)
from campaign_graph.models.common import SortDirection, to_property
from campaign_graph.repositories.base import BaseRepository, Link

if TYPE_CHECKING:
    from campaign_graph.db.executor import Record, Transaction
    from campaign_graph.models.common import CreateParams, Patch

COLLECTIONS = ("key_points", "character_insights", "plot_developments", "topics")


class SessionAnalysisSort(str, Enum):
    CREATED_AT = "created_at"
    UPDATED_AT = "updated_at"
    STATUS = "status"


def _props(model: BaseModel, exclude: set[str] | None = None) -> dict[str, Any]:
    data = model.model_dump(mode="json", exclude=exclude)
    return {key: to_property(value) for key, value in data.items()}


class SessionAnalysisRepository(BaseRepository[SessionAnalysis]):
    """Analyses, which ``ANALYZES`` a session and are ``BASED_ON`` a transcription."""

    label = "SessionAnalysis"
    id_field = "analysis_id"
    model = SessionAnalysis
    filter_model = SessionAnalysisFilter
    links = (
        Link("session_id", "ANALYZES", "Session", "session_id"),
        Link("transcription_id", "BASED_ON", "Transcription", "transcription_id"),
    )
    non_properties = frozenset(COLLECTIONS)
    sort_fields = SessionAnalysisSort
    default_sort = ("created_at", SortDirection.DESC)
    search_fields = ("summary",)
    filter_fields = {
        "session_id": "session.session_id",
        "transcription_id": "transcription.transcription_id",
        "status": "n.status",
    }

    # ---------------------------- Reading the aggregate ----------------------------

    def _complete(self, tx: Transaction, data: Record) -> Record:
        params = {"id": data[self.id_field]}
        key_points = tx.run(
            """
            MATCH (k:KeyPoint)-[:PART_OF]->(:SessionAnalysis {analysis_id: $id})
            RETURN k {.*} AS child
            ORDER BY k.importance_score DESC
            """,
            params,
        )
        insights = tx.run(
            """
            MATCH (ci:CharacterInsight)-[:PART_OF]->(:SessionAnalysis {analysis_id: $id})
            OPTIONAL MATCH (ci)-[:REFERS_TO]->(c:Character)
            OPTIONAL MATCH (ci)-[:REFERS_TO]->(sp:Speaker)
            OPTIONAL MATCH (x:CharacterInteraction)-[:PART_OF]->(ci)
            WITH ci, c, sp, x
            ORDER BY x.interaction_count DESC
            WITH ci, c, sp, collect(x {.*}) AS interactions
            RETURN ci {.*, character_id: c.character_id, speaker_id: sp.speaker_id, interactions: interactions} AS child
            ORDER BY ci.participation_score DESC
            """,
            params,
        )
        plots = tx.run(
            """
            MATCH (p:PlotDevelopment)-[:PART_OF]->(:SessionAnalysis {analysis_id: $id})
            OPTIONAL MATCH (e:RelatedEntity)-[:PART_OF]->(p)
            WITH p, e
            ORDER BY e.relevance_score DESC
            WITH p, collect(e {.*}) AS related_entities
            RETURN p {.*, related_entities: related_entities} AS child
            ORDER BY p.importance_score DESC
            """,
            params,
        )
        topics = tx.run(
            """
            MATCH (t:Topic)-[:PART_OF]->(:SessionAnalysis {analysis_id: $id})
            RETURN t {.*} AS child
            ORDER BY t.relevance_score DESC
            """,
            params,
        )
        return {
            **data,
            "key_points": [row["child"] for row in key_points],
            "character_insights": [row["child"] for row in insights],
            "plot_developments": [row["child"] for row in plots],
            "topics": [row["child"] for row in topics],
        }

    def find_by_session_id(self, session_id: str) -> list[SessionAnalysis]:
        """Every analysis of a session, newest first, fully assembled."""
        return self._find_via("find_by_session_id", "ANALYZES", "Session", "session_id", session_id)

    def find_by_transcription_id(self, transcription_id: str) -> list[SessionAnalysis]:
        return self._find_via(
            "find_by_transcription_id", "BASED_ON", "Transcription", "transcription_id", transcription_id
        )

    def _find_via(self, operation: str, rel_type: str, label: str, key: str, value: str) -> list[SessionAnalysis]:
        def work(tx: Transaction) -> list[SessionAnalysis]:
            rows = tx.run(
                f"""
                MATCH (a:SessionAnalysis)-[:{rel_type}]->(:{label} {{{key}: $value}})
                RETURN a.analysis_id AS id
                ORDER BY a.created_at DESC
                """,
                {"value": value},
            )
            analyses = (self._fetch(tx, row["id"]) for row in rows)
            return [analysis for analysis in analyses if analysis is not None]

        return self._read(operation, work)

    # ---------------------------- Writing collections ----------------------------

    def _delete_collection(self, tx: Transaction, analysis_id: str, name: str) -> None:
        queries = {
            "key_points": """
                MATCH (k:KeyPoint)-[:PART_OF]->(:SessionAnalysis {analysis_id: $id})
                DETACH DELETE k
                """,
            "character_insights": """
                MATCH (ci:CharacterInsight)-[:PART_OF]->(:SessionAnalysis {analysis_id: $id})
                OPTIONAL MATCH (x:CharacterInteraction)-[:PART_OF]->(ci)
                DETACH DELETE x, ci
                """,
            "plot_developments": """
                MATCH (p:PlotDevelopment)-[:PART_OF]->(:SessionAnalysis {analysis_id: $id})
                OPTIONAL MATCH (e:RelatedEntity)-[:PART_OF]->(p)
                DETACH DELETE e, p
                """,
            "topics": """
                MATCH (t:Topic)-[:PART_OF]->(:SessionAnalysis {analysis_id: $id})
                DETACH DELETE t
                """,
        }
        tx.run(queries[name], {"id": analysis_id})

    def _create_collection(self, tx: Transaction, analysis_id: str, name: str, children: list[Any]) -> None:
        if not children:
            return
        if name == "key_points":
            self._create_flat(tx, analysis_id, "KeyPoint", children)
        elif name == "topics":
            self._create_flat(tx, analysis_id, "Topic", children)
        elif name == "character_insights":
            for insight in children:
                self._create_insight(tx, analysis_id, insight)
        elif name == "plot_developments":
            for plot in children:
                self._create_plot(tx, analysis_id, plot)

    def _create_flat(self, tx: Transaction, analysis_id: str, label: str, children: list[KeyPoint | Topic]) -> None:
        tx.run(
            f"""
            MATCH (a:SessionAnalysis {{analysis_id: $id}})
            UNWIND $children AS child
            CREATE (c:{label})-[:PART_OF]->(a)
            SET c = child
            """,
            {"id": analysis_id, "children": [_props(child) for child in children]},
        )

    def _create_insight(self, tx: Transaction, analysis_id: str, insight: CharacterInsight) -> None:
        if insight.character_id is not None:
            self._require(tx, "Character", "character_id", insight.character_id)
        if insight.speaker_id is not None:
            self._require(tx, "Speaker", "speaker_id", insight.speaker_id)
        tx.run(
            """
            MATCH (a:SessionAnalysis {analysis_id: $id})
            CREATE (ci:CharacterInsight)-[:PART_OF]->(a)
            SET ci = $props
            WITH ci
            OPTIONAL MATCH (c:Character {character_id: $character_id})
            OPTIONAL MATCH (sp:Speaker {speaker_id: $speaker_id})
            FOREACH (_ IN CASE WHEN c IS NULL THEN [] ELSE [1] END | CREATE (ci)-[:REFERS_TO]->(c))
            FOREACH (_ IN CASE WHEN sp IS NULL THEN [] ELSE [1] END | CREATE (ci)-[:REFERS_TO]->(sp))
            WITH ci
            UNWIND $interactions AS interaction
            CREATE (x:CharacterInteraction)-[:PART_OF]->(ci)
            SET x = interaction
            """,
            {
                "id": analysis_id,
                "props": _props(insight, exclude={"character_id", "speaker_id", "interactions"}),
                "character_id": insight.character_id,
                "speaker_id": insight.speaker_id,
                "interactions": [_props(interaction) for interaction in insight.interactions],
            },
        )

    def _create_plot(self, tx: Transaction, analysis_id: str, plot: PlotDevelopment) -> None:
        tx.run(
            """
            MATCH (a:SessionAnalysis {analysis_id: $id})
            CREATE (p:PlotDevelopment)-[:PART_OF]->(a)
            SET p = $props
            WITH p
            UNWIND $entities AS entity
            CREATE (e:RelatedEntity)-[:PART_OF]->(p)
            SET e = entity
            """,
            {
                "id": analysis_id,
                "props": _props(plot, exclude={"related_entities"}),
                "entities": [_props(entity) for entity in plot.related_entities],
            },
        )

    # ---------------------------- Hooks ----------------------------

    def _after_create(self, tx: Transaction, entity_id: str, params: CreateParams) -> None:
        if not isinstance(params, SessionAnalysisCreate):
            return
        for name in COLLECTIONS:
            self._create_collection(tx, entity_id, name, getattr(params, name))

    def _after_update(self, tx: Transaction, entity_id: str, patch: Patch) -> None:
        if not isinstance(patch, SessionAnalysisUpdate):
            return
        for name in COLLECTIONS:
            if patch.is_set(name):
                self._delete_collection(tx, entity_id, name)
                self._create_collection(tx, entity_id, name, getattr(patch, name) or [])

    def _before_delete(self, tx: Transaction, entity_id: str) -> None:
        for name in COLLECTIONS:
            self._delete_collection(tx, entity_id, name)
