"""Constraints and indexes provisioned before the repositories are used."""
from __future__ import annotations

from typing import TYPE_CHECKING

from campaign_graph.logging import get_logger

if TYPE_CHECKING:
    from campaign_graph.db.executor import QueryExecutor, Transaction

logger = get_logger(__name__)

# (label, identifier property)
UNIQUE_IDS: tuple[tuple[str, str], ...] = (
    ("RPGWorld", "world_id"),
    ("Campaign", "campaign_id"),
    ("Session", "session_id"),
    ("Character", "character_id"),
    ("Location", "location_id"),
    ("Item", "item_id"),
    ("Power", "power_id"),
    ("Event", "event_id"),
    ("AudioRecording", "recording_id"),
    ("Transcription", "transcription_id"),
    ("TranscriptionSegment", "segment_id"),
    ("Speaker", "speaker_id"),
    ("SessionAnalysis", "analysis_id"),
    ("KeyPoint", "key_point_id"),
    ("CharacterInsight", "insight_id"),
    ("CharacterInteraction", "interaction_id"),
    ("PlotDevelopment", "plot_development_id"),
    ("RelatedEntity", "related_entity_id"),
    ("Topic", "topic_id"),
    ("ChangeProposal", "proposal_id"),
    ("ProposalBatch", "batch_id"),
    ("CharacterPower", "character_power_id"),
    ("CharacterItem", "character_item_id"),
    ("LocationItem", "location_item_id"),
    ("EventCharacter", "event_character_id"),
    ("EventItem", "event_item_id"),
    ("Relationship", "relationship_id"),
)

NAME_INDEXES: tuple[str, ...] = (
    "RPGWorld",
    "Campaign",
    "Session",
    "Character",
    "Location",
    "Item",
    "Power",
    "Event",
)


def _constraint(label: str, key: str) -> str:
    return (
        f"CREATE CONSTRAINT {label.lower()}_{key}_unique IF NOT EXISTS "
        f"FOR (n:{label}) REQUIRE n.{key} IS UNIQUE"
    )


def _name_index(label: str) -> str:
    return f"CREATE INDEX {label.lower()}_name IF NOT EXISTS FOR (n:{label}) ON (n.name)"


SCHEMA_STATEMENTS: tuple[str, ...] = (
    *(_constraint(label, key) for label, key in UNIQUE_IDS),
    *(_name_index(label) for label in NAME_INDEXES),
    "CREATE INDEX event_timeline IF NOT EXISTS FOR (n:Event) ON (n.timeline_position)",
    "CREATE INDEX proposal_status IF NOT EXISTS FOR (n:ChangeProposal) ON (n.status)",
)


def init_schema(executor: QueryExecutor) -> int:
    """Create every constraint and index that does not exist yet.

    Schema statements cannot share a transaction with each other in Neo4j,
    so each one runs in its own write transaction.

    Returns:
        Number of statements executed.
    """
    for statement in SCHEMA_STATEMENTS:

        def work(tx: Transaction, statement: str = statement) -> None:
            tx.run(statement)

        executor.write_transaction(work)

    logger.info("schema.init", statements=len(SCHEMA_STATEMENTS))
    return len(SCHEMA_STATEMENTS)
