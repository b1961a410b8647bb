"""Repository for transcriptions, their segments and session speakers."""
from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING, Any

from campaign_graph.exceptions import ConflictError, EntityNotFoundError
from campaign_graph.logging import get_logger
from campaign_graph.models.audio import (
    Speaker,
    SpeakerIdentification,
    SpeakerUpsert,
    Transcription,
    TranscriptionCreate,
    TranscriptionFilter,
    TranscriptionSegment,
    TranscriptionStatus,
    TranscriptionUpdate,
    count_words,
)
from campaign_graph.models.common import SortDirection, new_id, to_property, utcnow
from campaign_graph.repositories.base import BaseRepository, Link

if TYPE_CHECKING:
    from campaign_graph.db.executor import Record, Transaction
    from campaign_graph.models.common import CreateParams, Patch

logger = get_logger(__name__)

SPEAKER_QUERY = """
MATCH (sp:Speaker)
WHERE {where}
OPTIONAL MATCH (sp)-[:SPEAKS_IN]->(session:Session)
OPTIONAL MATCH (sp)-[:REPRESENTS]->(character:Character)
OPTIONAL MATCH (sp)-[:IS_USER]->(user:User)
RETURN sp {{.*, session_id: session.session_id, character_id: character.character_id, user_id: user.user_id}} AS speaker
ORDER BY sp.name ASC
"""


class TranscriptionSort(str, Enum):
    CREATED_AT = "created_at"
    UPDATED_AT = "updated_at"
    LANGUAGE_CODE = "language_code"
    WORD_COUNT = "word_count"
    CONFIDENCE_SCORE = "confidence_score"


class TranscriptionRepository(BaseRepository[Transcription]):
    """Transcriptions, each ``TRANSCRIBES`` exactly one recording.

    Segments are ``PART_OF`` their transcription and are always written as a
    whole set. Creating a transcription marks the recording ``in_progress``;
    deleting it resets the recording to ``not_started``.
    """

    label = "Transcription"
    id_field = "transcription_id"
    model = Transcription
    filter_model = TranscriptionFilter
    links = (Link("recording_id", "TRANSCRIBES", "AudioRecording", "recording_id"),)
    extra_matches = ("OPTIONAL MATCH (recording)-[:BELONGS_TO]->(session:Session)",)
    extra_scope = ("session",)
    extra_fields = ("session_id: session.session_id",)
    non_properties = frozenset({"segments"})
    sort_fields = TranscriptionSort
    default_sort = ("created_at", SortDirection.DESC)
    search_fields = ("full_text",)
    filter_fields = {"recording_id": "recording.recording_id", "language_code": "n.language_code"}

    # ---------------------------- Segments ----------------------------

    def _complete(self, tx: Transaction, data: Record) -> Record:
        rows = tx.run(
            """
            MATCH (segment:TranscriptionSegment)-[:PART_OF]->(:Transcription {transcription_id: $id})
            OPTIONAL MATCH (segment)-[:SPOKEN_BY]->(speaker:Speaker)
            RETURN segment {.*, speaker_id: speaker.speaker_id} AS segment
            ORDER BY segment.start_time ASC
            """,
            {"id": data[self.id_field]},
        )
        return {**data, "segments": [row["segment"] for row in rows]}

    def _write_segments(self, tx: Transaction, transcription_id: str, segments: list[TranscriptionSegment]) -> None:
        speaker_ids = sorted({segment.speaker_id for segment in segments if segment.speaker_id})
        if speaker_ids:
            rows = tx.run(
                "MATCH (sp:Speaker) WHERE sp.speaker_id IN $ids RETURN collect(sp.speaker_id) AS found",
                {"ids": speaker_ids},
            )
            found = set(rows[0]["found"]) if rows else set()
            missing = [speaker_id for speaker_id in speaker_ids if speaker_id not in found]
            if missing:
                raise EntityNotFoundError("Speaker", missing[0])

        payload = [
            {
                "props": {
                    key: to_property(value)
                    for key, value in segment.model_dump(mode="json", exclude={"speaker_id"}).items()
                },
                "speaker_id": segment.speaker_id,
            }
            for segment in segments
        ]
        tx.run(
            """
            MATCH (t:Transcription {transcription_id: $id})
            UNWIND $segments AS segment
            CREATE (s:TranscriptionSegment)-[:PART_OF]->(t)
            SET s = segment.props
            WITH s, segment
            OPTIONAL MATCH (speaker:Speaker {speaker_id: segment.speaker_id})
            FOREACH (_ IN CASE WHEN speaker IS NULL THEN [] ELSE [1] END | CREATE (s)-[:SPOKEN_BY]->(speaker))
            """,
            {"id": transcription_id, "segments": payload},
        )

    def _delete_segments(self, tx: Transaction, transcription_id: str) -> None:
        tx.run(
            f"""
            {self._match()}<-[:PART_OF]-(segment:TranscriptionSegment)
            DETACH DELETE segment
            """,
            {"id": transcription_id},
        )

    # ---------------------------- Hooks ----------------------------

    def _before_create(self, tx: Transaction, params: CreateParams, props: dict[str, Any]) -> None:
        if not isinstance(params, TranscriptionCreate):
            return
        rows = tx.run(
            """
            MATCH (r:AudioRecording {recording_id: $recording_id})<-[:TRANSCRIBES]-(t:Transcription)
            RETURN t.transcription_id AS id
            """,
            {"recording_id": params.recording_id},
        )
        if rows:
            raise ConflictError("AudioRecording", params.recording_id, "recording is already transcribed")
        props["word_count"] = count_words(params.full_text)

    def _after_create(self, tx: Transaction, entity_id: str, params: CreateParams) -> None:
        if not isinstance(params, TranscriptionCreate):
            return
        tx.run(
            """
            MATCH (r:AudioRecording {recording_id: $recording_id})
            SET r.transcription_id = $id, r.transcription_status = $status, r.updated_at = $now
            """,
            {
                "recording_id": params.recording_id,
                "id": entity_id,
                "status": TranscriptionStatus.IN_PROGRESS.value,
                "now": utcnow(),
            },
        )
        if params.segments:
            self._write_segments(tx, entity_id, params.segments)

    def _after_update(self, tx: Transaction, entity_id: str, patch: Patch) -> None:
        if not isinstance(patch, TranscriptionUpdate):
            return
        if patch.is_set("segments"):
            self._delete_segments(tx, entity_id)
            self._write_segments(tx, entity_id, patch.segments or [])
        if patch.is_set("segments") or patch.is_set("full_text"):
            rows = tx.run(f"{self._match()}\nRETURN n.full_text AS full_text", {"id": entity_id})
            full_text = rows[0]["full_text"] if rows else ""
            tx.run(
                f"{self._match()}\nSET n.word_count = $word_count",
                {"id": entity_id, "word_count": count_words(full_text or "")},
            )

    def _before_delete(self, tx: Transaction, entity_id: str) -> None:
        tx.run(
            f"""
            {self._match()}-[:TRANSCRIBES]->(r:AudioRecording)
            SET r.transcription_id = null, r.transcription_status = $status, r.updated_at = $now
            """,
            {"id": entity_id, "status": TranscriptionStatus.NOT_STARTED.value, "now": utcnow()},
        )
        self._delete_segments(tx, entity_id)

    # ---------------------------- Lookups ----------------------------

    def find_by_recording_id(self, recording_id: str) -> Transcription | None:
        def work(tx: Transaction) -> Transcription | None:
            rows = tx.run(
                """
                MATCH (t:Transcription)-[:TRANSCRIBES]->(:AudioRecording {recording_id: $recording_id})
                RETURN t.transcription_id AS id
                LIMIT 1
                """,
                {"recording_id": recording_id},
            )
            return self._fetch(tx, rows[0]["id"]) if rows else None

        return self._read("find_by_recording_id", work)

    # ---------------------------- Speakers ----------------------------

    def _fetch_speaker(self, tx: Transaction, speaker_id: str) -> Speaker | None:
        rows = tx.run(SPEAKER_QUERY.format(where="sp.speaker_id = $speaker_id"), {"speaker_id": speaker_id})
        return Speaker.model_validate(rows[0]["speaker"]) if rows else None

    def create_or_update_speaker(self, params: SpeakerUpsert) -> Speaker:
        """Create a speaker in a session, or rename an existing one.

        Raises:
            EntityNotFoundError: The session does not exist.
        """
        speaker_id = params.speaker_id or new_id()

        def work(tx: Transaction) -> Speaker:
            self._require(tx, "Session", "session_id", params.session_id)
            tx.run(
                """
                MATCH (s:Session {session_id: $session_id})
                MERGE (sp:Speaker {speaker_id: $speaker_id})
                ON CREATE SET sp.created_at = $now
                ON MATCH SET sp.updated_at = $now
                SET sp.name = $name
                MERGE (sp)-[:SPEAKS_IN]->(s)
                """,
                {"session_id": params.session_id, "speaker_id": speaker_id, "name": params.name, "now": utcnow()},
            )
            speaker = self._fetch_speaker(tx, speaker_id)
            if speaker is None:
                raise EntityNotFoundError("Speaker", speaker_id)
            return speaker

        speaker = self._write("create_or_update_speaker", work)
        logger.info("speaker.upsert", speaker_id=speaker_id, session_id=params.session_id)
        return speaker

    def identify_speaker(self, speaker_id: str, identification: SpeakerIdentification) -> Speaker:
        """Point a speaker at a character and/or a user.

        Each field present replaces the current edge; ``None`` removes it.
        """
        edges = (("character_id", "REPRESENTS", "Character"), ("user_id", "IS_USER", "User"))

        def work(tx: Transaction) -> Speaker:
            self._require(tx, "Speaker", "speaker_id", speaker_id)
            for field, rel_type, label in edges:
                if not identification.is_set(field):
                    continue
                tx.run(
                    f"MATCH (:Speaker {{speaker_id: $speaker_id}})-[r:{rel_type}]->(:{label})\nDELETE r",
                    {"speaker_id": speaker_id},
                )
                target_id = getattr(identification, field)
                if target_id is None:
                    continue
                rows = tx.run(
                    f"""
                    MATCH (sp:Speaker {{speaker_id: $speaker_id}})
                    MATCH (target:{label} {{{field}: $target_id}})
                    CREATE (sp)-[:{rel_type}]->(target)
                    RETURN target.{field} AS id
                    """,
                    {"speaker_id": speaker_id, "target_id": target_id},
                )
                if not rows:
                    raise EntityNotFoundError(label, target_id)
            tx.run(
                "MATCH (sp:Speaker {speaker_id: $speaker_id})\nSET sp.updated_at = $now",
                {"speaker_id": speaker_id, "now": utcnow()},
            )
            speaker = self._fetch_speaker(tx, speaker_id)
            if speaker is None:
                raise EntityNotFoundError("Speaker", speaker_id)
            return speaker

        speaker = self._write("identify_speaker", work)
        logger.info("speaker.identify", speaker_id=speaker_id, fields=sorted(identification.model_fields_set))
        return speaker

    def get_speakers_for_session(self, session_id: str) -> list[Speaker]:
        def work(tx: Transaction) -> list[Speaker]:
            rows = tx.run(
                SPEAKER_QUERY.format(where="EXISTS { (sp)-[:SPEAKS_IN]->(:Session {session_id: $session_id}) }"),
                {"session_id": session_id},
            )
            return [Speaker.model_validate(row["speaker"]) for row in rows]

        return self._read("get_speakers_for_session", work)
