"""Repository for session audio recordings."""
from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING

from campaign_graph.models.audio import (
    AudioRecording,
    AudioRecordingFilter,
    AudioRecordingUpdate,
    TranscriptionStatus,
)
from campaign_graph.models.common import SortDirection
from campaign_graph.repositories.base import BaseRepository, Link

if TYPE_CHECKING:
    from campaign_graph.db.executor import Transaction


class AudioRecordingSort(str, Enum):
    NAME = "name"
    DURATION_SECONDS = "duration_seconds"
    FILE_SIZE_BYTES = "file_size_bytes"
    CREATED_AT = "created_at"
    UPDATED_AT = "updated_at"


class AudioRecordingRepository(BaseRepository[AudioRecording]):
    """Recordings, ``BELONGS_TO`` a session.

    Deleting a recording deletes every transcription of it together with the
    transcription segments.
    """

    label = "AudioRecording"
    id_field = "recording_id"
    model = AudioRecording
    filter_model = AudioRecordingFilter
    links = (Link("session_id", "BELONGS_TO", "Session", "session_id"),)
    sort_fields = AudioRecordingSort
    default_sort = ("created_at", SortDirection.DESC)
    filter_fields = {"session_id": "session.session_id", "transcription_status": "n.transcription_status"}

    def find_all_by_session(self, session_id: str) -> list[AudioRecording]:
        """Recordings of a session, newest first."""

        def work(tx: Transaction) -> list[AudioRecording]:
            rows = tx.run(
                f"""
                MATCH (n:AudioRecording)-[:BELONGS_TO]->(:Session {{session_id: $session_id}})
                {self._hydrate_matches()}
                RETURN {self._projection()} AS entity
                ORDER BY n.created_at DESC
                """,
                {"session_id": session_id},
            )
            return [AudioRecording.model_validate(row["entity"]) for row in rows]

        return self._read("find_all_by_session", work)

    def update_transcription_status(self, recording_id: str, status: TranscriptionStatus) -> AudioRecording:
        return self.update(recording_id, AudioRecordingUpdate(transcription_status=status))

    def _before_delete(self, tx: Transaction, entity_id: str) -> None:
        tx.run(
            f"""
            {self._match()}<-[:TRANSCRIBES]-(:Transcription)<-[:PART_OF]-(segment:TranscriptionSegment)
            DETACH DELETE segment
            """,
            {"id": entity_id},
        )
        tx.run(
            f"""
            {self._match()}<-[:TRANSCRIBES]-(transcription:Transcription)
            DETACH DELETE transcription
            """,
            {"id": entity_id},
        )
