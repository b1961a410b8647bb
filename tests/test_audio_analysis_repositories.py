"""Tests for transcriptions, speakers and the session analysis aggregate."""
from __future__ import annotations

import json

import pytest
from conftest import CREATED_AT, entity, exists

from campaign_graph.exceptions import ConflictError, EntityNotFoundError
from campaign_graph.models.analysis import (
    CharacterInsight,
    CharacterInteraction,
    KeyPoint,
    PlotDevelopment,
    RelatedEntity,
    SessionAnalysisCreate,
    SessionAnalysisUpdate,
)
from campaign_graph.models.audio import (
    SpeakerIdentification,
    TranscriptionCreate,
    TranscriptionSegment,
    TranscriptionUpdate,
)
from campaign_graph.repositories.session_analysis import SessionAnalysisRepository
from campaign_graph.repositories.transcription import TranscriptionRepository


def transcription_row(query, params):
    return entity(transcription_id=params["id"], recording_id="rec1", session_id="s1", full_text="The party enters")


def analysis_row(query, params):
    return entity(analysis_id=params["id"], session_id="s1", status="completed")


# ---------------------------- Transcriptions ----------------------------


class TestTranscriptionRepository:
    """Tests for transcriptions and their segments."""

    def test_create_stamps_recording_and_writes_segments(self, executor):
        executor.on("CREATE (n)-[:TRANSCRIBES]->(target)", [{"target_id": "rec1"}])
        executor.on("AS found", [{"found": ["sp1"]}])
        executor.on("AS entity LIMIT 1", transcription_row)

        transcription = TranscriptionRepository(executor).create(
            TranscriptionCreate(
                recording_id="rec1",
                full_text="The party enters",
                segments=[
                    TranscriptionSegment(start_time=0.0, end_time=1.5, text="The party", speaker_id="sp1"),
                    TranscriptionSegment(start_time=1.5, end_time=2.0, text="enters"),
                ],
            ),
            actor_id="u1",
        )

        props = executor.queries("CREATE (n:Transcription $props)")[0].params["props"]
        assert props["word_count"] == 3
        assert "segments" not in props
        assert "recording_id" not in props

        stamp = executor.queries("SET r.transcription_id = $id")[0]
        assert stamp.params["status"] == "in_progress"

        segments = executor.queries("UNWIND $segments AS segment")[0].params["segments"]
        assert [segment["speaker_id"] for segment in segments] == ["sp1", None]
        assert "speaker_id" not in segments[0]["props"]
        assert transcription.session_id == "s1"

    def test_unknown_speaker_rolls_back(self, executor):
        executor.on("CREATE (n)-[:TRANSCRIBES]->(target)", [{"target_id": "rec1"}])

        with pytest.raises(EntityNotFoundError) as exc:
            TranscriptionRepository(executor).create(
                TranscriptionCreate(
                    recording_id="rec1",
                    segments=[TranscriptionSegment(start_time=0.0, end_time=1.0, text="Hi", speaker_id="ghost")],
                ),
                actor_id="u1",
            )

        assert exc.value.entity == "Speaker"
        assert not executor.queries("UNWIND $segments")
        assert executor.rollbacks == 1

    def test_second_transcription_conflicts(self, executor):
        executor.on("RETURN t.transcription_id AS id", [{"id": "t0"}])

        with pytest.raises(ConflictError, match="already transcribed"):
            TranscriptionRepository(executor).create(TranscriptionCreate(recording_id="rec1"), actor_id="u1")

        assert not executor.queries("CREATE (n:Transcription")

    def test_update_recounts_words_from_stored_text(self, executor):
        executor.on(*exists("transcription_id", "t1"))
        executor.on("RETURN n.full_text AS full_text", [{"full_text": "one two three four"}])
        executor.on("AS entity LIMIT 1", transcription_row)

        TranscriptionRepository(executor).update("t1", TranscriptionUpdate(full_text="one two three four"))

        assert executor.queries("SET n.word_count = $word_count")[0].params["word_count"] == 4
        assert not executor.queries("UNWIND $segments")

    def test_update_segments_replaces_whole_set(self, executor):
        executor.on(*exists("transcription_id", "t1"))
        executor.on("AS entity LIMIT 1", transcription_row)

        TranscriptionRepository(executor).update(
            "t1", TranscriptionUpdate(segments=[TranscriptionSegment(start_time=0, end_time=1, text="Hello")])
        )

        assert executor.index("DETACH DELETE segment") < executor.index("UNWIND $segments AS segment")
        assert "segments" not in executor.queries("SET n += $props")[0].params["props"]

    def test_delete_resets_recording(self, executor):
        executor.on(*exists("transcription_id", "t1"))
        executor.on("AS deleted", [{"deleted": 1}])

        assert TranscriptionRepository(executor).delete("t1") is True

        reset = executor.queries("SET r.transcription_id = null")[0]
        assert reset.params["status"] == "not_started"
        assert (
            executor.index("SET r.transcription_id = null")
            < executor.index("DETACH DELETE segment")
            < executor.index("DETACH DELETE n")
        )

    def test_segments_read_back_in_order(self, executor):
        executor.on("AS entity LIMIT 1", transcription_row)
        executor.on(
            "AS segment",
            [
                {"segment": {"segment_id": "a", "start_time": 0.0, "end_time": 1.0, "text": "Hi", "words": "[]"}},
                {"segment": {"segment_id": "b", "start_time": 1.0, "end_time": 2.0, "text": "there"}},
            ],
        )

        transcription = TranscriptionRepository(executor).find_by_id("t1")

        assert [segment.segment_id for segment in transcription.segments] == ["a", "b"]
        assert "ORDER BY segment.start_time ASC" in executor.queries("AS segment")[0].query


class TestSpeakers:
    """Tests for speaker upsert and identification."""

    def speaker_row(self, query, params):
        return [{"speaker": {"speaker_id": params["speaker_id"], "session_id": "s1", "created_at": CREATED_AT}}]

    def test_identify_replaces_only_given_edge(self, executor):
        executor.on("RETURN x.speaker_id AS id", [{"id": "sp1"}])
        executor.on("CREATE (sp)-[:REPRESENTS]->(target)", [{"id": "ch1"}])
        executor.on("AS speaker", self.speaker_row)

        TranscriptionRepository(executor).identify_speaker("sp1", SpeakerIdentification(character_id="ch1"))

        assert executor.index("[r:REPRESENTS]") < executor.index("CREATE (sp)-[:REPRESENTS]->(target)")
        assert not executor.queries("[r:IS_USER]")

    def test_identify_none_forgets_user(self, executor):
        executor.on("RETURN x.speaker_id AS id", [{"id": "sp1"}])
        executor.on("AS speaker", self.speaker_row)

        TranscriptionRepository(executor).identify_speaker("sp1", SpeakerIdentification(user_id=None))

        assert executor.queries("[r:IS_USER]")
        assert not executor.queries("CREATE (sp)-[:IS_USER]")

    def test_upsert_requires_session(self, executor):
        from campaign_graph.models.audio import SpeakerUpsert

        with pytest.raises(EntityNotFoundError):
            TranscriptionRepository(executor).create_or_update_speaker(SpeakerUpsert(session_id="s9", name="DM"))

        assert not executor.queries("MERGE")


# ---------------------------- Session analysis ----------------------------


class TestSessionAnalysisRepository:
    """Tests for the analysis aggregate."""

    def test_create_writes_every_collection(self, executor):
        executor.on("CREATE (n)-[:ANALYZES]->(target)", [{"target_id": "s1"}])
        executor.on("RETURN x.character_id AS id", [{"id": "ch1"}])
        executor.on("AS entity LIMIT 1", analysis_row)

        SessionAnalysisRepository(executor).create(
            SessionAnalysisCreate(
                session_id="s1",
                summary="The heroes reach Bryn Shander",
                key_points=[KeyPoint(text="Arrived in town", importance_score=0.8)],
                character_insights=[
                    CharacterInsight(
                        name="Drizzt",
                        character_id="ch1",
                        interactions=[CharacterInteraction(name="Wulfgar", interaction_count=2)],
                    )
                ],
                plot_developments=[
                    PlotDevelopment(title="Town under siege", related_entities=[RelatedEntity(name="Ten Towns")])
                ],
            ),
            actor_id="u1",
        )

        props = executor.queries("CREATE (n:SessionAnalysis $props)")[0].params["props"]
        assert "key_points" not in props
        assert props["summary"] == "The heroes reach Bryn Shander"

        insight = executor.queries("CREATE (ci:CharacterInsight)")[0].params
        assert insight["character_id"] == "ch1"
        assert "interactions" not in insight["props"]
        assert [x["name"] for x in insight["interactions"]] == ["Wulfgar"]

        plot = executor.queries("CREATE (p:PlotDevelopment)")[0].params
        assert [e["name"] for e in plot["entities"]] == ["Ten Towns"]
        assert executor.queries("CREATE (c:KeyPoint)")
        assert not executor.queries("CREATE (c:Topic)")

    def test_insight_for_unknown_character_rolls_back(self, executor):
        executor.on("CREATE (n)-[:ANALYZES]->(target)", [{"target_id": "s1"}])

        with pytest.raises(EntityNotFoundError):
            SessionAnalysisRepository(executor).create(
                SessionAnalysisCreate(
                    session_id="s1", character_insights=[CharacterInsight(name="Nobody", character_id="ch9")]
                ),
                actor_id="u1",
            )

        assert executor.rollbacks == 1

    def test_update_replaces_only_given_collections(self, executor):
        executor.on(*exists("analysis_id", "a1"))
        executor.on("AS entity LIMIT 1", analysis_row)

        SessionAnalysisRepository(executor).update(
            "a1", SessionAnalysisUpdate(key_points=[KeyPoint(text="New point")], topics=[])
        )

        assert executor.index("DETACH DELETE k") < executor.index("CREATE (c:KeyPoint)")
        assert executor.queries("DETACH DELETE t")
        assert not executor.queries("CREATE (c:Topic)")
        assert not executor.queries("DETACH DELETE x, ci")
        assert not executor.queries("DETACH DELETE e, p")
        assert executor.queries("SET n += $props")[0].params["props"] == {}

    def test_delete_removes_children_first(self, executor):
        executor.on(*exists("analysis_id", "a1"))
        executor.on("AS deleted", [{"deleted": 1}])

        assert SessionAnalysisRepository(executor).delete("a1") is True

        node = executor.index("DETACH DELETE n")
        for child in ("DETACH DELETE k", "DETACH DELETE x, ci", "DETACH DELETE e, p", "DETACH DELETE t"):
            assert executor.index(child) < node

    def test_find_by_session_assembles_children(self, executor):
        executor.on("RETURN a.analysis_id AS id", [{"id": "a1"}, {"id": "a2"}])
        executor.on("AS entity LIMIT 1", analysis_row)
        executor.on("RETURN k {.*} AS child", [{"child": {"key_point_id": "k1", "text": "Point"}}])
        executor.on(
            "RETURN p {.*, related_entities: related_entities} AS child",
            [{"child": {"plot_development_id": "p1", "title": "Plot", "related_entities": [{"name": "Targos"}]}}],
        )
        executor.on("RETURN t {.*} AS child", [{"child": {"topic_id": "t1", "name": "Trade", "keywords": ["fish"]}}])

        analyses = SessionAnalysisRepository(executor).find_by_session_id("s1")

        assert [analysis.analysis_id for analysis in analyses] == ["a1", "a2"]
        assert analyses[0].key_points[0].text == "Point"
        assert analyses[0].plot_developments[0].related_entities[0].name == "Targos"
        assert analyses[0].topics[0].keywords == ["fish"]
        assert analyses[0].character_insights == []
        assert set(executor.transactions) == {"read"}


def test_metadata_round_trips_as_json_property(executor):
    """Map-valued fields are stored as JSON text and decoded on read."""
    executor.on(*exists("transcription_id", "t1"))
    executor.on(
        "AS entity LIMIT 1",
        entity(transcription_id="t1", metadata=json.dumps({"engine": "whisper"})),
    )

    transcription = TranscriptionRepository(executor).update(
        "t1", TranscriptionUpdate(metadata={"engine": "whisper"})
    )

    stored = executor.queries("SET n += $props")[0].params["props"]["metadata"]
    assert json.loads(stored) == {"engine": "whisper"}
    assert transcription.metadata == {"engine": "whisper"}
