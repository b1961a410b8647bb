"""Session audio recordings, their transcriptions and speakers."""
from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Annotated, Any, ClassVar

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, model_validator

from campaign_graph.models.common import CreateParams, JsonDict, ListOptions, NodeModel, Patch, decode_json, new_id


class TranscriptionStatus(str, Enum):
    """Progress of a recording through transcription."""

    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    FAILED = "failed"


class AudioRecording(NodeModel):
    """File metadata for one recording of a session."""

    recording_id: str
    session_id: str | None = None
    name: str
    description: str | None = None
    file_path: str | None = None
    duration_seconds: float | None = None
    file_size_bytes: int | None = None
    file_format: str | None = None
    sample_rate: int | None = None
    channels: int | None = None
    bit_depth: int | None = None
    transcription_status: TranscriptionStatus = TranscriptionStatus.NOT_STARTED
    transcription_id: str | None = None


class AudioRecordingCreate(CreateParams):
    session_id: str
    name: str = Field(min_length=1)
    description: str | None = None
    file_path: str | None = None
    duration_seconds: float | None = Field(default=None, ge=0)
    file_size_bytes: int | None = Field(default=None, ge=0)
    file_format: str | None = None
    sample_rate: int | None = Field(default=None, gt=0)
    channels: int | None = Field(default=None, gt=0)
    bit_depth: int | None = Field(default=None, gt=0)


class AudioRecordingUpdate(Patch):
    not_nullable: ClassVar[frozenset[str]] = frozenset({"name", "transcription_status"})

    session_id: str | None = None
    name: str | None = Field(default=None, min_length=1)
    description: str | None = None
    file_path: str | None = None
    duration_seconds: float | None = Field(default=None, ge=0)
    file_size_bytes: int | None = Field(default=None, ge=0)
    file_format: str | None = None
    sample_rate: int | None = Field(default=None, gt=0)
    channels: int | None = Field(default=None, gt=0)
    bit_depth: int | None = Field(default=None, gt=0)
    transcription_status: TranscriptionStatus | None = None


class AudioRecordingFilter(ListOptions):
    session_id: str | None = None
    transcription_status: TranscriptionStatus | None = None


class Word(BaseModel):
    """Word-level timing inside a segment."""

    word: str
    start_time: float
    end_time: float
    confidence: float | None = Field(default=None, ge=0.0, le=1.0)


class TranscriptionSegment(BaseModel):
    """A timed span of transcribed speech."""

    model_config = ConfigDict(extra="ignore")

    segment_id: str = Field(default_factory=new_id)
    start_time: float = Field(ge=0.0)
    end_time: float = Field(ge=0.0)
    text: str
    confidence_score: float | None = Field(default=None, ge=0.0, le=1.0)
    words: Annotated[list[Word], BeforeValidator(decode_json)] = Field(default_factory=list)
    speaker_id: str | None = None

    @model_validator(mode="after")
    def validate_times(self) -> TranscriptionSegment:
        if self.end_time < self.start_time:
            raise ValueError("Segment cannot end before it starts")
        return self


class Transcription(NodeModel):
    """Text transcribed from one recording, with its ordered segments."""

    transcription_id: str
    recording_id: str | None = None
    session_id: str | None = None
    full_text: str = ""
    language_code: str | None = None
    confidence_score: float | None = None
    word_count: int = 0
    processing_time_seconds: float | None = None
    service_used: str | None = None
    metadata: JsonDict = None
    segments: list[TranscriptionSegment] = Field(default_factory=list)


class TranscriptionCreate(CreateParams):
    recording_id: str
    full_text: str = ""
    language_code: str | None = Field(default=None, description="BCP-47 tag, e.g. 'en-US'")
    confidence_score: float | None = Field(default=None, ge=0.0, le=1.0)
    processing_time_seconds: float | None = Field(default=None, ge=0)
    service_used: str | None = None
    metadata: dict[str, Any] | None = None
    segments: list[TranscriptionSegment] = Field(default_factory=list)


class TranscriptionUpdate(Patch):
    not_nullable: ClassVar[frozenset[str]] = frozenset({"full_text"})

    full_text: str | None = None
    language_code: str | None = None
    confidence_score: float | None = Field(default=None, ge=0.0, le=1.0)
    processing_time_seconds: float | None = Field(default=None, ge=0)
    service_used: str | None = None
    metadata: dict[str, Any] | None = None
    segments: list[TranscriptionSegment] | None = None


class TranscriptionFilter(ListOptions):
    recording_id: str | None = None
    language_code: str | None = None


class Speaker(BaseModel):
    """A voice heard in a session, optionally identified as a character or user."""

    model_config = ConfigDict(extra="ignore")

    speaker_id: str
    session_id: str | None = None
    name: str | None = None
    character_id: str | None = None
    user_id: str | None = None
    created_at: datetime
    updated_at: datetime | None = None


class SpeakerUpsert(BaseModel):
    speaker_id: str | None = Field(default=None, description="Existing speaker to update; new one when omitted")
    session_id: str
    name: str | None = None


class SpeakerIdentification(Patch):
    """Who a speaker is. Set a field to ``None`` to forget that identification."""

    character_id: str | None = None
    user_id: str | None = None


def count_words(text: str) -> int:
    return len(text.split())
