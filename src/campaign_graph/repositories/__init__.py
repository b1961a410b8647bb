"""Graph repositories, one per entity kind."""

from .audio_recording import AudioRecordingRepository
from .base import BaseRepository, JoinSpec, Link
from .campaign import CampaignRepository
from .change_proposal import ChangeProposalRepository
from .character import CharacterRepository
from .event import EventRepository
from .factory import RepositoryFactory
from .graph import GraphRepository
from .item import ItemRepository
from .location import LocationRepository
from .power import PowerRepository
from .relationship import RelationshipRepository
from .session import SessionRepository
from .session_analysis import SessionAnalysisRepository
from .transcription import TranscriptionRepository
from .world import WorldRepository

__all__ = [
    "BaseRepository",
    "Link",
    "JoinSpec",
    "RepositoryFactory",
    "WorldRepository",
    "CampaignRepository",
    "SessionRepository",
    "CharacterRepository",
    "LocationRepository",
    "ItemRepository",
    "PowerRepository",
    "EventRepository",
    "RelationshipRepository",
    "AudioRecordingRepository",
    "TranscriptionRepository",
    "SessionAnalysisRepository",
    "ChangeProposalRepository",
    "GraphRepository",
]
