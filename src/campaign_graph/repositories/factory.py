"""One place to build every repository over a shared executor."""
from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from campaign_graph.repositories.audio_recording import AudioRecordingRepository
from campaign_graph.repositories.campaign import CampaignRepository
from campaign_graph.repositories.change_proposal import ChangeProposalRepository
from campaign_graph.repositories.character import CharacterRepository
from campaign_graph.repositories.event import EventRepository
from campaign_graph.repositories.graph import GraphRepository
from campaign_graph.repositories.item import ItemRepository
from campaign_graph.repositories.location import LocationRepository
from campaign_graph.repositories.power import PowerRepository
from campaign_graph.repositories.relationship import RelationshipRepository
from campaign_graph.repositories.session import SessionRepository
from campaign_graph.repositories.session_analysis import SessionAnalysisRepository
from campaign_graph.repositories.transcription import TranscriptionRepository
from campaign_graph.repositories.world import WorldRepository

if TYPE_CHECKING:
    from campaign_graph.db.executor import QueryExecutor


@dataclass(frozen=True)
class RepositoryFactory:
    """All repositories, sharing one executor.

    Example:
        >>> with Neo4jExecutor.from_settings(Neo4jSettings.from_env()) as executor:
        ...     repos = RepositoryFactory.create(executor)
        ...     repos.locations.check_circular_reference(location_id, parent_id)
    """

    worlds: WorldRepository
    campaigns: CampaignRepository
    sessions: SessionRepository
    characters: CharacterRepository
    locations: LocationRepository
    items: ItemRepository
    powers: PowerRepository
    events: EventRepository
    relationships: RelationshipRepository
    audio_recordings: AudioRecordingRepository
    transcriptions: TranscriptionRepository
    session_analyses: SessionAnalysisRepository
    change_proposals: ChangeProposalRepository
    graph: GraphRepository

    @classmethod
    def create(cls, executor: QueryExecutor) -> RepositoryFactory:
        return cls(
            worlds=WorldRepository(executor),
            campaigns=CampaignRepository(executor),
            sessions=SessionRepository(executor),
            characters=CharacterRepository(executor),
            locations=LocationRepository(executor),
            items=ItemRepository(executor),
            powers=PowerRepository(executor),
            events=EventRepository(executor),
            relationships=RelationshipRepository(executor),
            audio_recordings=AudioRecordingRepository(executor),
            transcriptions=TranscriptionRepository(executor),
            session_analyses=SessionAnalysisRepository(executor),
            change_proposals=ChangeProposalRepository(executor),
            graph=GraphRepository(executor),
        )
