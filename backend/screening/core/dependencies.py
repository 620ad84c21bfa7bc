"""
Dependency Injection Container
Builds every pipeline component once from the settings object and hands
out shared instances.
"""
from typing import List, Optional

import httpx
from fastapi import Request

from screening.core.config import Settings
from screening.core.health import HealthCheckManager
from screening.services.attachment_resolver import AttachmentResolver
from screening.services.candidate_store import CandidateStore
from screening.services.duplicate_index import DuplicateIndex
from screening.services.file_storage import FileStorage
from screening.services.job_matcher import JobMatcher
from screening.services.llm_providers import ScoringProvider, build_providers, build_vision_extractor
from screening.services.maintenance_service import MaintenanceService
from screening.services.message_source import ImapMessageSource
from screening.services.notification_service import NotificationService
from screening.services.pii_redactor import PIIRedactor
from screening.services.pipeline import PipelineCoordinator
from screening.services.scoring_orchestrator import ScoringOrchestrator
from screening.services.skill_normalizer import SkillNormalizer
from screening.services.tabular_storage import TabularStorage
from screening.services.text_extractor import TextExtractor


class ServiceContainer:
    """
    Centralized service container for dependency injection.
    Components are created lazily and cached for the lifetime of the container.
    """

    def __init__(
        self,
        settings: Settings,
        providers: Optional[List[ScoringProvider]] = None,
        message_source: Optional[ImapMessageSource] = None,
        http_client: Optional[httpx.Client] = None,
    ):
        self.settings = settings
        self._providers = providers
        self._message_source = message_source
        self._http_client = http_client

        self._storage: Optional[TabularStorage] = None
        self._file_storage: Optional[FileStorage] = None
        self._notifier: Optional[NotificationService] = None
        self._pipeline: Optional[PipelineCoordinator] = None
        self._maintenance: Optional[MaintenanceService] = None
        self._health: Optional[HealthCheckManager] = None

    @property
    def storage(self) -> TabularStorage:
        if self._storage is None:
            self._storage = TabularStorage(self.settings.database_path)
        return self._storage

    @property
    def file_storage(self) -> FileStorage:
        if self._file_storage is None:
            self._file_storage = FileStorage(self.settings.active_folder)
        return self._file_storage

    @property
    def providers(self) -> List[ScoringProvider]:
        if self._providers is None:
            self._providers = build_providers(self.settings, self._http_client)
        return self._providers

    @property
    def notifier(self) -> NotificationService:
        if self._notifier is None:
            self._notifier = NotificationService(self.settings, self._http_client)
        return self._notifier

    @property
    def message_source(self) -> ImapMessageSource:
        if self._message_source is None:
            self._message_source = ImapMessageSource(self.settings)
        return self._message_source

    @property
    def job_matcher(self) -> JobMatcher:
        return JobMatcher(self.storage)

    @property
    def pipeline(self) -> PipelineCoordinator:
        if self._pipeline is None:
            extractor = TextExtractor(
                vision_extractor=build_vision_extractor(self.settings, self._http_client),
                min_text_length=self.settings.min_text_length,
            )
            self._pipeline = PipelineCoordinator(
                settings=self.settings,
                job_matcher=self.job_matcher,
                duplicate_index=DuplicateIndex(self.storage),
                resolver=AttachmentResolver(extractor, self.file_storage, self.settings),
                redactor=PIIRedactor(),
                orchestrator=ScoringOrchestrator(self.providers, self.settings),
                skill_normalizer=SkillNormalizer(),
                store=CandidateStore(self.storage, self.settings.data_retention_days),
                notifier=self.notifier,
                message_source=self.message_source,
            )
        return self._pipeline

    @property
    def maintenance(self) -> MaintenanceService:
        if self._maintenance is None:
            self._maintenance = MaintenanceService(
                self.storage,
                self.file_storage,
                self.notifier,
                high_threshold=self.settings.high_score_threshold,
                medium_threshold=self.settings.medium_score_threshold,
                retention_days=self.settings.data_retention_days,
            )
        return self._maintenance

    @property
    def health(self) -> HealthCheckManager:
        if self._health is None:
            self._health = HealthCheckManager()
            self._health.register("tabular_storage", self.storage.ping, critical=True)
            self._health.register("file_storage", self.file_storage.ping, critical=True)
            self._health.register("scoring_providers", lambda: len(self.providers) > 0, critical=True)
            self._health.register(
                "slack", lambda: bool(self.settings.slack_webhook_alerts), critical=False
            )
        return self._health


def get_container(request: Request) -> ServiceContainer:
    """FastAPI dependency returning the container attached at startup"""
    return request.app.state.container
