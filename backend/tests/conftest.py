import io
import json
from datetime import datetime
from typing import Any, Dict, List, Optional
from unittest.mock import MagicMock

import docx
import pytest

from screening.core.config import Settings
from screening.services.attachment_resolver import AttachmentResolver
from screening.services.candidate_store import CandidateStore
from screening.services.duplicate_index import DuplicateIndex
from screening.services.file_storage import FileStorage
from screening.services.job_matcher import JobMatcher
from screening.services.llm_providers import ScoringProvider, ScoringRequest
from screening.services.message_source import ImapMessageSource
from screening.services.notification_service import NotificationService
from screening.services.pii_redactor import PIIRedactor
from screening.services.pipeline import PipelineCoordinator
from screening.services.scoring_orchestrator import ScoringOrchestrator
from screening.services.skill_normalizer import SkillNormalizer
from screening.services.tabular_storage import TabularStorage
from screening.services.text_extractor import TextExtractor
from screening.models.messages import InboundAttachment, InboundMessage

DOCX_TYPE = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"

RESUME_TEXT = (
    "Jane Doe\n"
    "jane.doe@example.com | (555) 123-4567\n"
    "12 Main Street, Springfield, IL 62704\n"
    "linkedin.com/in/janedoe\n\n"
    "Senior Python developer with eight years of experience building APIs, "
    "data pipelines and cloud infrastructure on AWS."
)

COVER_TEXT = (
    "Dear hiring team, I am excited to apply for the Backend Engineer role. "
    "Jane Doe has shipped production services for years."
)


class FakeProvider(ScoringProvider):
    """Scripted provider: each call consumes the next response (the last one repeats)"""

    def __init__(self, name: str, responses: List[Any], llm_tag: Optional[str] = None,
                 input_rate: float = 0.0, output_rate: float = 0.0):
        self.name = name
        self.llm_tag = llm_tag or name
        self.input_rate = input_rate
        self.output_rate = output_rate
        self.responses = list(responses)
        self.calls = 0
        self.prompts: List[str] = []

    def complete(self, request: ScoringRequest) -> str:
        self.calls += 1
        self.prompts.append(request.prompt)
        item = self.responses[min(self.calls, len(self.responses)) - 1]
        if isinstance(item, Exception):
            raise item
        return item if isinstance(item, str) else json.dumps(item)


def scoring_payload(**overrides) -> Dict[str, Any]:
    payload = {
        "skills_extracted": ["Python", "JS", "Reactjs"],
        "experience_years": 8,
        "experience_details": [
            {"role": "Senior Developer", "company": "COMPANY_A", "duration_years": 5,
             "key_achievements": ["Cut latency by 40%"]}
        ],
        "education": [{"degree": "BS Computer Science", "institution": "UNIVERSITY_A", "year": 2015}],
        "certifications": ["AWS Certified"],
        "skills_match_score": 85,
        "experience_match_score": 80,
        "education_score": 75,
        "additional_score": 70,
        "overall_score": 82,
        "reasoning": "Strong backend background with relevant cloud experience.",
        "red_flags": ["None"],
        "confidence_level": 0.9,
    }
    payload.update(overrides)
    return payload


def make_docx(*paragraphs: str) -> bytes:
    document = docx.Document()
    for paragraph in paragraphs:
        document.add_paragraph(paragraph)
    buffer = io.BytesIO()
    document.save(buffer)
    return buffer.getvalue()


def text_attachment(name: str, text: str) -> InboundAttachment:
    return InboundAttachment(name=name, content=text.encode("utf-8"), media_type="text/plain")


def make_message(message_id: str = "1", sender: str = "Jane Doe <jane.doe@example.com>",
                 subject: str = "Application for Backend Engineer", body: str = "Please find attached.",
                 attachments: Optional[List[InboundAttachment]] = None,
                 received_at: Optional[datetime] = None) -> InboundMessage:
    if attachments is None:
        attachments = [text_attachment("Jane_Resume.txt", RESUME_TEXT)]
    return InboundMessage(
        message_id=message_id,
        subject=subject,
        body=body,
        sender=sender,
        received_at=received_at or datetime(2024, 5, 6, 9, 30),
        attachments=attachments,
    )


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        _env_file=None,
        database_path=str(tmp_path / "screening.db"),
        active_folder=str(tmp_path / "files"),
        retry_base_delay=0.0,
        gemini_api_key=None,
        openai_api_key=None,
        anthropic_api_key=None,
        slack_webhook_urgent=None,
        slack_webhook_daily=None,
        slack_webhook_alerts=None,
        email_address=None,
        email_password=None,
    )


@pytest.fixture
def storage(settings) -> TabularStorage:
    return TabularStorage(settings.database_path)


@pytest.fixture
def file_storage(settings) -> FileStorage:
    return FileStorage(settings.active_folder)


@pytest.fixture
def notifier() -> MagicMock:
    return MagicMock(spec=NotificationService)


@pytest.fixture
def message_source() -> MagicMock:
    return MagicMock(spec=ImapMessageSource)


@pytest.fixture
def providers() -> List[FakeProvider]:
    return [FakeProvider("gemini", [scoring_payload()], llm_tag="gemini-2.0-flash")]


@pytest.fixture
def build_pipeline(settings, storage, file_storage, notifier, message_source):
    """Factory so a test can swap in its own provider chain"""
    counter = {"n": 0}

    def next_id() -> str:
        counter["n"] += 1
        return f"CAND_20240506_{counter['n']:03d}"

    def _build(providers: List[ScoringProvider]) -> PipelineCoordinator:
        return PipelineCoordinator(
            settings=settings,
            job_matcher=JobMatcher(storage),
            duplicate_index=DuplicateIndex(storage),
            resolver=AttachmentResolver(TextExtractor(), file_storage, settings),
            redactor=PIIRedactor(),
            orchestrator=ScoringOrchestrator(providers, settings, sleep=lambda _s: None),
            skill_normalizer=SkillNormalizer(),
            store=CandidateStore(storage, settings.data_retention_days),
            notifier=notifier,
            message_source=message_source,
            id_factory=next_id,
        )

    return _build


@pytest.fixture
def pipeline(build_pipeline, providers) -> PipelineCoordinator:
    return build_pipeline(providers)
