from pydantic import BaseModel, Field
from typing import Dict, List, Optional
from datetime import datetime
from enum import Enum

from screening.core.exceptions import ErrorType


# ===== INBOUND =====

class InboundAttachment(BaseModel):
    name: str
    content: bytes
    media_type: str = "application/octet-stream"

    @property
    def extension(self) -> str:
        if '.' not in self.name:
            return ''
        return '.' + self.name.rsplit('.', 1)[-1].lower()


class InboundMessage(BaseModel):
    """One application email as handed over by the message source"""
    message_id: str
    subject: str = ""
    body: str = ""
    sender: str = ""
    received_at: datetime = Field(default_factory=datetime.now)
    attachments: List[InboundAttachment] = Field(default_factory=list)


class MessageMetadata(BaseModel):
    sender_name: Optional[str] = None
    sender_email: str
    subject: str = ""
    body: str = ""
    received_at: datetime
    source: str = "Email"


# ===== ATTACHMENTS =====

class FileKind(str, Enum):
    RESUME = "RESUME"
    COVER = "COVER"


class AcceptedFile(BaseModel):
    name: str
    location: str
    kind: FileKind
    text_length: int = 0


class AttachmentIssue(BaseModel):
    file_name: str
    error_type: ErrorType
    message: str


class AttachmentBundle(BaseModel):
    resume_text: Optional[str] = None
    resume_location: Optional[str] = None
    cover_letter_text: Optional[str] = None
    cover_letter_location: Optional[str] = None
    accepted_files: List[AcceptedFile] = Field(default_factory=list)
    issues: List[AttachmentIssue] = Field(default_factory=list)

    @property
    def has_resume(self) -> bool:
        return bool(self.resume_text)


# ===== OUTCOMES =====

class MessageStatus(str, Enum):
    PROCESSED = "PROCESSED"
    DUPLICATE = "DUPLICATE"
    NO_RESUME = "NO_RESUME"
    SCORING_FAILED = "SCORING_FAILED"


class MessageOutcome(BaseModel):
    message_id: str
    status: MessageStatus
    candidate_id: Optional[str] = None
    overall_score: Optional[float] = None
    llm_used: Optional[str] = None
    processing_ms: float = 0.0
    detail: str = ""


class RunSummary(BaseModel):
    """Result of one batch run"""
    fetched: int = 0
    processed: int = 0
    duplicates: int = 0
    no_resume: int = 0
    scoring_failed: int = 0
    errors: int = 0
    aborted: bool = False
    outcomes: List[MessageOutcome] = Field(default_factory=list)
    error_messages: Dict[str, str] = Field(default_factory=dict)

    def record(self, outcome: MessageOutcome) -> None:
        self.outcomes.append(outcome)
        if outcome.status == MessageStatus.PROCESSED:
            self.processed += 1
        elif outcome.status == MessageStatus.DUPLICATE:
            self.duplicates += 1
        elif outcome.status == MessageStatus.NO_RESUME:
            self.no_resume += 1
        elif outcome.status == MessageStatus.SCORING_FAILED:
            self.scoring_failed += 1
