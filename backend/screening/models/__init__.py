# Data contracts shared by the pipeline services

from .scoring import (
    NONE_SENTINEL,
    ScoringCriteria,
    ExperienceDetail,
    EducationEntry,
    ScoringResult,
    ProviderAttempt,
    ScoringOutcome,
    decode_scoring_payload,
)
from .candidate import (
    CandidateStatus,
    CandidateIdentity,
    PIIRecord,
    JobMatch,
    CandidateRecord,
)
from .messages import (
    InboundAttachment,
    InboundMessage,
    MessageMetadata,
    FileKind,
    AcceptedFile,
    AttachmentIssue,
    AttachmentBundle,
    MessageStatus,
    MessageOutcome,
    RunSummary,
)
from .stats import TopCandidate, DigestStats, CleanupReport

__all__ = [
    'NONE_SENTINEL',
    'ScoringCriteria',
    'ExperienceDetail',
    'EducationEntry',
    'ScoringResult',
    'ProviderAttempt',
    'ScoringOutcome',
    'decode_scoring_payload',
    'CandidateStatus',
    'CandidateIdentity',
    'PIIRecord',
    'JobMatch',
    'CandidateRecord',
    'InboundAttachment',
    'InboundMessage',
    'MessageMetadata',
    'FileKind',
    'AcceptedFile',
    'AttachmentIssue',
    'AttachmentBundle',
    'MessageStatus',
    'MessageOutcome',
    'RunSummary',
    'TopCandidate',
    'DigestStats',
    'CleanupReport',
]
