from pydantic import BaseModel, Field
from typing import Any, Dict, List, Optional
from datetime import datetime
from enum import Enum
import json

from screening.models.scoring import ScoringCriteria, ScoringResult, NONE_SENTINEL


class CandidateStatus(str, Enum):
    """Processing status stored on the candidate row"""
    PROCESSED = "Processed"
    NEEDS_MANUAL_REVIEW = "Needs Manual Review"
    SCORING_FAILED = "Scoring Failed"


class CandidateIdentity(BaseModel):
    candidate_id: str
    email_hash: str
    phone_hash: Optional[str] = None


class PIIRecord(BaseModel):
    """Personally identifying fields. Lives only in the PII table."""
    full_name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    linkedin_url: Optional[str] = None

    def redactable_values(self) -> Dict[str, str]:
        return {k: v for k, v in self.model_dump().items() if v}


class JobMatch(BaseModel):
    job_id: str
    role_title: str
    jd_text: str
    required_skills: str = ""
    preferred_skills: str = ""
    min_experience_years: Optional[float] = None
    education_requirement: str = ""
    scoring_criteria: ScoringCriteria = Field(default_factory=ScoringCriteria)


class CandidateRecord(BaseModel):
    """Row persisted to the candidates table"""
    candidate_id: str
    email_hash: str
    phone_hash: str = ""
    job_id: str = "UNMATCHED"
    source: str = "Email"
    received_at: datetime
    resume_location: str = ""
    cover_letter_location: str = ""
    skills: List[str] = Field(default_factory=list)
    experience_years: float = 0.0
    experience_details: List[Dict[str, Any]] = Field(default_factory=list)
    education: List[Dict[str, Any]] = Field(default_factory=list)
    certifications: List[str] = Field(default_factory=list)
    overall_score: Optional[float] = None
    skills_match_score: Optional[float] = None
    experience_match_score: Optional[float] = None
    education_score: Optional[float] = None
    additional_score: Optional[float] = None
    red_flags: List[str] = Field(default_factory=list)
    reasoning: str = ""
    llm_used: str = ""
    confidence_level: Optional[float] = None
    status: CandidateStatus = CandidateStatus.PROCESSED
    contact_status: str = "Not Contacted"
    notes: str = ""
    processed_at: datetime = Field(default_factory=datetime.now)

    @classmethod
    def from_scoring(
        cls,
        identity: CandidateIdentity,
        result: ScoringResult,
        job: Optional[JobMatch],
        source: str,
        received_at: datetime,
        resume_location: Optional[str],
        cover_letter_location: Optional[str],
    ) -> "CandidateRecord":
        return cls(
            candidate_id=identity.candidate_id,
            email_hash=identity.email_hash,
            phone_hash=identity.phone_hash or "",
            job_id=job.job_id if job else "UNMATCHED",
            source=source,
            received_at=received_at,
            resume_location=resume_location or "",
            cover_letter_location=cover_letter_location or "",
            skills=result.skills_extracted,
            experience_years=result.experience_years,
            experience_details=[d.model_dump() for d in result.experience_details],
            education=[e.model_dump() for e in result.education],
            certifications=result.certifications,
            overall_score=result.overall_score,
            skills_match_score=result.skills_match_score,
            experience_match_score=result.experience_match_score,
            education_score=result.education_score,
            additional_score=result.additional_score,
            red_flags=result.red_flags,
            reasoning=result.reasoning,
            llm_used=result.llm_used,
            confidence_level=result.confidence_level,
            status=CandidateStatus.PROCESSED,
        )

    @classmethod
    def placeholder(
        cls,
        identity: CandidateIdentity,
        job: Optional[JobMatch],
        source: str,
        received_at: datetime,
        status: CandidateStatus,
        reason: str,
        resume_location: Optional[str] = None,
        cover_letter_location: Optional[str] = None,
    ) -> "CandidateRecord":
        """Error-state record so a submission is never lost when it cannot be scored"""
        return cls(
            candidate_id=identity.candidate_id,
            email_hash=identity.email_hash,
            phone_hash=identity.phone_hash or "",
            job_id=job.job_id if job else "UNMATCHED",
            source=source,
            received_at=received_at,
            resume_location=resume_location or "",
            cover_letter_location=cover_letter_location or "",
            reasoning=reason,
            status=status,
            notes=f"{status.value}: {reason}",
        )

    def to_row(self) -> Dict[str, Any]:
        """Flatten to the candidates table layout (lists joined, nested JSON encoded)"""
        return {
            "candidate_id": self.candidate_id,
            "email_hash": self.email_hash,
            "phone_hash": self.phone_hash,
            "job_id": self.job_id,
            "source": self.source,
            "received_at": self.received_at.isoformat(),
            "resume_location": self.resume_location,
            "cover_letter_location": self.cover_letter_location,
            "skills": ", ".join(self.skills),
            "experience_years": self.experience_years,
            "experience_details": json.dumps(self.experience_details),
            "education": json.dumps(self.education),
            "certifications": ", ".join(self.certifications),
            "overall_score": self.overall_score,
            "skills_match_score": self.skills_match_score,
            "experience_match_score": self.experience_match_score,
            "education_score": self.education_score,
            "additional_score": self.additional_score,
            "red_flags": "; ".join(self.red_flags) if self.red_flags else "",
            "reasoning": self.reasoning,
            "llm_used": self.llm_used,
            "confidence_level": self.confidence_level,
            "status": self.status.value,
            "contact_status": self.contact_status,
            "notes": self.notes,
            "processed_at": self.processed_at.isoformat(),
        }

    @property
    def has_red_flags(self) -> bool:
        return bool(self.red_flags) and self.red_flags != [NONE_SENTINEL]
