from pydantic import BaseModel, Field
from typing import List, Optional


class TopCandidate(BaseModel):
    candidate_id: str
    score: float
    job_id: str = ""
    skills: str = ""


class DigestStats(BaseModel):
    """Aggregates over one reporting window"""
    total: int = 0
    high_quality: int = 0
    medium_quality: int = 0
    low_quality: int = 0
    scored: int = 0
    avg_score: float = 0.0
    top_candidates: List[TopCandidate] = Field(default_factory=list)
    api_cost: float = 0.0
    success_rate: float = 0.0
    error_count: int = 0


class CleanupReport(BaseModel):
    deleted_files: int = 0
    retention_days: int
    cutoff: Optional[str] = None
