"""
Job Description Lookup
Finds the open job an application refers to by looking for the role title
in the email subject and body.
"""
import logging
from datetime import datetime
from typing import Any, Dict, Optional

from screening.models.candidate import JobMatch
from screening.models.scoring import ScoringCriteria
from screening.services.tabular_storage import JOB_DESCRIPTIONS, TabularStorage

logger = logging.getLogger(__name__)

CLOSED = "Closed"


def _optional_float(value: Any) -> Optional[float]:
    try:
        return float(value) if value not in (None, "") else None
    except (TypeError, ValueError):
        return None


class JobMatcher:
    def __init__(self, storage: TabularStorage):
        self.storage = storage

    def match(self, subject: str, body: str) -> Optional[JobMatch]:
        """First open job whose role title appears in the subject or body"""
        haystack = f"{subject or ''} {body or ''}".lower()

        for row in self.storage.read_rows(JOB_DESCRIPTIONS):
            if (row.get("status") or "").strip() == CLOSED:
                continue
            title = (row.get("role_title") or "").strip()
            if title and title.lower() in haystack:
                logger.info(f"🎯 Matched job {row.get('job_id')} ({title})")
                return self._to_match(row)

        logger.info("No job matched, using default job description")
        return None

    @staticmethod
    def _to_match(row: Dict[str, Any]) -> JobMatch:
        return JobMatch(
            job_id=str(row.get("job_id") or ""),
            role_title=row.get("role_title") or "",
            jd_text=row.get("jd_text") or "",
            required_skills=row.get("required_skills") or "",
            preferred_skills=row.get("preferred_skills") or "",
            min_experience_years=_optional_float(row.get("min_experience_years")),
            education_requirement=row.get("education_requirement") or "",
            scoring_criteria=ScoringCriteria.from_json(row.get("scoring_criteria")),
        )

    def add_job(self, job_id: str, role_title: str, jd_text: str, status: str = "Open",
                scoring_criteria: Optional[str] = None, **details: Any) -> None:
        """Insert a job description row (used by operators and tests)"""
        row = {
            "job_id": job_id,
            "role_title": role_title,
            "jd_text": jd_text,
            "status": status,
            "scoring_criteria": scoring_criteria,
            "created_at": datetime.now().isoformat(),
        }
        row.update(details)
        self.storage.append_row(JOB_DESCRIPTIONS, row)
