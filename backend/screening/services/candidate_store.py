"""
Candidate Store
Row-level writes the pipeline makes: candidate records, PII records,
processing log and error log entries.
"""
import logging
import time
import uuid
from datetime import datetime, timedelta
from typing import Optional

from screening.core.exceptions import ErrorType
from screening.models.candidate import CandidateRecord, PIIRecord
from screening.services.tabular_storage import (
    CANDIDATES,
    CANDIDATES_PII,
    ERROR_LOG,
    PROCESSING_LOG,
    TabularStorage,
)

logger = logging.getLogger(__name__)


def _entry_id(prefix: str) -> str:
    return f"{prefix}_{int(time.time() * 1000)}_{uuid.uuid4().hex[:4]}"


class CandidateStore:
    def __init__(self, storage: TabularStorage, retention_days: int = 90):
        self.storage = storage
        self.retention_days = retention_days

    # ===== CANDIDATES =====

    def save_candidate(self, record: CandidateRecord) -> None:
        self.storage.append_row(CANDIDATES, record.to_row())
        logger.info(f"💾 Saved {record.candidate_id} ({record.status.value})")

    # ===== PII =====

    def store_pii(self, candidate_id: str, pii: PIIRecord, now: Optional[datetime] = None) -> None:
        now = now or datetime.now()
        self.storage.append_row(CANDIDATES_PII, {
            "candidate_id": candidate_id,
            "full_name": pii.full_name or "",
            "email": pii.email or "",
            "phone": pii.phone or "",
            "address": pii.address or "",
            "linkedin_url": pii.linkedin_url or "",
            "portfolio": "",
            "data_consent": "TRUE",
            "retention_until": (now + timedelta(days=self.retention_days)).date().isoformat(),
        })

    # ===== LOGS =====

    def log_processing(self, message_id: str, candidate_id: str, llm_used: str,
                       processing_ms: float, token_estimate: int, api_cost: float,
                       action: str = "Resume Processed", status: str = "Success") -> None:
        self.storage.append_row(PROCESSING_LOG, {
            "log_id": _entry_id("LOG"),
            "timestamp": datetime.now().isoformat(),
            "message_id": message_id,
            "candidate_id": candidate_id,
            "action": action,
            "llm_used": llm_used,
            "processing_ms": round(processing_ms, 2),
            "token_estimate": token_estimate,
            "api_cost": api_cost,
            "status": status,
        })

    def log_error(self, error_type: ErrorType, message: str, message_id: str = "",
                  candidate_id: str = "", stack_trace: str = "") -> None:
        self.storage.append_row(ERROR_LOG, {
            "error_id": _entry_id("ERR"),
            "timestamp": datetime.now().isoformat(),
            "error_type": error_type.value,
            "message_id": message_id,
            "candidate_id": candidate_id,
            "message": message,
            "stack_trace": stack_trace,
            "retry_count": 0,
            "status": "Pending",
            "notified": "FALSE",
        })
        logger.warning(f"📝 Logged {error_type.value} for {candidate_id or message_id or 'run'}")
