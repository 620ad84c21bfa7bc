"""
Duplicate Index
Identifies returning applicants by a hash of their sender address, so no
candidate is scored twice and no raw address is needed for the lookup.
"""
import hashlib
import logging
import random
import re
from datetime import datetime
from typing import Callable, Dict, Optional

from screening.services.tabular_storage import CANDIDATES, TabularStorage

logger = logging.getLogger(__name__)

HASH_LENGTH = 16


def hash_identity(value: str) -> str:
    """First 16 hex chars of SHA-256 over the trimmed, lower-cased value"""
    normalized = (value or "").strip().lower()
    return hashlib.sha256(normalized.encode("utf-8")).hexdigest()[:HASH_LENGTH]


def hash_phone(phone: Optional[str]) -> Optional[str]:
    if not phone:
        return None
    digits = re.sub(r'\D', '', phone)
    return hash_identity(digits) if digits else None


def generate_candidate_id(now: Optional[datetime] = None,
                          rand: Callable[[int, int], int] = random.randint) -> str:
    """CAND_<YYYYMMDD>_<3 digits>; uniqueness is best-effort only"""
    now = now or datetime.now()
    return f"CAND_{now.strftime('%Y%m%d')}_{rand(0, 999):03d}"


class DuplicateIndex:
    def __init__(self, storage: TabularStorage):
        self.storage = storage

    def hash_identity(self, address: str) -> str:
        return hash_identity(address)

    def find(self, email_hash: str) -> Optional[Dict]:
        """Existing candidate row with this email hash, scanning the table in order"""
        for row in self.storage.read_rows(CANDIDATES):
            if row.get("email_hash") == email_hash:
                return row
        return None

    def annotate_reapplication(self, candidate_id: str, received_at: datetime) -> bool:
        row = self.storage.find_row(CANDIDATES, "candidate_id", candidate_id)
        if row is None:
            logger.warning(f"Cannot annotate re-application, {candidate_id} not found")
            return False

        note = f"Re-applied on {received_at.strftime('%Y-%m-%d')}"
        existing = (row.get("notes") or "").strip()
        notes = f"{existing}\n{note}" if existing else note
        updated = self.storage.update_row(CANDIDATES, "candidate_id", candidate_id, {"notes": notes})
        logger.info(f"🔁 {candidate_id} re-applied, annotated record")
        return updated
