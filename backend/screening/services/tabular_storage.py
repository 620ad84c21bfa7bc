"""
Tabular Storage
SQLite-backed row store holding the five logical tables of the pipeline:
candidates, candidates_pii, job_descriptions, processing_log, error_log.

Rows are plain dicts keyed by column name and come back in insertion order.
Any failure to write raises StorageWriteError; callers never see a silently
dropped row.
"""
import sqlite3
import logging
from contextlib import contextmanager
from threading import Lock
from typing import Any, Dict, List, Optional

from screening.core.exceptions import StorageWriteError

logger = logging.getLogger(__name__)

CANDIDATES = "candidates"
CANDIDATES_PII = "candidates_pii"
JOB_DESCRIPTIONS = "job_descriptions"
PROCESSING_LOG = "processing_log"
ERROR_LOG = "error_log"

TABLE_COLUMNS: Dict[str, List[str]] = {
    CANDIDATES: [
        "candidate_id", "email_hash", "phone_hash", "job_id", "source", "received_at",
        "resume_location", "cover_letter_location", "skills", "experience_years",
        "experience_details", "education", "certifications", "overall_score",
        "skills_match_score", "experience_match_score", "education_score",
        "additional_score", "red_flags", "reasoning", "llm_used", "confidence_level",
        "status", "contact_status", "notes", "processed_at",
    ],
    CANDIDATES_PII: [
        "candidate_id", "full_name", "email", "phone", "address", "linkedin_url",
        "portfolio", "data_consent", "retention_until",
    ],
    JOB_DESCRIPTIONS: [
        "job_id", "role_title", "jd_text", "required_skills", "preferred_skills",
        "min_experience_years", "education_requirement", "scoring_criteria",
        "status", "created_at",
    ],
    PROCESSING_LOG: [
        "log_id", "timestamp", "message_id", "candidate_id", "action", "llm_used",
        "processing_ms", "token_estimate", "api_cost", "status",
    ],
    ERROR_LOG: [
        "error_id", "timestamp", "error_type", "message_id", "candidate_id", "message",
        "stack_trace", "retry_count", "status", "notified",
    ],
}

REAL_COLUMNS = {
    "experience_years", "overall_score", "skills_match_score", "experience_match_score",
    "education_score", "additional_score", "confidence_level", "min_experience_years",
    "processing_ms", "api_cost",
}
INTEGER_COLUMNS = {"token_estimate", "retry_count"}


def _column_type(column: str) -> str:
    if column in REAL_COLUMNS:
        return "REAL"
    if column in INTEGER_COLUMNS:
        return "INTEGER"
    return "TEXT"


class TabularStorage:
    def __init__(self, db_path: str = "./screening.db"):
        self.db_path = db_path
        self._write_lock = Lock()
        self.init_database()
        logger.info(f"✅ Tabular storage ready at {db_path}")

    @contextmanager
    def get_connection(self):
        conn = sqlite3.connect(self.db_path, timeout=30.0, check_same_thread=False)
        conn.row_factory = sqlite3.Row
        try:
            yield conn
        finally:
            conn.close()

    def init_database(self):
        """Create the five tables if they do not exist yet"""
        with self.get_connection() as conn:
            for table, columns in TABLE_COLUMNS.items():
                column_sql = ", ".join(f"{c} {_column_type(c)}" for c in columns)
                conn.execute(f"CREATE TABLE IF NOT EXISTS {table} ({column_sql})")
            conn.execute("CREATE INDEX IF NOT EXISTS idx_candidates_id ON candidates(candidate_id)")
            conn.commit()

    def _columns(self, table: str) -> List[str]:
        if table not in TABLE_COLUMNS:
            raise StorageWriteError(f"unknown table '{table}'", table=table)
        return TABLE_COLUMNS[table]

    def append_row(self, table: str, row: Dict[str, Any]) -> None:
        columns = self._columns(table)
        unknown = set(row) - set(columns)
        if unknown:
            raise StorageWriteError(f"unknown columns {sorted(unknown)}", table=table)

        names = [c for c in columns if c in row]
        placeholders = ", ".join("?" for _ in names)
        sql = f"INSERT INTO {table} ({', '.join(names)}) VALUES ({placeholders})"
        try:
            with self._write_lock, self.get_connection() as conn:
                conn.execute(sql, [row[c] for c in names])
                conn.commit()
        except sqlite3.Error as e:
            logger.error(f"❌ Append to {table} failed: {e}")
            raise StorageWriteError(str(e), table=table) from e

    def read_rows(self, table: str) -> List[Dict[str, Any]]:
        """All rows of a table in insertion order"""
        self._columns(table)
        with self.get_connection() as conn:
            cursor = conn.execute(f"SELECT * FROM {table} ORDER BY rowid")
            return [dict(r) for r in cursor.fetchall()]

    def update_row(self, table: str, key_column: str, key: Any, values: Dict[str, Any]) -> bool:
        """Update the row(s) whose key column equals `key`; False when none matched"""
        columns = self._columns(table)
        if key_column not in columns or set(values) - set(columns):
            raise StorageWriteError("update references unknown columns", table=table)
        if not values:
            return False

        assignments = ", ".join(f"{c} = ?" for c in values)
        sql = f"UPDATE {table} SET {assignments} WHERE {key_column} = ?"
        try:
            with self._write_lock, self.get_connection() as conn:
                cursor = conn.execute(sql, [*values.values(), key])
                conn.commit()
                return cursor.rowcount > 0
        except sqlite3.Error as e:
            logger.error(f"❌ Update of {table} failed: {e}")
            raise StorageWriteError(str(e), table=table) from e

    def find_row(self, table: str, column: str, value: Any) -> Optional[Dict[str, Any]]:
        for row in self.read_rows(table):
            if row.get(column) == value:
                return row
        return None

    def ping(self) -> bool:
        with self.get_connection() as conn:
            conn.execute("SELECT 1")
        return True
