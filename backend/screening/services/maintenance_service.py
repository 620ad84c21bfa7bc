"""
Maintenance jobs: reporting statistics, the daily Slack digest and
retention cleanup of stored attachments.
"""
import logging
from datetime import date, datetime, time, timedelta
from typing import Any, Optional

from screening.models.stats import CleanupReport, DigestStats, TopCandidate
from screening.services.file_storage import FileStorage
from screening.services.notification_service import INFO, NotificationService
from screening.services.tabular_storage import CANDIDATES, ERROR_LOG, PROCESSING_LOG, TabularStorage

logger = logging.getLogger(__name__)


def _parse_timestamp(value: Any) -> Optional[datetime]:
    if not value:
        return None
    try:
        return datetime.fromisoformat(str(value))
    except ValueError:
        return None


def _in_range(value: Any, start: datetime, end: datetime) -> bool:
    moment = _parse_timestamp(value)
    return moment is not None and start <= moment < end


class MaintenanceService:
    def __init__(
        self,
        storage: TabularStorage,
        file_storage: FileStorage,
        notifier: NotificationService,
        high_threshold: float = 80,
        medium_threshold: float = 65,
        retention_days: int = 90,
    ):
        self.storage = storage
        self.file_storage = file_storage
        self.notifier = notifier
        self.high_threshold = high_threshold
        self.medium_threshold = medium_threshold
        self.retention_days = retention_days

    def stats_for_range(self, start: datetime, end: datetime) -> DigestStats:
        """Aggregate candidates, processing log and error log over [start, end)"""
        stats = DigestStats()
        total_score = 0.0
        top = []

        for row in self.storage.read_rows(CANDIDATES):
            if not _in_range(row.get("received_at"), start, end):
                continue
            stats.total += 1
            score = row.get("overall_score")
            # Placeholder rows carry no score
            if score is None:
                continue
            stats.scored += 1
            total_score += score
            if score >= self.high_threshold:
                stats.high_quality += 1
            elif score >= self.medium_threshold:
                stats.medium_quality += 1
            else:
                stats.low_quality += 1
            top.append(TopCandidate(
                candidate_id=row["candidate_id"],
                score=score,
                job_id=row.get("job_id") or "",
                skills=row.get("skills") or "",
            ))

        top.sort(key=lambda c: c.score, reverse=True)
        stats.top_candidates = top[:3]
        stats.avg_score = round(total_score / stats.scored, 1) if stats.scored else 0.0

        successes = 0
        for row in self.storage.read_rows(PROCESSING_LOG):
            if _in_range(row.get("timestamp"), start, end):
                stats.api_cost += row.get("api_cost") or 0.0
                if row.get("status") == "Success":
                    successes += 1
        stats.success_rate = round(successes / stats.total * 100, 1) if stats.total else 0.0

        stats.error_count = sum(
            1 for row in self.storage.read_rows(ERROR_LOG) if _in_range(row.get("timestamp"), start, end)
        )
        return stats

    def send_daily_digest(self, day: Optional[date] = None) -> Optional[DigestStats]:
        """Send yesterday's summary (or `day`'s); None when nothing was processed"""
        day = day or (date.today() - timedelta(days=1))
        start = datetime.combine(day, time.min)
        stats = self.stats_for_range(start, start + timedelta(days=1))

        if stats.total == 0:
            logger.info(f"No resumes processed on {day}, skipping digest")
            return None

        self.notifier.send_digest(stats, day)
        logger.info(f"📊 Digest for {day}: {stats.total} candidate(s), avg {stats.avg_score}")
        return stats

    def cleanup_old_files(self, retention_days: Optional[int] = None) -> CleanupReport:
        retention_days = retention_days or self.retention_days
        cutoff = datetime.now() - timedelta(days=retention_days)
        deleted = self.file_storage.delete_older_than(cutoff)
        self.notifier.send_alert(INFO, f"Data cleanup completed: {deleted} old file(s) deleted")
        return CleanupReport(deleted_files=deleted, retention_days=retention_days, cutoff=cutoff.isoformat())
