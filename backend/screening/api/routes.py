"""
Operator API Routes
Triggers for the scheduled jobs (pipeline run, digest, cleanup) plus
read-only statistics. A cron job or an operator calls these endpoints.
"""
from datetime import date, datetime, time, timedelta
from typing import Optional

from fastapi import APIRouter, Depends, Query
import logging

from screening.core.dependencies import ServiceContainer, get_container
from screening.models.messages import RunSummary
from screening.models.stats import CleanupReport, DigestStats

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["pipeline"])


@router.post("/pipeline/run", response_model=RunSummary)
def run_pipeline(container: ServiceContainer = Depends(get_container)):
    """Process every pending application email"""
    logger.info("▶️ Pipeline run requested")
    return container.pipeline.run_batch()


@router.post("/digest/send")
def send_digest(
    day: Optional[date] = Query(default=None, description="Day to summarize, defaults to yesterday"),
    container: ServiceContainer = Depends(get_container),
):
    stats = container.maintenance.send_daily_digest(day)
    if stats is None:
        return {"sent": False, "reason": "nothing processed"}
    return {"sent": True, "stats": stats.model_dump()}


@router.post("/maintenance/cleanup", response_model=CleanupReport)
def cleanup(
    retention_days: Optional[int] = Query(default=None, ge=1),
    container: ServiceContainer = Depends(get_container),
):
    return container.maintenance.cleanup_old_files(retention_days)


@router.get("/stats", response_model=DigestStats)
def stats(
    days: int = Query(default=7, ge=1, le=365),
    container: ServiceContainer = Depends(get_container),
):
    """Aggregates over the last `days` days, today included"""
    end = datetime.combine(date.today() + timedelta(days=1), time.min)
    return container.maintenance.stats_for_range(end - timedelta(days=days), end)
