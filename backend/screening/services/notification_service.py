"""
Slack Notifications
Incoming-webhook messages for high-scoring candidates, operational alerts
and the daily digest. Delivery is best effort: failures are logged and
never interrupt the pipeline.
"""
import logging
from datetime import date
from typing import Any, Dict, List, Optional

import httpx

from screening.core.config import Settings
from screening.models.candidate import JobMatch
from screening.models.scoring import ScoringResult
from screening.models.stats import DigestStats, TopCandidate

logger = logging.getLogger(__name__)

CRITICAL = "CRITICAL"
ERROR = "ERROR"
INFO = "INFO"

_LEVEL_EMOJI = {CRITICAL: "🚨", ERROR: "⚠️", INFO: "ℹ️"}


def _field(label: str, value: Any) -> Dict[str, str]:
    return {"type": "mrkdwn", "text": f"*{label}:*\n{value}"}


def _button(text: str, url: str) -> Dict[str, Any]:
    return {
        "type": "actions",
        "elements": [{
            "type": "button",
            "text": {"type": "plain_text", "text": text},
            "url": url,
            "style": "primary",
        }],
    }


def _format_top(candidates: List[TopCandidate]) -> str:
    if not candidates:
        return "_none_"
    return "\n".join(
        f"{i}. {c.candidate_id} - {c.score:.0f}/100 ({c.job_id or 'UNMATCHED'})"
        for i, c in enumerate(candidates, start=1)
    )


class NotificationService:
    def __init__(self, settings: Settings, http_client: Optional[httpx.Client] = None):
        self.urgent_webhook = settings.slack_webhook_urgent
        self.daily_webhook = settings.slack_webhook_daily
        self.alerts_webhook = settings.slack_webhook_alerts
        self.dashboard_url = settings.dashboard_url
        self.client = http_client or httpx.Client(timeout=settings.notification_timeout)

    def _post(self, webhook: Optional[str], payload: Dict[str, Any], kind: str) -> bool:
        if not webhook:
            logger.debug(f"No webhook configured for {kind}, skipping")
            return False
        try:
            response = self.client.post(webhook, json=payload)
            response.raise_for_status()
        except httpx.HTTPError as e:
            logger.error(f"❌ Slack {kind} notification failed: {e}")
            return False
        logger.info(f"📣 Slack {kind} notification sent")
        return True

    def send_high_score(self, candidate_id: str, result: ScoringResult, job: Optional[JobMatch]) -> bool:
        job_title = job.role_title if job else "General Position"
        reasoning = result.reasoning[:200]
        if len(result.reasoning) > 200:
            reasoning += "..."

        payload = {
            "text": f"🌟 High-Quality Candidate Detected! ({candidate_id})",
            "blocks": [
                {"type": "header", "text": {"type": "plain_text", "text": "🌟 Excellent Candidate Match"}},
                {"type": "section", "fields": [
                    _field("Candidate", candidate_id),
                    _field("Score", f"{result.overall_score:.0f}/100"),
                    _field("Role", job_title),
                    _field("Experience", f"{result.experience_years:g} years"),
                    _field("Top Skills", ", ".join(result.skills_extracted[:3]) or "n/a"),
                    _field("Scored by", result.llm_used),
                ]},
                {"type": "section", "text": {"type": "mrkdwn", "text": f"*Reasoning:* {reasoning}"}},
                _button("View Candidates", self.dashboard_url),
            ],
        }
        return self._post(self.urgent_webhook, payload, "high-score")

    def send_alert(self, level: str, text: str) -> bool:
        emoji = _LEVEL_EMOJI.get(level, "⚠️")
        payload = {
            "text": f"{emoji} {level}: {text}",
            "blocks": [
                {"type": "section", "text": {"type": "mrkdwn", "text": f"{emoji} *{level}*\n{text}"}},
            ],
        }
        return self._post(self.alerts_webhook, payload, f"{level.lower()} alert")

    def send_digest(self, stats: DigestStats, day: date) -> bool:
        payload = {
            "text": "📊 Daily Recruiting Summary",
            "blocks": [
                {"type": "header", "text": {
                    "type": "plain_text", "text": f"📊 Recruiting Summary - {day.isoformat()}"
                }},
                {"type": "section", "fields": [
                    _field("Total Resumes", stats.total),
                    _field("High Quality (≥80)", stats.high_quality),
                    _field("Medium (65-79)", stats.medium_quality),
                    _field("Low (<65)", stats.low_quality),
                ]},
                {"type": "section", "text": {
                    "type": "mrkdwn", "text": f"*Top 3 Candidates:*\n{_format_top(stats.top_candidates)}"
                }},
                {"type": "section", "fields": [
                    _field("Avg Score", f"{stats.avg_score:.0f}"),
                    _field("Processing Success", f"{stats.success_rate:.0f}%"),
                    _field("API Cost", f"${stats.api_cost:.3f}"),
                    _field("Errors", stats.error_count),
                ]},
                _button("Open Dashboard", self.dashboard_url),
            ],
        }
        return self._post(self.daily_webhook, payload, "digest")
