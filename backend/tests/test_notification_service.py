import json
from datetime import date

import httpx

from conftest import scoring_payload
from screening.models.candidate import JobMatch
from screening.models.scoring import ScoringResult
from screening.models.stats import DigestStats, TopCandidate
from screening.services.notification_service import CRITICAL, NotificationService


def service(settings, handler, requests, **webhooks):
    def _handler(request):
        requests.append(request)
        return handler(request)
    configured = settings.model_copy(update=webhooks)
    return NotificationService(configured, http_client=httpx.Client(transport=httpx.MockTransport(_handler)))


def test_high_score_message(settings):
    requests = []
    notifier = service(settings, lambda r: httpx.Response(200, text="ok"), requests,
                       slack_webhook_urgent="https://hooks.slack.test/urgent")
    result = ScoringResult.from_payload(scoring_payload(reasoning="x" * 250), "gemini-2.0-flash")
    job = JobMatch(job_id="JOB_1", role_title="Backend Engineer", jd_text="...")

    assert notifier.send_high_score("CAND_20240506_001", result, job) is True

    body = json.loads(requests[0].content)
    assert str(requests[0].url) == "https://hooks.slack.test/urgent"
    assert "CAND_20240506_001" in body["text"]
    fields = " ".join(f["text"] for f in body["blocks"][1]["fields"])
    assert "82/100" in fields and "Backend Engineer" in fields
    assert body["blocks"][2]["text"]["text"].endswith("x" * 200 + "...")


def test_missing_webhook_skips_without_request(settings):
    requests = []
    notifier = service(settings, lambda r: httpx.Response(200), requests)
    assert notifier.send_alert(CRITICAL, "All LLMs failed") is False
    assert requests == []


def test_delivery_failure_returns_false(settings):
    requests = []
    notifier = service(settings, lambda r: httpx.Response(500, text="boom"), requests,
                       slack_webhook_alerts="https://hooks.slack.test/alerts")
    assert notifier.send_alert(CRITICAL, "All LLMs failed for candidate CAND_1") is False
    assert "CRITICAL" in json.loads(requests[0].content)["text"]


def test_transport_failure_returns_false(settings):
    def boom(request):
        raise httpx.ConnectError("unreachable", request=request)
    notifier = service(settings, boom, [], slack_webhook_alerts="https://hooks.slack.test/alerts")
    assert notifier.send_alert(CRITICAL, "down") is False


def test_digest_lists_top_candidates(settings):
    requests = []
    notifier = service(settings, lambda r: httpx.Response(200), requests,
                       slack_webhook_daily="https://hooks.slack.test/daily")
    stats = DigestStats(
        total=3, high_quality=1, medium_quality=1, low_quality=1, scored=3, avg_score=72.3,
        top_candidates=[TopCandidate(candidate_id="CAND_A", score=91, job_id="JOB_1")],
        api_cost=0.0123, success_rate=100, error_count=0,
    )

    assert notifier.send_digest(stats, date(2024, 5, 6)) is True

    payload = requests[0].content.decode("utf-8")
    assert "2024-05-06" in payload
    assert "CAND_A - 91/100 (JOB_1)" in payload
    assert "$0.012" in payload
