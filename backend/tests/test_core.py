import json
import logging

import pytest

from screening.core.config import LowConfidencePolicy, Settings
from screening.core.exceptions import ProviderError
from screening.core.logging import ColoredFormatter, JSONFormatter, PIIScrubFilter
from screening.core.retry import Deadline, RetryPolicy, call_with_retry


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now


class TestRetry:
    def test_succeeds_after_transient_failures(self):
        calls, sleeps = [], []

        def flaky():
            calls.append(1)
            if len(calls) < 3:
                raise ProviderError("timeout", "gemini")
            return "ok"

        value, outcome = call_with_retry(
            flaky, RetryPolicy(max_attempts=3, base_delay=2.0), (ProviderError,), sleep=sleeps.append
        )

        assert value == "ok"
        assert outcome.tries == 3
        assert sleeps == [2.0, 4.0]
        assert len(outcome.errors) == 2

    def test_gives_up_after_max_attempts(self):
        def always_fails():
            raise ProviderError("boom", "openai")

        value, outcome = call_with_retry(
            always_fails, RetryPolicy(max_attempts=2, base_delay=0), (ProviderError,), sleep=lambda s: None
        )

        assert value is None
        assert outcome.tries == 2
        assert outcome.last_error == "openai: boom"

    def test_non_retryable_error_stops_immediately(self):
        def rejected():
            raise ProviderError("401 unauthorized", "anthropic", retryable=False)

        value, outcome = call_with_retry(rejected, RetryPolicy(max_attempts=3), (ProviderError,), sleep=lambda s: None)

        assert value is None
        assert outcome.tries == 1

    def test_unlisted_exceptions_propagate(self):
        def broken():
            raise KeyError("bug")

        with pytest.raises(KeyError):
            call_with_retry(broken, RetryPolicy(), (ProviderError,), sleep=lambda s: None)

    def test_deadline_caps_sleep_and_stops_attempts(self):
        clock = FakeClock()
        deadline = Deadline(5, clock=clock)
        sleeps = []

        def sleep(seconds):
            sleeps.append(seconds)
            clock.now += seconds

        def always_fails():
            raise ProviderError("slow", "gemini")

        value, outcome = call_with_retry(
            always_fails, RetryPolicy(max_attempts=5, base_delay=3), (ProviderError,),
            deadline=deadline, sleep=sleep,
        )

        assert value is None
        assert sleeps == [3, 2]
        assert outcome.tries == 2
        assert outcome.errors[-1] == "deadline exceeded before attempt 3"


def test_json_formatter_includes_extras():
    record = logging.LogRecord("screening.test", logging.WARNING, __file__, 10, "hello %s", ("x",), None)
    record.candidate_id = "CAND_1"
    payload = json.loads(JSONFormatter().format(record))
    assert payload["message"] == "hello x"
    assert payload["level"] == "WARNING"
    assert payload["candidate_id"] == "CAND_1"


def test_scrub_filter_masks_contact_details():
    record = logging.LogRecord(
        "screening.test", logging.ERROR, __file__, 1,
        "Send to %s failed, call (555) 123-4567 on 2024-05-06", ("jane.doe@example.com",), None,
    )
    assert PIIScrubFilter().filter(record)
    assert record.getMessage() == "Send to [email] failed, call [phone] on 2024-05-06"


def test_colored_formatter_shows_pipeline_context():
    record = logging.LogRecord("screening.services.pipeline", logging.INFO, __file__, 1, "scored", (), None)
    record.candidate_id = "CAND_20240506_001"
    line = ColoredFormatter().format(record)
    assert "services.pipeline" in line
    assert line.endswith("[candidate_id=CAND_20240506_001]")


def test_settings_parse_lists_and_policy():
    settings = Settings(
        _env_file=None,
        supported_extensions="PDF, .docx,,txt",
        cover_letter_keywords=" Letter ,motivation",
        low_confidence_policy=" ACCEPT ",
    )
    assert settings.supported_extensions_list == [".pdf", ".docx", ".txt"]
    assert settings.cover_letter_keywords_list == ["letter", "motivation"]
    assert settings.low_confidence_policy == LowConfidencePolicy.ACCEPT


def test_settings_are_frozen():
    settings = Settings(_env_file=None)
    with pytest.raises(Exception):
        settings.max_retries = 10
