import re

import pytest

from conftest import COVER_TEXT, RESUME_TEXT
from screening.models.candidate import PIIRecord
from screening.services import pii_redactor
from screening.services.pii_redactor import (
    PIIRedactor,
    detect_address,
    detect_linkedin,
    detect_name,
    detect_phone,
    name_variants,
)


@pytest.fixture
def redactor():
    return PIIRedactor()


def test_detects_all_fields_from_resume(redactor):
    pii = redactor.extract_pii(RESUME_TEXT)
    assert pii.full_name == "Jane Doe"
    assert pii.email == "jane.doe@example.com"
    assert pii.phone == "(555) 123-4567"
    assert pii.address == "12 Main Street, Springfield, IL 62704"
    assert pii.linkedin_url == "linkedin.com/in/janedoe"


def test_sender_identity_wins_over_text(redactor):
    pii = redactor.extract_pii(RESUME_TEXT, sender_name="J. Doe", sender_email="jd@mail.test")
    assert pii.full_name == "J. Doe"
    assert pii.email == "jd@mail.test"


def test_name_needs_short_capitalized_first_line():
    assert detect_name("John Smith\nEngineer") == "John Smith"
    assert detect_name("\n\n  Mary Jones  \nEngineer") == "Mary Jones"
    assert detect_name("CURRICULUM VITAE\nJohn Smith") is None
    assert detect_name("john smith") is None
    assert detect_name("Experienced engineer " * 5) is None


@pytest.mark.parametrize("text,expected", [
    ("Call +1 555.123.4567 today", "+1 555.123.4567"),
    ("Phone: 555-123-4567", "555-123-4567"),
    ("Mobile 5551234567", "5551234567"),
])
def test_phone_formats(text, expected):
    assert detect_phone(text) == expected


def test_linkedin_with_scheme():
    assert detect_linkedin("See https://www.linkedin.com/in/jane-doe_1 for more") == \
        "https://www.linkedin.com/in/jane-doe_1"


def test_text_without_patterns_yields_none_and_stays_unchanged(redactor):
    text = "Experienced engineer focused on reliability and testing."
    pii = redactor.extract_pii(text)
    assert pii.phone is None
    assert pii.address is None
    assert pii.linkedin_url is None
    assert redactor.anonymize(text, pii) == text


def test_no_detected_literal_survives_anonymization(redactor):
    result = redactor.redact(RESUME_TEXT, COVER_TEXT, sender_name="Jane Doe",
                             sender_email="jane.doe@example.com")
    for value in result.pii.redactable_values().values():
        assert value.lower() not in result.resume.lower()
        assert value.lower() not in result.cover_letter.lower()

    assert "CANDIDATE_NAME" in result.resume
    assert "EMAIL_REDACTED" in result.resume
    assert "PHONE_REDACTED" in result.resume
    assert "LOCATION_REDACTED" in result.resume
    assert "LINKEDIN_REDACTED" in result.resume
    assert "CANDIDATE_NAME" in result.cover_letter


def test_replacement_is_case_insensitive(redactor):
    pii = PIIRecord(full_name="Jane Doe")
    assert redactor.anonymize("JANE DOE and jane doe", pii) == "CANDIDATE_NAME and CANDIDATE_NAME"


def test_regex_metacharacters_are_escaped(redactor):
    pii = PIIRecord(full_name="J. (Jay) Smith+", phone="+1 (555) 000-1111")
    text = "Name: J. (Jay) Smith+ / tel +1 (555) 000-1111 / JX (Jay) Smith"
    redacted = redactor.anonymize(text, pii)
    assert redacted == "Name: CANDIDATE_NAME / tel PHONE_REDACTED / JX (Jay) Smith"


def test_custom_detector_replaces_default(redactor):
    uk = PIIRedactor(detectors={"phone": lambda text: "07700 900123" if "07700" in text else None})
    pii = uk.extract_pii("Call 07700 900123")
    assert pii.phone == "07700 900123"
    assert detect_address("Call 07700 900123") is None


def test_surname_first_sender_name_still_redacts_resume_heading(redactor):
    result = redactor.redact(RESUME_TEXT, COVER_TEXT, sender_name="Doe, Jane",
                             sender_email="jane.doe@example.com")
    assert result.pii.full_name == "Doe, Jane"
    assert "jane doe" not in result.resume.lower()
    assert "jane doe" not in result.cover_letter.lower()
    assert result.resume.startswith("CANDIDATE_NAME\n")


def test_heading_differing_from_sender_is_redacted_too(redactor):
    result = redactor.redact("Janet Doe\nPython developer since 2015", sender_name="J. Doe")
    assert "Janet Doe" not in result.resume
    assert result.resume.startswith("CANDIDATE_NAME")


def test_name_variants():
    assert name_variants("Doe, Jane") == ["Doe, Jane", "Jane Doe"]
    assert name_variants("Jane Doe") == ["Jane Doe"]
    assert name_variants(None) == []


def test_literal_replacement_when_pattern_cannot_compile(redactor, monkeypatch):
    def broken_compile(*args, **kwargs):
        raise re.error("cannot compile")
    monkeypatch.setattr(pii_redactor.re, "compile", broken_compile)

    pii = PIIRecord(full_name="Jane Doe", email="jane@example.com")
    redacted = redactor.anonymize("Jane Doe <jane@example.com>", pii)

    assert redacted == "CANDIDATE_NAME <EMAIL_REDACTED>"
