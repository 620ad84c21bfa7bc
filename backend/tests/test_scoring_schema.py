import pytest

from conftest import scoring_payload
from screening.models.scoring import (
    NONE_SENTINEL,
    REQUIRED_RESULT_FIELDS,
    ScoringCriteria,
    ScoringResult,
    decode_scoring_payload,
)


def test_missing_sentinel_lists_default_to_none():
    payload = scoring_payload()
    del payload["certifications"]
    del payload["red_flags"]

    result = ScoringResult.from_payload(payload, llm_used="gpt-4o-mini", api_cost=0.001)

    assert result.certifications == [NONE_SENTINEL]
    assert result.red_flags == [NONE_SENTINEL]
    assert not result.has_red_flags
    dumped = result.model_dump()
    for field in REQUIRED_RESULT_FIELDS:
        assert field in dumped
    assert isinstance(result.experience_years, float)
    assert isinstance(result.education[0].year, str)


def test_empty_payload_is_completed_with_defaults():
    result = ScoringResult.from_payload({})
    assert result.skills_extracted == []
    assert result.experience_details == []
    assert result.overall_score == 0.0
    assert result.reasoning == ""
    assert result.confidence_level == 0.0
    assert result.certifications == [NONE_SENTINEL]


def test_invalid_values_are_coerced_and_clamped():
    result = ScoringResult.from_payload(scoring_payload(
        skills_extracted="Python, SQL",
        experience_years="5+ years",
        overall_score=140,
        skills_match_score=-3,
        education_score="n/a",
        confidence_level=87,
        red_flags=[],
        reasoning=None,
        experience_details=[{"role": "Dev", "duration_years": "2.5"}, "garbage"],
    ))
    assert result.skills_extracted == []
    assert result.experience_years == 5.0
    assert result.overall_score == 100.0
    assert result.skills_match_score == 0.0
    assert result.education_score == 0.0
    assert result.confidence_level == pytest.approx(0.87)
    assert result.red_flags == [NONE_SENTINEL]
    assert result.reasoning == ""
    assert len(result.experience_details) == 1
    assert result.experience_details[0].duration_years == 2.5
    assert result.experience_details[0].company == ""


def test_real_red_flags_are_kept():
    result = ScoringResult.from_payload(scoring_payload(red_flags=["Gap in 2022", ""]))
    assert result.red_flags == ["Gap in 2022"]
    assert result.has_red_flags


@pytest.mark.parametrize("raw", [
    '{"overall_score": 70}',
    '```json\n{"overall_score": 70}\n```',
    'Here is the evaluation:\n{"overall_score": 70}\nThanks!',
])
def test_decode_accepts_fenced_and_wrapped_json(raw):
    assert decode_scoring_payload(raw) == {"overall_score": 70}


@pytest.mark.parametrize("raw", ["", "no json here", '{"overall_score": ', "[1, 2, 3]"])
def test_decode_rejects_unparsable_responses(raw):
    with pytest.raises(ValueError):
        decode_scoring_payload(raw)


def test_criteria_from_json_defaults_per_field():
    assert ScoringCriteria.from_json(None) == ScoringCriteria()
    assert ScoringCriteria.from_json("not json") == ScoringCriteria()

    criteria = ScoringCriteria.from_json('{"skills": 60, "experience": "abc", "extra": 5}')
    assert criteria.skills == 60
    assert criteria.experience == 30
    assert criteria.education == 15
    assert criteria.additional == 10


def test_criteria_keep_explicit_zero_weights():
    criteria = ScoringCriteria.from_json('{"skills": 60, "experience": 40, "education": 0, "additional": 0}')
    assert (criteria.skills, criteria.experience, criteria.education, criteria.additional) == (60, 40, 0, 0)

    assert ScoringCriteria.from_json('{"education": -5}').education == 15
