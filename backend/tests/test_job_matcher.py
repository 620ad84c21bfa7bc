import pytest

from screening.services.job_matcher import JobMatcher


@pytest.fixture
def matcher(storage):
    matcher = JobMatcher(storage)
    matcher.add_job("JOB_001", "Data Analyst", "Analyze data", status="Closed")
    matcher.add_job("JOB_002", "Backend Engineer", "Build APIs in Python",
                    scoring_criteria='{"skills": 60, "experience": 25}',
                    min_experience_years=3, required_skills="Python, SQL")
    matcher.add_job("JOB_003", "Engineer", "Generic engineering role", scoring_criteria="{broken")
    return matcher


def test_matches_title_in_subject_case_insensitively(matcher):
    job = matcher.match("Application: BACKEND ENGINEER", "")
    assert job.job_id == "JOB_002"
    assert job.scoring_criteria.skills == 60
    assert job.scoring_criteria.education == 15
    assert job.min_experience_years == 3
    assert job.required_skills == "Python, SQL"


def test_matches_title_in_body_and_respects_row_order(matcher):
    job = matcher.match("Hello", "I would love to join as an engineer on your team")
    assert job.job_id == "JOB_003"
    assert job.scoring_criteria.skills == 45


def test_closed_jobs_are_skipped(matcher):
    assert matcher.match("Data Analyst application", "") is None


def test_no_match_returns_none(storage):
    assert JobMatcher(storage).match("Hi", "Generic inquiry") is None
