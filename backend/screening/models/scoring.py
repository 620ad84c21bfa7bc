"""
Scoring data contracts.

ScoringResult is the fixed schema every provider answer is decoded into.
Each field carries a safe default and a `before` validator, so a partially
malformed provider answer still yields a complete, type-correct record:
missing or invalid numbers become 0, strings become "", lists become [],
and the certifications / red_flags lists fall back to the "None" sentinel.
"""
import json
import math
import re
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator

from screening.core.config import DEFAULT_SCORING_WEIGHTS

NONE_SENTINEL = "None"

REQUIRED_RESULT_FIELDS = (
    "skills_extracted",
    "experience_years",
    "experience_details",
    "education",
    "certifications",
    "skills_match_score",
    "experience_match_score",
    "education_score",
    "additional_score",
    "overall_score",
    "reasoning",
    "red_flags",
    "confidence_level",
)

_NUMBER_RE = re.compile(r'-?\d+(?:\.\d+)?')
_FENCE_RE = re.compile(r'```(?:json|JSON)?')


# ============================================================================
# Coercion helpers
# ============================================================================

def _to_number(value: Any, default: float = 0.0) -> float:
    """Best-effort numeric coercion ("5+ years" -> 5.0, None -> default)"""
    if isinstance(value, bool):
        return default
    if isinstance(value, (int, float)):
        return float(value) if math.isfinite(value) else default
    if isinstance(value, str):
        match = _NUMBER_RE.search(value.replace(',', ''))
        if match:
            return float(match.group())
    return default


def _to_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value.strip()
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    return ""


def _to_text_list(value: Any) -> List[str]:
    """Lists of scalars become lists of non-blank strings, anything else []"""
    if not isinstance(value, list):
        return []
    items = []
    for item in value:
        text = _to_text(item)
        if text:
            items.append(text)
    return items


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


# ============================================================================
# Scoring weights
# ============================================================================

class ScoringCriteria(BaseModel):
    """Percentage weights per dimension; they need not sum to 100"""
    skills: float = DEFAULT_SCORING_WEIGHTS["skills"]
    experience: float = DEFAULT_SCORING_WEIGHTS["experience"]
    education: float = DEFAULT_SCORING_WEIGHTS["education"]
    additional: float = DEFAULT_SCORING_WEIGHTS["additional"]

    @field_validator("skills", "experience", "education", "additional", mode="before")
    @classmethod
    def _weight_or_default(cls, v, info):
        number = _to_number(v, default=-1)
        if number < 0:
            return DEFAULT_SCORING_WEIGHTS[info.field_name]
        return number

    @classmethod
    def from_json(cls, raw: Optional[str]) -> "ScoringCriteria":
        """Parse the JSON-encoded weights stored with a job; defaults on any failure"""
        if not raw or not str(raw).strip():
            return cls()
        try:
            data = json.loads(raw)
        except (TypeError, ValueError):
            return cls()
        if not isinstance(data, dict):
            return cls()
        known = {k: v for k, v in data.items() if k in DEFAULT_SCORING_WEIGHTS}
        return cls(**known)


# ============================================================================
# Result schema
# ============================================================================

class ExperienceDetail(BaseModel):
    role: str = ""
    company: str = ""
    duration_years: float = 0.0
    key_achievements: List[str] = Field(default_factory=list)

    @field_validator("role", "company", mode="before")
    @classmethod
    def _text(cls, v):
        return _to_text(v)

    @field_validator("duration_years", mode="before")
    @classmethod
    def _years(cls, v):
        return max(0.0, _to_number(v))

    @field_validator("key_achievements", mode="before")
    @classmethod
    def _achievements(cls, v):
        return _to_text_list(v)


class EducationEntry(BaseModel):
    degree: str = ""
    institution: str = ""
    year: str = ""

    @field_validator("degree", "institution", "year", mode="before")
    @classmethod
    def _text(cls, v):
        if isinstance(v, float) and v.is_integer():
            v = int(v)
        return _to_text(v)


class ScoringResult(BaseModel):
    """Schema-complete evaluation of one candidate"""
    skills_extracted: List[str] = Field(default_factory=list)
    experience_years: float = 0.0
    experience_details: List[ExperienceDetail] = Field(default_factory=list)
    education: List[EducationEntry] = Field(default_factory=list)
    certifications: List[str] = Field(default_factory=lambda: [NONE_SENTINEL])
    skills_match_score: float = 0.0
    experience_match_score: float = 0.0
    education_score: float = 0.0
    additional_score: float = 0.0
    overall_score: float = 0.0
    reasoning: str = ""
    red_flags: List[str] = Field(default_factory=lambda: [NONE_SENTINEL])
    confidence_level: float = 0.0
    llm_used: str = ""
    api_cost: float = 0.0

    @field_validator("skills_extracted", "certifications", "red_flags", mode="before")
    @classmethod
    def _string_lists(cls, v):
        return _to_text_list(v)

    @field_validator("certifications", "red_flags", mode="after")
    @classmethod
    def _sentinel_when_empty(cls, v: List[str]) -> List[str]:
        return v or [NONE_SENTINEL]

    @field_validator("experience_details", "education", mode="before")
    @classmethod
    def _object_lists(cls, v):
        if not isinstance(v, list):
            return []
        return [item for item in v if isinstance(item, dict)]

    @field_validator(
        "skills_match_score",
        "experience_match_score",
        "education_score",
        "additional_score",
        "overall_score",
        mode="before",
    )
    @classmethod
    def _score(cls, v):
        return _clamp(_to_number(v), 0.0, 100.0)

    @field_validator("experience_years", "api_cost", mode="before")
    @classmethod
    def _non_negative(cls, v):
        return max(0.0, _to_number(v))

    @field_validator("confidence_level", mode="before")
    @classmethod
    def _confidence(cls, v):
        number = _to_number(v)
        # Some models answer on a 0-100 scale
        if 1.0 < number <= 100.0:
            number = number / 100.0
        return _clamp(number, 0.0, 1.0)

    @field_validator("reasoning", "llm_used", mode="before")
    @classmethod
    def _plain_text(cls, v):
        return _to_text(v)

    @classmethod
    def from_payload(cls, payload: Dict[str, Any], llm_used: str = "", api_cost: float = 0.0) -> "ScoringResult":
        """Validate a decoded provider payload and stamp provenance"""
        data = {k: payload[k] for k in REQUIRED_RESULT_FIELDS if k in payload}
        data["llm_used"] = llm_used
        data["api_cost"] = api_cost
        return cls.model_validate(data)

    @property
    def has_red_flags(self) -> bool:
        return self.red_flags != [NONE_SENTINEL]


def decode_scoring_payload(raw_text: str) -> Dict[str, Any]:
    """
    Turn raw provider text into a JSON object.

    Strips code fences, then falls back to the outermost {...} span.
    Raises ValueError when no JSON object can be parsed; that is the only
    condition the orchestrator treats as a retryable response failure.
    """
    if raw_text is None:
        raise ValueError("empty response")

    cleaned = _FENCE_RE.sub('', raw_text).strip()
    if not cleaned:
        raise ValueError("empty response")

    try:
        data = json.loads(cleaned)
    except json.JSONDecodeError:
        start, end = cleaned.find('{'), cleaned.rfind('}')
        if start == -1 or end <= start:
            raise ValueError(f"no JSON object in response: {cleaned[:80]!r}")
        try:
            data = json.loads(cleaned[start:end + 1])
        except json.JSONDecodeError as e:
            raise ValueError(f"invalid JSON in response: {e}") from e

    if not isinstance(data, dict):
        raise ValueError(f"expected a JSON object, got {type(data).__name__}")
    return data


# ============================================================================
# Orchestration records
# ============================================================================

class ProviderAttempt(BaseModel):
    """One provider consulted by the orchestrator (all of its retries folded in)"""
    provider: str
    success: bool
    tries: int = 0
    error: Optional[str] = None
    confidence: Optional[float] = None
    second_opinion: bool = False


class ScoringOutcome(BaseModel):
    result: ScoringResult
    attempts: List[ProviderAttempt] = Field(default_factory=list)

    @property
    def failed_attempts(self) -> List[ProviderAttempt]:
        return [a for a in self.attempts if not a.success]
