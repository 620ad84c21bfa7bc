"""
Scoring Orchestrator
Runs the ordered provider chain for one candidate: each provider gets its
own retry loop, the first success wins, and a low-confidence answer may be
escalated to the next provider for a second opinion.
"""
import logging
import time
from typing import Callable, List, Optional, Tuple

from screening.core.config import LowConfidencePolicy, Settings
from screening.core.exceptions import AllProvidersFailedError, ProviderError
from screening.core.retry import Deadline, RetryPolicy, call_with_retry
from screening.models.scoring import ProviderAttempt, ScoringCriteria, ScoringOutcome, ScoringResult
from screening.services.llm_providers import ScoringProvider, ScoringRequest

logger = logging.getLogger(__name__)


OUTPUT_SCHEMA = """{
  "skills_extracted": ["skill1", "skill2"],
  "experience_years": 5.5,
  "experience_details": [
    {"role": "Senior Developer", "company": "COMPANY_A", "duration_years": 3, "key_achievements": ["achievement1"]}
  ],
  "education": [
    {"degree": "BS Computer Science", "institution": "UNIVERSITY_A", "year": 2018}
  ],
  "certifications": ["AWS Certified"],
  "skills_match_score": 85,
  "experience_match_score": 80,
  "education_score": 75,
  "additional_score": 70,
  "overall_score": 82,
  "reasoning": "Detailed explanation of scoring in 2-3 sentences",
  "red_flags": ["6-month employment gap in 2022"],
  "confidence_level": 0.89
}"""


def build_evaluation_prompt(
    redacted_resume: str,
    job_description: str,
    criteria: ScoringCriteria,
    cover_letter: Optional[str] = None,
) -> str:
    """Evaluation prompt sent to every provider in the chain"""
    cover_section = ""
    if cover_letter:
        cover_section = f"\nCOVER LETTER (ANONYMIZED):\n{cover_letter}\n"

    return f"""You are an expert technical recruiter evaluating a candidate's resume.

JOB DESCRIPTION:
{job_description}

CANDIDATE RESUME (ANONYMIZED):
{redacted_resume}
{cover_section}
SCORING CRITERIA:
- Skills Match: {criteria.skills:g}% weight
- Experience: {criteria.experience:g}% weight
- Education: {criteria.education:g}% weight
- Additional Factors: {criteria.additional:g}% weight

IMPORTANT - BIAS PREVENTION:
- Candidate's personal identifiers have been redacted for fairness
- Evaluate ONLY based on skills, experience, and qualifications
- Do NOT consider: name, gender, ethnicity, age, nationality, photos, university or employer prestige
- Focus on: technical abilities, relevant experience, demonstrated achievements

OUTPUT FORMAT (respond ONLY with valid JSON, no markdown backticks):
{OUTPUT_SCHEMA}

If there are no certifications or no red flags, use ["None"] for that field.
Scores are 0-100; confidence_level is 0.0-1.0."""


class ScoringOrchestrator:
    def __init__(
        self,
        providers: List[ScoringProvider],
        settings: Settings,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.providers = providers
        self.retry_policy = RetryPolicy(
            max_attempts=settings.max_retries,
            base_delay=settings.retry_base_delay,
            jitter=settings.retry_jitter,
        )
        self.low_confidence_threshold = settings.low_confidence_threshold
        self.low_confidence_policy = settings.low_confidence_policy
        self.sleep = sleep

    def _consult(
        self,
        provider: ScoringProvider,
        request: ScoringRequest,
        deadline: Deadline,
        second_opinion: bool = False,
    ) -> Tuple[Optional[ScoringResult], ProviderAttempt]:
        result, outcome = call_with_retry(
            lambda: provider.score_with_provider(request),
            self.retry_policy,
            retry_on=(ProviderError,),
            deadline=deadline,
            sleep=self.sleep,
            operation=f"{provider.name} scoring",
        )
        attempt = ProviderAttempt(
            provider=provider.name,
            success=result is not None,
            tries=outcome.tries,
            error=None if result is not None else outcome.last_error,
            confidence=result.confidence_level if result is not None else None,
            second_opinion=second_opinion,
        )
        if result is not None:
            logger.info(
                f"✅ {provider.name} scored candidate: overall={result.overall_score:.0f}, "
                f"confidence={result.confidence_level:.2f}"
            )
        else:
            logger.warning(
                f"⚠️ {provider.name} failed after {outcome.tries} attempt(s): {attempt.error}",
                extra={"provider": provider.name},
            )
        return result, attempt

    def score(
        self,
        redacted_resume: str,
        job_description: str,
        criteria: ScoringCriteria,
        cover_letter: Optional[str] = None,
        deadline: Optional[Deadline] = None,
    ) -> ScoringOutcome:
        """Score one candidate; raises AllProvidersFailedError when the chain is exhausted"""
        deadline = deadline or Deadline.unlimited()
        request = ScoringRequest(
            prompt=build_evaluation_prompt(redacted_resume, job_description, criteria, cover_letter)
        )
        attempts: List[ProviderAttempt] = []

        primary: Optional[ScoringResult] = None
        primary_index = -1
        for index, provider in enumerate(self.providers):
            result, attempt = self._consult(provider, request, deadline)
            attempts.append(attempt)
            if result is not None:
                primary, primary_index = result, index
                break

        if primary is None:
            logger.error(f"❌ All {len(self.providers)} provider(s) failed")
            raise AllProvidersFailedError(attempts)

        final = primary
        if self._wants_second_opinion(primary, attempts):
            final = self._second_opinion(primary, primary_index, request, deadline, attempts)

        return ScoringOutcome(result=final, attempts=attempts)

    def _wants_second_opinion(self, primary: ScoringResult, attempts: List[ProviderAttempt]) -> bool:
        return (
            self.low_confidence_policy == LowConfidencePolicy.ESCALATE
            and primary.confidence_level < self.low_confidence_threshold
            and not any(not a.success for a in attempts)
        )

    def _second_opinion(
        self,
        primary: ScoringResult,
        primary_index: int,
        request: ScoringRequest,
        deadline: Deadline,
        attempts: List[ProviderAttempt],
    ) -> ScoringResult:
        logger.info(
            f"Low confidence ({primary.confidence_level:.2f} < {self.low_confidence_threshold:.2f}), "
            f"asking for a second opinion"
        )
        for provider in self.providers[primary_index + 1:]:
            try:
                second, attempt = self._consult(provider, request, deadline, second_opinion=True)
            except Exception as e:
                # Primary result stands whatever the second provider does
                logger.exception(f"❌ Second opinion from {provider.name} crashed: {e}")
                second = None
                attempt = ProviderAttempt(
                    provider=provider.name, success=False, tries=1,
                    error=f"{provider.name}: {e}", second_opinion=True,
                )
            attempts.append(attempt)
            if second is None:
                continue

            total_cost = primary.api_cost + second.api_cost
            winner = second if second.confidence_level > primary.confidence_level else primary
            logger.info(f"Second opinion from {provider.name}, keeping {winner.llm_used}")
            return winner.model_copy(update={"api_cost": total_cost})

        logger.info("No second opinion available, keeping primary result")
        return primary
