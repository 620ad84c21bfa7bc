"""
Pipeline Coordinator
Drives one application email through the whole pipeline:

    metadata -> job lookup -> duplicate check -> attachments -> PII
    -> redaction -> scoring -> skill normalization -> persistence
    -> notifications

Every message ends in exactly one terminal state (processed, duplicate,
no résumé, scoring failed) and leaves a candidate row behind, so nothing an
applicant sent is silently lost.
"""
import logging
import traceback
from datetime import datetime
from email.utils import parseaddr
from typing import Callable, Optional

from screening.core.config import DEFAULT_JOB_DESCRIPTION, Settings
from screening.core.exceptions import (
    AllProvidersFailedError,
    ConfigurationError,
    ErrorType,
    MessageSourceError,
    StorageWriteError,
)
from screening.core.logging import PerformanceLogger
from screening.core.retry import Deadline
from screening.models.candidate import CandidateIdentity, CandidateRecord, CandidateStatus, JobMatch
from screening.models.messages import (
    InboundMessage,
    MessageMetadata,
    MessageOutcome,
    MessageStatus,
    RunSummary,
)
from screening.models.scoring import ScoringCriteria
from screening.services.attachment_resolver import AttachmentResolver
from screening.services.candidate_store import CandidateStore
from screening.services.duplicate_index import DuplicateIndex, generate_candidate_id, hash_phone
from screening.services.job_matcher import JobMatcher
from screening.services.llm_providers import estimate_tokens
from screening.services.message_source import ImapMessageSource
from screening.services.notification_service import CRITICAL, ERROR, NotificationService
from screening.services.pii_redactor import PIIRedactor
from screening.services.scoring_orchestrator import ScoringOrchestrator
from screening.services.skill_normalizer import SkillNormalizer

logger = logging.getLogger(__name__)


def detect_source(subject: str, body: str) -> str:
    subject_lower = (subject or "").lower()
    if "linkedin" in subject_lower or "via linkedin" in (body or "").lower():
        return "LinkedIn"
    if "indeed" in subject_lower:
        return "Indeed"
    return "Email"


def extract_metadata(message: InboundMessage) -> MessageMetadata:
    name, address = parseaddr(message.sender or "")
    return MessageMetadata(
        sender_name=name.strip() or None,
        sender_email=address.strip().lower(),
        subject=message.subject,
        body=message.body,
        received_at=message.received_at,
        source=detect_source(message.subject, message.body),
    )


class PipelineCoordinator:
    def __init__(
        self,
        settings: Settings,
        job_matcher: JobMatcher,
        duplicate_index: DuplicateIndex,
        resolver: AttachmentResolver,
        redactor: PIIRedactor,
        orchestrator: ScoringOrchestrator,
        skill_normalizer: SkillNormalizer,
        store: CandidateStore,
        notifier: NotificationService,
        message_source: Optional[ImapMessageSource] = None,
        id_factory: Callable[[], str] = generate_candidate_id,
    ):
        self.settings = settings
        self.job_matcher = job_matcher
        self.duplicate_index = duplicate_index
        self.resolver = resolver
        self.redactor = redactor
        self.orchestrator = orchestrator
        self.skill_normalizer = skill_normalizer
        self.store = store
        self.notifier = notifier
        self.message_source = message_source
        self.id_factory = id_factory

    # ===== SINGLE MESSAGE =====

    def process_message(self, message: InboundMessage) -> MessageOutcome:
        with PerformanceLogger(logger, f"process message {message.message_id}", threshold_ms=30000) as perf:
            outcome = self._process(message, perf)
        outcome.processing_ms = round(perf.duration_ms, 2)
        return outcome

    def _process(self, message: InboundMessage, perf: PerformanceLogger) -> MessageOutcome:
        meta = extract_metadata(message)
        job = self.job_matcher.match(meta.subject, meta.body)
        jd_text = job.jd_text if job and job.jd_text else DEFAULT_JOB_DESCRIPTION
        criteria = job.scoring_criteria if job else ScoringCriteria()

        # Messages without a sender address cannot be matched to earlier applications
        identity_key = meta.sender_email or f"unknown:{message.message_id}"
        email_hash = self.duplicate_index.hash_identity(identity_key)

        existing = self.duplicate_index.find(email_hash)
        if existing is not None:
            candidate_id = existing.get("candidate_id")
            self.duplicate_index.annotate_reapplication(candidate_id, meta.received_at)
            return MessageOutcome(
                message_id=message.message_id,
                status=MessageStatus.DUPLICATE,
                candidate_id=candidate_id,
                detail="Re-application of an existing candidate",
            )

        candidate_id = self.id_factory()
        logger.info(
            f"🆕 New candidate {candidate_id} from {meta.source} (job: {job.job_id if job else 'UNMATCHED'})",
            extra={"message_id": message.message_id},
        )

        bundle = self.resolver.resolve(message.attachments, candidate_id)
        for issue in bundle.issues:
            self.store.log_error(
                issue.error_type,
                f"{issue.file_name}: {issue.message}",
                message_id=message.message_id,
                candidate_id=candidate_id,
            )

        if not bundle.has_resume:
            pii = self.redactor.extract_pii("", meta.sender_name, meta.sender_email)
            identity = CandidateIdentity(candidate_id=candidate_id, email_hash=email_hash)
            self.store.store_pii(candidate_id, pii)
            self.store.log_error(
                ErrorType.NO_RESUME_FOUND,
                f"No usable résumé among {len(message.attachments)} attachment(s)",
                message_id=message.message_id,
                candidate_id=candidate_id,
            )
            self.store.save_candidate(CandidateRecord.placeholder(
                identity, job, meta.source, meta.received_at,
                CandidateStatus.NEEDS_MANUAL_REVIEW,
                "No résumé attachment could be read",
                cover_letter_location=bundle.cover_letter_location,
            ))
            return MessageOutcome(
                message_id=message.message_id,
                status=MessageStatus.NO_RESUME,
                candidate_id=candidate_id,
                detail="No résumé found",
            )

        redaction = self.redactor.redact(
            bundle.resume_text, bundle.cover_letter_text, meta.sender_name, meta.sender_email
        )
        identity = CandidateIdentity(
            candidate_id=candidate_id,
            email_hash=email_hash,
            phone_hash=hash_phone(redaction.pii.phone),
        )
        self.store.store_pii(candidate_id, redaction.pii)

        try:
            scoring = self.orchestrator.score(
                redaction.resume,
                jd_text,
                criteria,
                cover_letter=redaction.cover_letter,
                deadline=Deadline(self.settings.message_deadline_seconds),
            )
        except AllProvidersFailedError as e:
            self.store.log_error(
                ErrorType.ALL_PROVIDERS_FAILED, e.message,
                message_id=message.message_id, candidate_id=candidate_id,
            )
            self.notifier.send_alert(CRITICAL, f"All LLMs failed for candidate {candidate_id}")
            self.store.save_candidate(CandidateRecord.placeholder(
                identity, job, meta.source, meta.received_at,
                CandidateStatus.SCORING_FAILED,
                e.message,
                resume_location=bundle.resume_location,
                cover_letter_location=bundle.cover_letter_location,
            ))
            return MessageOutcome(
                message_id=message.message_id,
                status=MessageStatus.SCORING_FAILED,
                candidate_id=candidate_id,
                detail=e.message,
            )

        result = scoring.result.model_copy(update={
            "skills_extracted": self.skill_normalizer.normalize(scoring.result.skills_extracted)
        })

        record = CandidateRecord.from_scoring(
            identity, result, job, meta.source, meta.received_at,
            bundle.resume_location, bundle.cover_letter_location,
        )
        self.store.save_candidate(record)

        token_estimate = estimate_tokens(redaction.resume) + estimate_tokens(jd_text)
        if redaction.cover_letter:
            token_estimate += estimate_tokens(redaction.cover_letter)
        self.store.log_processing(
            message.message_id, candidate_id, result.llm_used,
            perf.elapsed_ms(), token_estimate, result.api_cost,
        )

        if result.overall_score >= self.settings.high_score_threshold:
            self.notifier.send_high_score(candidate_id, result, job)

        logger.info(
            f"✅ {candidate_id} scored {result.overall_score:.0f} by {result.llm_used}",
            extra={"candidate_id": candidate_id},
        )
        return MessageOutcome(
            message_id=message.message_id,
            status=MessageStatus.PROCESSED,
            candidate_id=candidate_id,
            overall_score=result.overall_score,
            llm_used=result.llm_used,
        )

    # ===== BATCH =====

    def run_batch(self) -> RunSummary:
        """Fetch and process every pending message; one bad message never stops the rest"""
        summary = RunSummary()
        if self.message_source is None:
            raise ConfigurationError("No message source configured", setting="email_address")

        try:
            messages = self.message_source.fetch_messages()
        except (MessageSourceError, ConfigurationError) as e:
            logger.error(f"❌ Message source unavailable: {e.message}")
            self.notifier.send_alert(CRITICAL, f"Resume processing aborted: {e.message}")
            summary.aborted = True
            summary.error_messages["source"] = e.message
            return summary

        summary.fetched = len(messages)
        logger.info(f"📨 Processing {len(messages)} message(s)")

        for message in messages:
            try:
                outcome = self.process_message(message)
            except StorageWriteError as e:
                self.notifier.send_alert(CRITICAL, f"Storage write failed, batch stopped: {e.message}")
                raise
            except Exception as e:
                logger.exception(f"❌ Unexpected error processing message {message.message_id}")
                summary.errors += 1
                summary.error_messages[message.message_id] = str(e)
                self.store.log_error(
                    ErrorType.EMAIL_PROCESSING_ERROR, str(e),
                    message_id=message.message_id,
                    stack_trace=traceback.format_exc(),
                )
                continue

            summary.record(outcome)
            try:
                self.message_source.mark_processed(message)
            except MessageSourceError as e:
                logger.error(f"Could not mark message {message.message_id} processed: {e.message}")
                summary.errors += 1
                summary.error_messages[message.message_id] = e.message

        if summary.errors:
            self.notifier.send_alert(
                ERROR,
                f"Processed {summary.processed} resume(s) with {summary.errors} error(s)",
            )

        logger.info(
            f"🏁 Batch done: {summary.processed} processed, {summary.duplicates} duplicate(s), "
            f"{summary.no_resume} without résumé, {summary.scoring_failed} scoring failure(s), "
            f"{summary.errors} error(s)"
        )
        return summary
