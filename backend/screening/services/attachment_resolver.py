"""
Attachment Resolver
Decides which attachment of an application is the résumé and which the
cover letter, extracts their text and stores the files.
"""
import logging
import re
import unicodedata
from dataclasses import dataclass
from typing import Dict, List, Optional

from screening.core.config import Settings
from screening.core.exceptions import ErrorType, FileProcessingError
from screening.models.messages import (
    AcceptedFile,
    AttachmentBundle,
    AttachmentIssue,
    FileKind,
    InboundAttachment,
)
from screening.services.file_storage import FileStorage
from screening.services.text_extractor import TextExtractor

logger = logging.getLogger(__name__)

_RESUME_NAME = re.compile(r'resume|(?<![a-z])cv(?![a-z])')


def _normalized_name(name: str) -> str:
    """Lower-case, accents stripped ("Résumé" -> "resume")"""
    decomposed = unicodedata.normalize('NFKD', name or '')
    return ''.join(ch for ch in decomposed if not unicodedata.combining(ch)).lower()


def is_explicit_resume_name(name: str) -> bool:
    return bool(_RESUME_NAME.search(_normalized_name(name)))


@dataclass
class _Candidate:
    index: int
    name: str
    text: str
    location: str
    kind: FileKind


class AttachmentResolver:
    def __init__(self, extractor: TextExtractor, file_storage: FileStorage, settings: Settings):
        self.extractor = extractor
        self.file_storage = file_storage
        self.supported_extensions = settings.supported_extensions_list
        self.cover_keywords = settings.cover_letter_keywords_list
        self.min_text_length = settings.min_text_length

    def is_cover_letter(self, name: str) -> bool:
        compact = re.sub(r'\s+', '', _normalized_name(name))
        return any(keyword in compact for keyword in self.cover_keywords)

    def resolve(self, files: List[InboundAttachment], candidate_id: str) -> AttachmentBundle:
        bundle = AttachmentBundle()
        extracted: Dict[int, Optional[str]] = {}
        accepted: List[_Candidate] = []

        for index, attachment in enumerate(files):
            if attachment.extension not in self.supported_extensions:
                logger.info(f"Skipping unsupported attachment type: {attachment.extension or 'none'}")
                bundle.issues.append(AttachmentIssue(
                    file_name=attachment.name,
                    error_type=ErrorType.UNSUPPORTED_FORMAT,
                    message=f"Unsupported file type '{attachment.extension or 'none'}'",
                ))
                continue

            if index not in extracted:
                extracted[index] = self.extractor.extract(
                    attachment.content, attachment.media_type, attachment.name
                )
            text = extracted[index]

            if text is None:
                bundle.issues.append(AttachmentIssue(
                    file_name=attachment.name,
                    error_type=ErrorType.EXTRACTION_FAILURE,
                    message="Text extraction failed",
                ))
                continue

            if len(text) < self.min_text_length:
                logger.warning(f"⚠️ Insufficient content in attachment #{index} ({len(text)} chars), discarded")
                continue

            kind = FileKind.COVER if self.is_cover_letter(attachment.name) else FileKind.RESUME
            stored_name = f"{candidate_id}_{kind.value}_{attachment.name}"
            try:
                location = self.file_storage.create_file(stored_name, attachment.content, attachment.media_type)
            except (FileProcessingError, OSError) as e:
                logger.error(f"❌ Could not store attachment #{index}: {e}")
                bundle.issues.append(AttachmentIssue(
                    file_name=attachment.name,
                    error_type=ErrorType.ATTACHMENT_PROCESSING_ERROR,
                    message=str(e),
                ))
                continue

            accepted.append(_Candidate(index, attachment.name, text, location, kind))
            bundle.accepted_files.append(AcceptedFile(
                name=attachment.name, location=location, kind=kind, text_length=len(text)
            ))

        covers = [c for c in accepted if c.kind == FileKind.COVER]
        if covers:
            bundle.cover_letter_text = covers[0].text
            bundle.cover_letter_location = covers[0].location

        resume = self._choose_resume([c for c in accepted if c.kind == FileKind.RESUME])

        if resume is None and accepted:
            # Nothing looked like a résumé, so the longest accepted document becomes one
            resume = _longest(accepted)
            logger.info(f"No résumé-named attachment, using longest accepted file #{resume.index}")
            if bundle.cover_letter_location == resume.location:
                remaining = [c for c in covers if c is not resume]
                bundle.cover_letter_text = remaining[0].text if remaining else None
                bundle.cover_letter_location = remaining[0].location if remaining else None

        if resume is not None:
            bundle.resume_text = resume.text
            bundle.resume_location = resume.location

        logger.info(
            f"📎 {candidate_id}: {len(accepted)} accepted, {len(bundle.issues)} issue(s), "
            f"resume={'yes' if bundle.resume_text else 'no'}, "
            f"cover letter={'yes' if bundle.cover_letter_text else 'no'}"
        )
        return bundle

    def _choose_resume(self, candidates: List[_Candidate]) -> Optional[_Candidate]:
        if not candidates:
            return None
        for candidate in candidates:
            if is_explicit_resume_name(candidate.name):
                return candidate
        return _longest(candidates)


def _longest(candidates: List[_Candidate]) -> _Candidate:
    """Longest text wins, earliest arrival breaks ties"""
    return max(candidates, key=lambda c: (len(c.text), -c.index))
