"""
PII Extraction and Anonymization

Finds the candidate's name, email, phone, postal address and LinkedIn URL,
then removes every literal occurrence from the text that goes to the AI
providers. Detectors are plain functions registered in a table, so a
different locale can swap e.g. the phone or address pattern without
touching the anonymization step.
"""
import re
import logging
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Sequence

from screening.models.candidate import PIIRecord

logger = logging.getLogger(__name__)

EMAIL_PATTERN = re.compile(r'[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}')
PHONE_PATTERN = re.compile(r'(\+?\d{1,3}[-.\s]?)?\(?\d{3}\)?[-.\s]?\d{3}[-.\s]?\d{4}')
ADDRESS_PATTERN = re.compile(r'\d+\s+[A-Za-z\s]+,\s*[A-Za-z\s]+,\s*[A-Z]{2}\s*\d{5}')
LINKEDIN_PATTERN = re.compile(r'(?:https?://)?(?:www\.)?linkedin\.com/in/[A-Za-z0-9_-]+', re.IGNORECASE)
NAME_LINE_PATTERN = re.compile(r'^[A-Z][a-z]+ [A-Z][a-z]+')

# Field -> placeholder written in place of the literal
PLACEHOLDERS: Dict[str, str] = {
    "full_name": "CANDIDATE_NAME",
    "email": "EMAIL_REDACTED",
    "phone": "PHONE_REDACTED",
    "address": "LOCATION_REDACTED",
    "linkedin_url": "LINKEDIN_REDACTED",
}

# Longer literals first so e.g. an email is not half-replaced by a name inside it
_REPLACEMENT_ORDER = ("linkedin_url", "address", "email", "phone", "full_name")


# ============================================================================
# Detectors
# ============================================================================

def first_line_name(text: str) -> Optional[str]:
    """A short 'First Last' first non-blank line, if the document opens with one"""
    for line in (text or "").split("\n"):
        line = line.strip()
        if not line:
            continue
        if len(line) < 50 and NAME_LINE_PATTERN.match(line):
            return line
        break
    return None


def detect_name(text: str, sender_name: Optional[str] = None) -> Optional[str]:
    """Sender display name wins; else the document's opening name line"""
    if sender_name and sender_name.strip():
        return sender_name.strip()
    return first_line_name(text)


def name_variants(full_name: Optional[str]) -> List[str]:
    """Spellings of one name worth redacting: 'Doe, Jane' also appears as 'Jane Doe'"""
    if not full_name:
        return []
    variants = [full_name]
    last, comma, first = full_name.partition(",")
    if comma and first.strip() and last.strip():
        variants.append(f"{first.strip()} {last.strip()}")
    return variants


def detect_email(text: str, sender_email: Optional[str] = None) -> Optional[str]:
    if sender_email and sender_email.strip():
        return sender_email.strip()
    match = EMAIL_PATTERN.search(text or "")
    return match.group(0) if match else None


def detect_phone(text: str) -> Optional[str]:
    match = PHONE_PATTERN.search(text or "")
    return match.group(0).strip() if match else None


def detect_address(text: str) -> Optional[str]:
    match = ADDRESS_PATTERN.search(text or "")
    return match.group(0).strip() if match else None


def detect_linkedin(text: str) -> Optional[str]:
    match = LINKEDIN_PATTERN.search(text or "")
    return match.group(0) if match else None


Detector = Callable[[str], Optional[str]]

DEFAULT_DETECTORS: Dict[str, Detector] = {
    "phone": detect_phone,
    "address": detect_address,
    "linkedin_url": detect_linkedin,
}


def _replace_literal(text: str, literal: str, placeholder: str, field_name: str) -> str:
    try:
        pattern = re.compile(re.escape(literal), re.IGNORECASE)
    except re.error as e:
        logger.warning(f"Pattern build failed for {field_name}, using literal replace: {e}")
        return text.replace(literal, placeholder)
    return pattern.sub(lambda _m: placeholder, text)


@dataclass
class RedactionResult:
    pii: PIIRecord
    resume: str
    cover_letter: Optional[str] = None


class PIIRedactor:
    """Extracts PII once per candidate and applies the same record to every text"""

    def __init__(self, detectors: Optional[Dict[str, Detector]] = None):
        self.detectors = dict(DEFAULT_DETECTORS)
        if detectors:
            self.detectors.update(detectors)

    def extract_pii(self, text: str, sender_name: Optional[str] = None,
                    sender_email: Optional[str] = None) -> PIIRecord:
        values = {
            "full_name": detect_name(text, sender_name),
            "email": detect_email(text, sender_email),
        }
        for field_name, detector in self.detectors.items():
            values[field_name] = detector(text)
        return PIIRecord(**values)

    def anonymize(self, text: Optional[str], pii: PIIRecord, extra_names: Sequence[str] = ()) -> str:
        """
        Replace every occurrence of each detected literal, case-insensitively.

        `extra_names` are further spellings of the candidate's name (e.g. the
        résumé's heading when it differs from the sender display name).
        """
        if not text:
            return text or ""

        values = pii.redactable_values()
        for field_name in _REPLACEMENT_ORDER:
            if field_name == "full_name":
                literals = name_variants(values.get(field_name)) + [n for n in extra_names if n]
            else:
                literals = [values[field_name]] if values.get(field_name) else []
            for literal in sorted(set(literals), key=lambda s: (-len(s), s)):
                text = _replace_literal(text, literal, PLACEHOLDERS[field_name], field_name)
        return text

    def redact(self, resume: str, cover_letter: Optional[str] = None,
               sender_name: Optional[str] = None, sender_email: Optional[str] = None) -> RedactionResult:
        pii = self.extract_pii(resume, sender_name, sender_email)
        heading = first_line_name(resume)
        extra_names = [heading] if heading and heading != pii.full_name else []
        found = [k for k, v in pii.model_dump().items() if v]
        logger.info(f"🔒 Redacting PII fields: {', '.join(found) or 'none'}")
        return RedactionResult(
            pii=pii,
            resume=self.anonymize(resume, pii, extra_names),
            cover_letter=self.anonymize(cover_letter, pii, extra_names) if cover_letter else cover_letter,
        )
