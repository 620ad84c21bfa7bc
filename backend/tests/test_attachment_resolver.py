from unittest.mock import MagicMock

import pytest

from conftest import text_attachment
from screening.core.exceptions import ErrorType, FileProcessingError
from screening.models.messages import FileKind, InboundAttachment
from screening.services.attachment_resolver import AttachmentResolver, is_explicit_resume_name
from screening.services.text_extractor import TextExtractor

SHORT_DOC = "Backend engineer with Python and SQL experience, five years."           # > 50 chars
LONG_DOC = SHORT_DOC + " Led migrations to AWS and mentored a team of four engineers."
CID = "CAND_20240506_001"


@pytest.fixture
def resolver(settings, file_storage):
    return AttachmentResolver(TextExtractor(), file_storage, settings)


@pytest.mark.parametrize("name,expected", [
    ("Jane_Resume.pdf", True),
    ("Résumé 2024.docx", True),
    ("jane-cv.pdf", True),
    ("CV.txt", True),
    ("cvs_export.txt", False),
    ("archive.pdf", False),
    ("portfolio.pdf", False),
])
def test_explicit_resume_names(name, expected):
    assert is_explicit_resume_name(name) is expected


def test_cover_letter_keywords_ignore_case_and_spaces(resolver):
    assert resolver.is_cover_letter("Cover Letter.pdf")
    assert resolver.is_cover_letter("MOTIVATION.docx")
    assert not resolver.is_cover_letter("resume.pdf")


def test_explicit_resume_wins_over_longer_file(resolver):
    bundle = resolver.resolve([
        text_attachment("portfolio.txt", LONG_DOC),
        text_attachment("my_cv.txt", SHORT_DOC),
    ], CID)
    assert bundle.resume_text == SHORT_DOC
    assert "RESUME_my_cv.txt" in bundle.resume_location


def test_longer_document_is_chosen_without_resume_name(resolver):
    files = [text_attachment("a.txt", SHORT_DOC), text_attachment("b.txt", LONG_DOC)]
    first = resolver.resolve(files, CID)
    second = resolver.resolve(files, CID)
    assert first.resume_text == LONG_DOC
    assert second.resume_text == LONG_DOC


def test_equal_length_tie_goes_to_first_file(resolver):
    bundle = resolver.resolve([
        text_attachment("a.txt", SHORT_DOC),
        text_attachment("b.txt", SHORT_DOC.upper()),
    ], CID)
    assert bundle.resume_text == SHORT_DOC


def test_resume_and_cover_letter_are_separated(resolver):
    bundle = resolver.resolve([
        text_attachment("Cover Letter.txt", LONG_DOC),
        text_attachment("resume.txt", SHORT_DOC),
    ], CID)
    assert bundle.resume_text == SHORT_DOC
    assert bundle.cover_letter_text == LONG_DOC
    assert bundle.cover_letter_location.endswith(f"{CID}_COVER_Cover%20Letter.txt")
    assert {f.kind for f in bundle.accepted_files} == {FileKind.RESUME, FileKind.COVER}


def test_only_cover_letters_promotes_longest_to_resume(resolver):
    bundle = resolver.resolve([
        text_attachment("letter.txt", SHORT_DOC),
        text_attachment("motivation.txt", LONG_DOC),
    ], CID)
    assert bundle.resume_text == LONG_DOC
    assert bundle.cover_letter_text == SHORT_DOC


def test_single_cover_letter_becomes_resume_and_cover_slot_clears(resolver):
    bundle = resolver.resolve([text_attachment("coverletter.txt", LONG_DOC)], CID)
    assert bundle.resume_text == LONG_DOC
    assert bundle.cover_letter_text is None
    assert bundle.cover_letter_location is None


def test_unsupported_and_short_files_are_skipped(resolver):
    bundle = resolver.resolve([
        InboundAttachment(name="photo.png", content=b"\x89PNG", media_type="image/png"),
        text_attachment("resume.txt", "too short"),
    ], CID)
    assert not bundle.has_resume
    assert bundle.accepted_files == []
    assert [i.error_type for i in bundle.issues] == [ErrorType.UNSUPPORTED_FORMAT]


def test_failed_extraction_is_reported(resolver):
    bundle = resolver.resolve([
        InboundAttachment(name="resume.docx", content=b"garbage", media_type="application/msword"),
    ], CID)
    assert not bundle.has_resume
    assert bundle.issues[0].error_type == ErrorType.EXTRACTION_FAILURE


def test_storage_failure_only_drops_that_file(settings):
    file_storage = MagicMock()
    file_storage.create_file.side_effect = [
        FileProcessingError("disk full", filename="a.txt"),
        "file:///tmp/b.txt",
    ]
    resolver = AttachmentResolver(TextExtractor(), file_storage, settings)

    bundle = resolver.resolve([text_attachment("a.txt", LONG_DOC), text_attachment("b.txt", SHORT_DOC)], CID)

    assert bundle.resume_text == SHORT_DOC
    assert bundle.resume_location == "file:///tmp/b.txt"
    assert bundle.issues[0].error_type == ErrorType.ATTACHMENT_PROCESSING_ERROR


def test_each_file_is_extracted_once(settings, file_storage):
    extractor = MagicMock(wraps=TextExtractor())
    resolver = AttachmentResolver(extractor, file_storage, settings)
    resolver.resolve([text_attachment("letter.txt", LONG_DOC), text_attachment("notes.txt", SHORT_DOC)], CID)
    assert extractor.extract.call_count == 2
