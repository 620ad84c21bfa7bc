"""
Document Text Extraction
Turns résumé / cover letter attachments (PDF, DOC/DOCX, RTF, TXT, ODT) into
clean plain text.

Every format has a primary strategy and, where one exists, a fallback.
Each strategy logs and swallows its own failure and returns None, so the
caller only ever sees text or None.
"""
import PyPDF2
import docx
import re
import logging
import zipfile
import xml.etree.ElementTree as ET
from io import BytesIO
from typing import Callable, Dict, Optional

logger = logging.getLogger(__name__)

VisionExtractor = Callable[[bytes], Optional[str]]

WORD_NS = "http://schemas.openxmlformats.org/wordprocessingml/2006/main"
ODF_TEXT_NS = "urn:oasis:names:tc:opendocument:xmlns:text:1.0"

PDF = "pdf"
WORD = "word"
RTF = "rtf"
TEXT = "text"
ODT = "odt"

# Checked in this order; the first family whose media types or extensions match wins
FORMAT_FAMILIES = (
    (PDF, ("application/pdf",), (".pdf",)),
    (WORD, (
        "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
        "application/msword",
    ), (".docx", ".doc")),
    (RTF, ("application/rtf", "text/rtf"), (".rtf",)),
    (TEXT, ("text/plain",), (".txt",)),
    (ODT, ("application/vnd.oasis.opendocument.text",), (".odt",)),
)

_RTF_CONTROL_WORD = re.compile(r"\\[a-zA-Z]+-?\d* ?")
_RTF_HEX_ESCAPE = re.compile(r"\\'[0-9a-fA-F]{2}")
_RTF_SYMBOL = re.compile(r"\\[^a-zA-Z]")
_CONTROL_CHARS = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f]")


def clean_text(text: Optional[str]) -> str:
    """Normalize line endings, drop control characters, collapse runs of blanks"""
    if not text:
        return ""

    text = text.replace("\r\n", "\n").replace("\r", "\n")
    text = _CONTROL_CHARS.sub("", text)

    lines = []
    for line in text.split("\n"):
        line = re.sub(r"[ \t]+", " ", line).strip()
        lines.append(line)

    text = "\n".join(lines)
    # At most one blank line between paragraphs
    text = re.sub(r"\n{3,}", "\n\n", text)
    return text.strip()


def detect_format(media_type: Optional[str], file_name: str) -> Optional[str]:
    media_type = (media_type or "").split(";")[0].strip().lower()
    name = (file_name or "").lower()
    for family, media_types, extensions in FORMAT_FAMILIES:
        if media_type in media_types or name.endswith(extensions):
            return family
    return None


class TextExtractor:
    """
    Format-aware text extraction.

    `vision_extractor` is an optional callable (raw PDF bytes -> text) used
    when a PDF yields almost no text, which usually means a scanned image.
    """

    def __init__(self, vision_extractor: Optional[VisionExtractor] = None, min_text_length: int = 50):
        self.vision_extractor = vision_extractor
        self.min_text_length = min_text_length
        self._strategies: Dict[str, Callable[[bytes], Optional[str]]] = {
            PDF: self._extract_pdf,
            WORD: self._extract_word,
            RTF: self._extract_rtf,
            TEXT: self._extract_plain,
            ODT: self._extract_odt,
        }

    def extract(self, blob: bytes, media_type: Optional[str], file_name: str) -> Optional[str]:
        """Return cleaned text, or None when the format is unknown or extraction failed"""
        family = detect_format(media_type, file_name)
        if family is None:
            logger.warning(f"UNSUPPORTED_FILE_FORMAT: {file_name} ({media_type})")
            return None

        try:
            text = self._strategies[family](blob)
        except Exception as e:
            logger.error(f"❌ Extraction crashed for {file_name}: {e}")
            return None

        text = clean_text(text)
        if not text:
            logger.warning(f"⚠️ No text extracted from {file_name}")
            return None

        logger.info(f"📄 Extracted {len(text)} chars from {file_name} ({family})")
        return text

    # ===== PDF =====

    def _extract_pdf(self, content: bytes) -> Optional[str]:
        text = (
            self._pdf_with_pdfplumber(content, layout=True)
            or self._pdf_with_pdfplumber(content, layout=False)
            or self._pdf_with_pypdf2(content)
        )

        if len(clean_text(text)) >= self.min_text_length:
            return text

        if self.vision_extractor is not None:
            logger.info("PDF has little extractable text, trying vision extraction")
            try:
                vision_text = self.vision_extractor(content)
            except Exception as e:
                logger.warning(f"Vision extraction failed: {e}")
                vision_text = None
            if vision_text and vision_text.strip():
                return vision_text

        return text

    def _pdf_with_pdfplumber(self, content: bytes, layout: bool) -> Optional[str]:
        try:
            import pdfplumber
            parts = []
            with pdfplumber.open(BytesIO(content)) as pdf:
                for page in pdf.pages:
                    if layout:
                        page_text = page.extract_text(layout=True, x_density=7.25, y_density=13)
                    else:
                        page_text = page.extract_text()
                    if page_text:
                        parts.append(page_text)

                    if layout:
                        for table in page.extract_tables() or []:
                            for row in table:
                                row_text = ' | '.join(cell or '' for cell in row or [])
                                if row_text.strip('| '):
                                    parts.append(row_text)
            text = "\n\n".join(parts)
            return text if text.strip() else None
        except Exception as e:
            mode = "layout" if layout else "basic"
            logger.debug(f"pdfplumber {mode} extraction failed: {e}")
            return None

    def _pdf_with_pypdf2(self, content: bytes) -> Optional[str]:
        try:
            reader = PyPDF2.PdfReader(BytesIO(content))
            parts = [page.extract_text() or "" for page in reader.pages]
            text = "\n\n".join(p for p in parts if p)
            return text if text.strip() else None
        except Exception as e:
            logger.debug(f"PyPDF2 extraction failed: {e}")
            return None

    # ===== WORD =====

    def _extract_word(self, content: bytes) -> Optional[str]:
        return self._word_with_python_docx(content) or self._word_from_archive(content)

    def _word_with_python_docx(self, content: bytes) -> Optional[str]:
        try:
            document = docx.Document(BytesIO(content))
        except Exception as e:
            logger.debug(f"python-docx could not open document: {e}")
            return None

        parts = [p.text for p in document.paragraphs]
        for table in document.tables:
            for row in table.rows:
                cells = [cell.text.strip() for cell in row.cells if cell.text.strip()]
                if cells:
                    parts.append(" | ".join(cells))
        text = "\n".join(parts)
        return text if text.strip() else None

    def _word_from_archive(self, content: bytes) -> Optional[str]:
        """Read word/document.xml directly and join every w:t run"""
        try:
            with zipfile.ZipFile(BytesIO(content)) as archive:
                xml_bytes = archive.read("word/document.xml")
            root = ET.fromstring(xml_bytes)
        except (zipfile.BadZipFile, KeyError, ET.ParseError) as e:
            logger.debug(f"DOCX archive fallback failed: {e}")
            return None

        paragraphs = []
        for paragraph in root.iter(f"{{{WORD_NS}}}p"):
            runs = [node.text or "" for node in paragraph.iter(f"{{{WORD_NS}}}t")]
            paragraphs.append("".join(runs))
        text = "\n".join(paragraphs)
        return text if text.strip() else None

    # ===== RTF / TEXT / ODT =====

    def _extract_rtf(self, content: bytes) -> Optional[str]:
        raw = _decode(content)
        text = _RTF_HEX_ESCAPE.sub("", raw)
        text = _RTF_CONTROL_WORD.sub(" ", text)
        text = _RTF_SYMBOL.sub("", text)
        text = text.replace("{", "").replace("}", "").replace("\\", "")
        text = re.sub(r"[ \t]+", " ", text)
        return text if text.strip() else None

    def _extract_plain(self, content: bytes) -> Optional[str]:
        return _decode(content)

    def _extract_odt(self, content: bytes) -> Optional[str]:
        try:
            with zipfile.ZipFile(BytesIO(content)) as archive:
                root = ET.fromstring(archive.read("content.xml"))
        except (zipfile.BadZipFile, KeyError, ET.ParseError) as e:
            logger.debug(f"ODT extraction failed: {e}")
            return None

        blocks = []
        for element in root.iter():
            if element.tag in (f"{{{ODF_TEXT_NS}}}p", f"{{{ODF_TEXT_NS}}}h"):
                blocks.append("".join(element.itertext()))
        text = "\n".join(blocks)
        return text if text.strip() else None


def _decode(content: bytes) -> str:
    try:
        return content.decode("utf-8")
    except UnicodeDecodeError:
        return content.decode("latin-1")
