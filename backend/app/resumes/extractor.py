"""
Byte-to-text extraction for resume files
"""
import importlib
import io
import os
import tempfile
from typing import Optional
import pdfplumber
from docx import Document
import structlog

from app.core.exceptions import ProcessingError

logger = structlog.get_logger()

PDF_MEDIA_TYPE = "application/pdf"
DOC_MEDIA_TYPE = "application/msword"
DOCX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"

SUPPORTED_MEDIA_TYPES = (PDF_MEDIA_TYPE, DOC_MEDIA_TYPE, DOCX_MEDIA_TYPE)

# Leading bytes of each container format
_MAGIC_NUMBERS = (
    (b"%PDF", PDF_MEDIA_TYPE),
    (b"PK\x03\x04", DOCX_MEDIA_TYPE),  # OOXML is a zip archive
    (b"\xd0\xcf\x11\xe0", DOC_MEDIA_TYPE),  # OLE2 compound document
)


def normalize_media_type(media_type: Optional[str]) -> Optional[str]:
    """Drop parameters such as '; charset=...' and lowercase"""
    if not media_type:
        return None
    return media_type.split(";", 1)[0].strip().lower() or None


def sniff_media_type(content: bytes) -> Optional[str]:
    """Identify the file format from its magic number, None when unknown"""
    for magic, media_type in _MAGIC_NUMBERS:
        if content.startswith(magic):
            return media_type
    return None


class ResumeContentExtractor:
    """Extract plain text from PDF, DOCX and legacy DOC bytes"""

    def extract_text(self, content: bytes, media_type: str) -> str:
        media_type = normalize_media_type(media_type)
        if media_type == PDF_MEDIA_TYPE:
            text = self._extract_from_pdf(content)
        elif media_type == DOCX_MEDIA_TYPE:
            text = self._extract_from_docx(content)
        elif media_type == DOC_MEDIA_TYPE:
            text = self._extract_from_doc(content)
        else:
            raise ProcessingError(f"Unsupported file type: {media_type}")

        logger.info("resume_text_extracted", media_type=media_type, length=len(text))
        return text

    def _extract_from_pdf(self, content: bytes) -> str:
        """Extract text from PDF"""
        text_parts = []
        try:
            with pdfplumber.open(io.BytesIO(content)) as pdf:
                for page in pdf.pages:
                    text = page.extract_text()
                    if text:
                        text_parts.append(text)
        except Exception as e:
            raise ProcessingError("Could not read PDF file", details={"error": str(e)})
        return "\n".join(text_parts)

    def _extract_from_docx(self, content: bytes) -> str:
        """Extract text from DOCX (paragraphs, then table cells)"""
        try:
            doc = Document(io.BytesIO(content))
        except Exception as e:
            raise ProcessingError("Could not read DOCX file", details={"error": str(e)})

        text_parts = [paragraph.text for paragraph in doc.paragraphs if paragraph.text.strip()]
        for table in doc.tables:
            for row in table.rows:
                cells = [cell.text.strip() for cell in row.cells if cell.text.strip()]
                if cells:
                    text_parts.append(" | ".join(cells))
        return "\n".join(text_parts)

    def _extract_from_doc(self, content: bytes) -> str:
        """Legacy Word files need the optional textract package"""
        try:
            textract = importlib.import_module("textract")
        except ImportError:
            raise ProcessingError("Legacy .doc files are not supported on this server")

        fd, path = tempfile.mkstemp(suffix=".doc")
        try:
            with os.fdopen(fd, "wb") as f:
                f.write(content)
            raw = textract.process(path)
        except Exception as e:
            raise ProcessingError("Could not read DOC file", details={"error": str(e)})
        finally:
            os.unlink(path)
        return raw.decode("utf-8", errors="ignore")


content_extractor = ResumeContentExtractor()
