import io

import pytest
from docx import Document

from app.core.exceptions import ProcessingError
from app.resumes.extractor import (
    DOC_MEDIA_TYPE,
    DOCX_MEDIA_TYPE,
    PDF_MEDIA_TYPE,
    ResumeContentExtractor,
    normalize_media_type,
    sniff_media_type,
)
from app.resumes.storage import FileStorage, sanitize_file_name


def build_docx(paragraphs, table_rows=None) -> bytes:
    document = Document()
    for text in paragraphs:
        document.add_paragraph(text)
    if table_rows:
        table = document.add_table(rows=len(table_rows), cols=len(table_rows[0]))
        for r, row in enumerate(table_rows):
            for c, value in enumerate(row):
                table.cell(r, c).text = value
    buffer = io.BytesIO()
    document.save(buffer)
    return buffer.getvalue()


class TestSniffing:
    @pytest.mark.parametrize(
        "content, expected",
        [
            (b"%PDF-1.7\n...", PDF_MEDIA_TYPE),
            (b"PK\x03\x04rest-of-zip", DOCX_MEDIA_TYPE),
            (b"\xd0\xcf\x11\xe0\xa1\xb1\x1a\xe1", DOC_MEDIA_TYPE),
            (b"\x89PNG\r\n", None),
            (b"", None),
        ],
    )
    def test_magic_numbers(self, content, expected):
        assert sniff_media_type(content) == expected

    def test_media_type_parameters_are_dropped(self):
        assert normalize_media_type("Application/PDF; charset=binary") == PDF_MEDIA_TYPE
        assert normalize_media_type(None) is None


class TestExtraction:
    def test_docx_paragraphs_and_tables(self):
        content = build_docx(
            ["Jane Doe", "Senior Python Developer"],
            table_rows=[["Skills", "Python, Celery"]],
        )
        text = ResumeContentExtractor().extract_text(content, DOCX_MEDIA_TYPE)
        assert "Jane Doe" in text
        assert "Senior Python Developer" in text
        assert "Skills | Python, Celery" in text

    def test_unsupported_type_is_permanent_failure(self):
        with pytest.raises(ProcessingError) as exc_info:
            ResumeContentExtractor().extract_text(b"hello", "text/plain")
        assert exc_info.value.retryable is False

    def test_corrupt_docx_is_permanent_failure(self):
        with pytest.raises(ProcessingError):
            ResumeContentExtractor().extract_text(b"PK\x03\x04not really a zip", DOCX_MEDIA_TYPE)


class TestStorage:
    def test_object_name_layout(self):
        from datetime import datetime

        storage = FileStorage("/tmp/unused")
        name = storage.build_object_name("abcdef0123456789", "My CV.pdf", now=datetime(2024, 5, 17))
        assert name == "resumes/2024/05/17/abcdef01_My_CV.pdf"

    def test_save_and_read_round_trip(self, storage):
        storage.save("resumes/x/cv.pdf", b"%PDF data")
        assert storage.read("resumes/x/cv.pdf") == b"%PDF data"

    def test_missing_object_is_processing_error(self, storage):
        with pytest.raises(ProcessingError):
            storage.read("resumes/nope.pdf")

    def test_path_traversal_is_rejected(self, storage):
        with pytest.raises(ProcessingError):
            storage.save("../../etc/passwd", b"x")

    def test_sanitize_file_name(self):
        assert sanitize_file_name("../../secret/cv (final).pdf") == "cv_final_.pdf"
        assert sanitize_file_name(None) == "resume"
