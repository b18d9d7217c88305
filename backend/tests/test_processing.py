"""Tests for PDF processing and file storage helpers."""
import pytest

from lms.processing import ContentProcessingError, clean_text, extract_pdf_text, is_pdf, try_extract_pdf_text
from lms.uploads import FileStorage

from conftest import make_pdf


class TestPdf:
    def test_is_pdf(self):
        assert is_pdf(make_pdf())
        assert not is_pdf(b"PK\x03\x04")
        assert not is_pdf(b"")

    def test_extract_pdf_text(self):
        assert "Instalasi jaringan" in extract_pdf_text(make_pdf())

    def test_extract_invalid_pdf(self):
        with pytest.raises(ContentProcessingError):
            extract_pdf_text(b"%PDF-1.4 but not really")

    def test_try_extract_returns_none_on_failure(self):
        assert try_extract_pdf_text(b"%PDF-1.4 broken") is None
        assert try_extract_pdf_text(None) is None
        assert try_extract_pdf_text(b"") is None

    def test_clean_text(self):
        assert clean_text("  Bab 1\n\n\tPengantar   Page 3  jaringan ") == "Bab 1 Pengantar jaringan"


class TestFileStorage:
    @pytest.fixture
    def storage(self, tmp_path):
        return FileStorage(str(tmp_path), "/files")

    @pytest.mark.parametrize("filename,expected", [
        ("My Document (draft).pdf", "My_Document__draft_.pdf"),
        ("../../etc/passwd", "etc_passwd"),
        ("", "unnamed_file"),
        ("***", "unnamed_file"),
    ])
    def test_get_safe_filename(self, filename, expected):
        assert FileStorage.get_safe_filename(filename) == expected

    def test_save_read_remove(self, storage):
        stored = storage.save("modules", "Modul 1.pdf", b"%PDF-data", prefix="module-")
        assert stored.bucket == "modules"
        assert stored.name.startswith("module-")
        assert stored.name.endswith("-Modul_1.pdf")
        assert stored.url == f"/files/modules/{stored.name}"
        assert storage.read_url(stored.url) == b"%PDF-data"
        assert storage.remove_url(stored.url) is True
        assert storage.read_url(stored.url) is None
        assert storage.remove_url(stored.url) is False

    def test_save_never_overwrites(self, storage, monkeypatch):
        monkeypatch.setattr("lms.uploads.time.time", lambda: 1700000000.0)
        first = storage.save("modules", "a.pdf", b"one")
        second = storage.save("modules", "a.pdf", b"two")
        assert first.name != second.name
        assert storage.read(first.bucket, first.name) == b"one"
        assert storage.read(second.bucket, second.name) == b"two"

    @pytest.mark.parametrize("url,expected", [
        ("/files/modules/a.pdf", ("modules", "a.pdf")),
        ("https://lms.example.ac.id/files/jobsheets/b.pdf?download=1", ("jobsheets", "b.pdf")),
        ("/files/modules/", None),
        ("/files/modules/nested/a.pdf", None),
        ("/files/modules/..", None),
        ("https://elsewhere.example/x.pdf", None),
        (None, None),
    ])
    def test_locate(self, storage, url, expected):
        assert storage.locate(url) == expected
