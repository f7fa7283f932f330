import pytest

from app.pdf.exceptions import PdfExtractionError
from app.pdf.pdfplumber_adapter import PdfPlumberAdapter
from app.pdf.pymupdf_adapter import PyMuPdfAdapter


class TestPdfPlumberAdapter:
    def test_extract_returns_text(self, sample_pdf_bytes: bytes) -> None:
        adapter = PdfPlumberAdapter()
        result = adapter.extract(sample_pdf_bytes)
        assert isinstance(result, str)
        assert "Acme Store" in result
        assert "Total: USD 42.50" in result

    def test_extract_multi_page(self, multi_page_pdf_bytes: bytes) -> None:
        adapter = PdfPlumberAdapter()
        result = adapter.extract(multi_page_pdf_bytes)
        assert "Page one content" in result
        assert "Page two content" in result

    def test_extract_stops_at_max_pages(self, multi_page_pdf_bytes: bytes) -> None:
        adapter = PdfPlumberAdapter(max_pages=2)
        result = adapter.extract(multi_page_pdf_bytes)
        assert "Page two content" in result
        assert "Page three content" not in result

    def test_extract_empty_pdf_returns_empty_string(self, empty_pdf_bytes: bytes) -> None:
        adapter = PdfPlumberAdapter()
        result = adapter.extract(empty_pdf_bytes)
        assert isinstance(result, str)
        assert result == ""

    def test_extract_raises_on_invalid_bytes(self) -> None:
        adapter = PdfPlumberAdapter()
        with pytest.raises(PdfExtractionError, match="pdfplumber"):
            adapter.extract(b"not a pdf")

    def test_extract_result_is_stripped(self, sample_pdf_bytes: bytes) -> None:
        adapter = PdfPlumberAdapter()
        result = adapter.extract(sample_pdf_bytes)
        assert result == result.strip()


class TestPyMuPdfAdapter:
    def test_extract_returns_text(self, sample_pdf_bytes: bytes) -> None:
        result = PyMuPdfAdapter().extract(sample_pdf_bytes)
        assert "Acme Store" in result

    def test_extract_stops_at_max_pages(self, multi_page_pdf_bytes: bytes) -> None:
        result = PyMuPdfAdapter(max_pages=1).extract(multi_page_pdf_bytes)
        assert "Page one content" in result
        assert "Page two content" not in result

    def test_extract_raises_on_invalid_bytes(self) -> None:
        with pytest.raises(PdfExtractionError, match="pymupdf"):
            PyMuPdfAdapter().extract(b"not a pdf")
