import pymupdf

from app.pdf.base import BasePdfExtractor
from app.pdf.exceptions import PdfExtractionError


class PyMuPdfAdapter(BasePdfExtractor):
    """Extracts receipt text with PyMuPDF."""

    def extract(self, pdf_bytes: bytes) -> str:
        try:
            with pymupdf.open(stream=pdf_bytes, filetype="pdf") as doc:  # type: ignore[no-untyped-call]
                page_count = min(doc.page_count, self._max_pages)
                pages = [doc[index].get_text() for index in range(page_count)]
            return "\n\n".join(pages).strip()
        except Exception as exc:
            raise PdfExtractionError(f"pymupdf could not read document: {exc}") from exc
