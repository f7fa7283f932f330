import io

import pdfplumber

from app.pdf.base import BasePdfExtractor
from app.pdf.exceptions import PdfExtractionError


class PdfPlumberAdapter(BasePdfExtractor):
    """Extracts receipt text with pdfplumber."""

    def extract(self, pdf_bytes: bytes) -> str:
        try:
            with pdfplumber.open(io.BytesIO(pdf_bytes)) as pdf:
                pages = [page.extract_text() or "" for page in pdf.pages[: self._max_pages]]
            return "\n\n".join(pages).strip()
        except Exception as exc:
            raise PdfExtractionError(f"pdfplumber could not read document: {exc}") from exc
