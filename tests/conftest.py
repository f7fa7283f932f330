import io
from pathlib import Path

import pytest
from reportlab.lib.pagesizes import letter
from reportlab.pdfgen import canvas

from app.database.repositories.memory_repository import InMemoryDocumentRepository
from app.notify.memory_notifier import InMemoryNotifier
from app.storage.local_adapter import LocalBlobStore


@pytest.fixture()
def sample_pdf_bytes() -> bytes:
    """Generate a minimal single-page receipt PDF with known text content."""
    buf = io.BytesIO()
    c = canvas.Canvas(buf, pagesize=letter)
    c.drawString(72, 720, "Acme Store")
    c.drawString(72, 700, "Total: USD 42.50")
    c.save()
    return buf.getvalue()


@pytest.fixture()
def multi_page_pdf_bytes() -> bytes:
    """Generate a three-page PDF with known text on each page."""
    buf = io.BytesIO()
    c = canvas.Canvas(buf, pagesize=letter)
    c.drawString(72, 720, "Page one content")
    c.showPage()
    c.drawString(72, 720, "Page two content")
    c.showPage()
    c.drawString(72, 720, "Page three content")
    c.save()
    return buf.getvalue()


@pytest.fixture()
def empty_pdf_bytes() -> bytes:
    """Generate a valid PDF with no text content (blank page)."""
    buf = io.BytesIO()
    c = canvas.Canvas(buf, pagesize=letter)
    c.showPage()
    c.save()
    return buf.getvalue()


@pytest.fixture()
def doc_repo() -> InMemoryDocumentRepository:
    return InMemoryDocumentRepository()


@pytest.fixture()
def notifier() -> InMemoryNotifier:
    return InMemoryNotifier()


@pytest.fixture()
def blob_store(tmp_path: Path) -> LocalBlobStore:
    return LocalBlobStore(files_root=tmp_path / "files")
