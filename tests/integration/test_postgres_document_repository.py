import threading
import uuid
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal

import pytest

from app.database.repositories.document_repository import PostgresDocumentRepository
from app.documents.exceptions import AlreadyMaterialized, DocumentNotFoundError, InvalidState
from app.documents.models import (
    Document,
    DocumentStatus,
    DocumentType,
    ExtractionResult,
    TransactionDraft,
    TransactionKind,
)


def _extraction() -> ExtractionResult:
    return ExtractionResult(
        document_type=DocumentType.RECEIPT,
        vendor_name="Acme Store",
        transaction_date=date(2024, 5, 21),
        total_amount=Decimal("42.50"),
        currency="USD",
        transaction_kind=TransactionKind.EXPENSE,
        suggested_category_id=3,
        suggested_category_kind=TransactionKind.EXPENSE,
        confidence_score=0.91,
    )


def _create(repo: PostgresDocumentRepository, owner_id: str) -> Document:
    return repo.create_document(
        owner_id, f"{owner_id}/{uuid.uuid4().hex}.jpg", "r.jpg", 2048, "image/jpeg"
    )


def _parsed(repo: PostgresDocumentRepository, owner_id: str) -> Document:
    document = _create(repo, owner_id)
    repo.update_status(document.id, DocumentStatus.UPLOADED, DocumentStatus.PROCESSING)
    repo.update_status(
        document.id, DocumentStatus.PROCESSING, DocumentStatus.PARSED, extraction=_extraction()
    )
    return repo.find_by_id(document.id)


def _draft(document: Document) -> TransactionDraft:
    return TransactionDraft(
        owner_id=document.owner_id,
        document_id=document.id,
        amount=Decimal("42.50"),
        currency="USD",
        category_id=3,
        category_kind=TransactionKind.EXPENSE,
        description="Acme Store",
    )


@pytest.mark.integration
class TestPostgresDocumentRepository:
    def test_create_and_find(self, owner_id: str) -> None:
        repo = PostgresDocumentRepository()
        document = _create(repo, owner_id)

        found = repo.find_by_id(document.id)

        assert found.status is DocumentStatus.UPLOADED
        assert found.owner_id == owner_id
        assert [d.id for d in repo.list_by_owner(owner_id)] == [document.id]

    def test_find_missing_raises(self) -> None:
        with pytest.raises(DocumentNotFoundError):
            PostgresDocumentRepository().find_by_id(-1)

    def test_extraction_round_trips_through_columns(self, owner_id: str) -> None:
        document = _parsed(PostgresDocumentRepository(), owner_id)

        assert document.status is DocumentStatus.PARSED
        assert document.extraction == _extraction()

    def test_stale_compare_and_swap_is_not_applied(self, owner_id: str) -> None:
        repo = PostgresDocumentRepository()
        document = _create(repo, owner_id)
        repo.update_status(document.id, DocumentStatus.UPLOADED, DocumentStatus.PROCESSING)
        repo.update_status(
            document.id, DocumentStatus.PROCESSING, DocumentStatus.FAILED, error_message="Timeout: x"
        )

        applied = repo.update_status(
            document.id, DocumentStatus.PROCESSING, DocumentStatus.PARSED, extraction=_extraction()
        )

        assert applied is False
        assert repo.find_by_id(document.id).status is DocumentStatus.FAILED

    def test_find_stale(self, owner_id: str) -> None:
        repo = PostgresDocumentRepository()
        document = _create(repo, owner_id)

        stale = repo.find_stale(
            DocumentStatus.UPLOADED, datetime.now(timezone.utc) + timedelta(minutes=1), 1000
        )

        assert document.id in [d.id for d in stale]

    def test_materialize_once(self, owner_id: str) -> None:
        repo = PostgresDocumentRepository()
        document = _parsed(repo, owner_id)

        updated, transaction_id = repo.materialize(document.id, _draft(document))

        assert updated.status is DocumentStatus.TRANSACTION_CREATED
        assert updated.transaction_id == transaction_id
        with pytest.raises(AlreadyMaterialized):
            repo.materialize(document.id, _draft(document))

    def test_materialize_requires_parsed(self, owner_id: str) -> None:
        repo = PostgresDocumentRepository()
        document = _create(repo, owner_id)

        with pytest.raises(InvalidState):
            repo.materialize(document.id, _draft(document))
        assert repo.find_by_id(document.id).status is DocumentStatus.UPLOADED

    def test_concurrent_materialize_creates_one_transaction(self, owner_id: str, db_conn) -> None:
        repo = PostgresDocumentRepository()
        document = _parsed(repo, owner_id)
        barrier = threading.Barrier(4)
        outcomes: list[str] = []
        lock = threading.Lock()

        def confirm() -> None:
            barrier.wait()
            try:
                repo.materialize(document.id, _draft(document))
                outcome = "created"
            except AlreadyMaterialized:
                outcome = "already"
            with lock:
                outcomes.append(outcome)

        threads = [threading.Thread(target=confirm) for _ in range(4)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert sorted(outcomes) == ["already", "already", "already", "created"]
        with db_conn.cursor() as cur:
            cur.execute("SELECT COUNT(*) FROM transactions WHERE document_id = %s", (document.id,))
            row = cur.fetchone()
        assert row is not None
        assert row[0] == 1
