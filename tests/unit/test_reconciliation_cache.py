from dataclasses import replace
from datetime import date
from decimal import Decimal
from unittest.mock import MagicMock

from app.client.cache import DOWNSTREAM_CACHES, ReconciliationCache
from app.documents.models import (
    Document,
    DocumentStatus,
    DocumentType,
    ExtractionResult,
    ProcessingEvent,
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


def _document(
    document_id: int = 1,
    status: DocumentStatus = DocumentStatus.UPLOADED,
    owner_id: str = "owner-1",
) -> Document:
    return Document(
        id=document_id,
        owner_id=owner_id,
        storage_key=f"{owner_id}/{document_id}.jpg",
        original_filename="r.jpg",
        file_size_bytes=10,
        mime_type="image/jpeg",
        status=status,
    )


class TestLoad:
    def test_replaces_entries_and_drops_other_owners(self) -> None:
        cache = ReconciliationCache("owner-1")
        cache.insert_optimistic(_document(99))

        cache.load([_document(1), _document(2), _document(3, owner_id="owner-2")])

        assert [d.id for d in cache.snapshot()] == [2, 1]
        assert 99 not in cache


class TestApplyEvent:
    def test_result_moves_entry_to_parsed(self) -> None:
        cache = ReconciliationCache("owner-1")
        cache.insert_optimistic(_document(1))

        changed = cache.apply_event(ProcessingEvent(document_id=1, result=_extraction()))

        assert changed is True
        entry = cache.get(1)
        assert entry is not None
        assert entry.status is DocumentStatus.PARSED
        assert entry.extraction == _extraction()

    def test_error_moves_entry_to_failed(self) -> None:
        cache = ReconciliationCache("owner-1")
        cache.insert_optimistic(_document(1, DocumentStatus.PROCESSING))

        cache.apply_event(ProcessingEvent(document_id=1, error="Timeout: slow"))

        entry = cache.get(1)
        assert entry is not None
        assert entry.status is DocumentStatus.FAILED
        assert entry.error_message == "Timeout: slow"

    def test_unknown_document_is_ignored(self) -> None:
        cache = ReconciliationCache("owner-1")

        assert cache.apply_event(ProcessingEvent(document_id=5, result=_extraction())) is False
        assert 5 not in cache

    def test_duplicate_event_is_ignored(self) -> None:
        cache = ReconciliationCache("owner-1")
        cache.insert_optimistic(_document(1))
        event = ProcessingEvent(document_id=1, result=_extraction())
        cache.apply_event(event)

        assert cache.apply_event(event) is False

    def test_late_error_does_not_override_parsed(self) -> None:
        cache = ReconciliationCache("owner-1")
        cache.insert_optimistic(_document(1))
        cache.apply_event(ProcessingEvent(document_id=1, result=_extraction()))

        assert cache.apply_event(ProcessingEvent(document_id=1, error="Timeout: x")) is False
        entry = cache.get(1)
        assert entry is not None
        assert entry.status is DocumentStatus.PARSED

    def test_event_never_regresses_materialized_entry(self) -> None:
        cache = ReconciliationCache("owner-1")
        cache.upsert(_document(1, DocumentStatus.TRANSACTION_CREATED))

        assert cache.apply_event(ProcessingEvent(document_id=1, result=_extraction())) is False


class TestOptimisticInsert:
    def test_does_not_regress_newer_entry(self) -> None:
        cache = ReconciliationCache("owner-1")
        parsed = replace(_document(1, DocumentStatus.PARSED), extraction=_extraction())
        cache.upsert(parsed)

        cache.insert_optimistic(_document(1))

        assert cache.get(1) == parsed


class TestMaterialized:
    def test_signals_every_downstream_cache(self) -> None:
        listener = MagicMock()
        cache = ReconciliationCache("owner-1", [listener])

        cache.mark_materialized(_document(1, DocumentStatus.TRANSACTION_CREATED))

        assert [c.args for c in listener.call_args_list] == [
            (name, "owner-1") for name in DOWNSTREAM_CACHES
        ]
        assert DOWNSTREAM_CACHES == ("ledger", "budget_spend", "summary")

    def test_failing_listener_does_not_block_others(self) -> None:
        broken = MagicMock(side_effect=RuntimeError("gone"))
        healthy = MagicMock()
        cache = ReconciliationCache("owner-1", [broken, healthy])

        cache.mark_materialized(_document(1, DocumentStatus.TRANSACTION_CREATED))

        assert healthy.call_count == len(DOWNSTREAM_CACHES)


class TestRemove:
    def test_remove_is_local_and_idempotent(self) -> None:
        cache = ReconciliationCache("owner-1")
        cache.insert_optimistic(_document(1))

        cache.remove(1)
        cache.remove(1)

        assert len(cache) == 0
        assert cache.get(1) is None
