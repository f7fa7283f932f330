import itertools
import threading
from dataclasses import replace
from datetime import datetime, timezone

from app.database.models import TransactionRecord
from app.database.repositories.base import BaseDocumentRepository
from app.documents.exceptions import DocumentNotFoundError
from app.documents.models import Document, DocumentStatus, ExtractionResult, TransactionDraft
from app.documents.state_machine import ensure_transition
from app.logging.logger import Log


class InMemoryDocumentRepository(BaseDocumentRepository):
    """Process-local document store with the same guarded-write semantics.

    A single lock makes every compare-and-swap and every materialization
    atomic with respect to other threads.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._documents: dict[int, Document] = {}
        self._transactions: dict[int, TransactionRecord] = {}
        self._document_ids = itertools.count(1)
        self._transaction_ids = itertools.count(1)

    def create_document(
        self,
        owner_id: str,
        storage_key: str,
        original_filename: str,
        file_size_bytes: int,
        mime_type: str,
    ) -> Document:
        now = datetime.now(timezone.utc)
        with self._lock:
            document = Document(
                id=next(self._document_ids),
                owner_id=owner_id,
                storage_key=storage_key,
                original_filename=original_filename,
                file_size_bytes=file_size_bytes,
                mime_type=mime_type,
                status=DocumentStatus.UPLOADED,
                created_at=now,
                updated_at=now,
            )
            self._documents[document.id] = document
        return document

    def find_by_id(self, document_id: int) -> Document:
        with self._lock:
            return self._get(document_id)

    def list_by_owner(self, owner_id: str) -> list[Document]:
        with self._lock:
            owned = [d for d in self._documents.values() if d.owner_id == owner_id]
        return sorted(owned, key=lambda d: d.id, reverse=True)

    def find_stale(
        self,
        status: DocumentStatus,
        updated_before: datetime,
        limit: int = 50,
    ) -> list[Document]:
        with self._lock:
            stale = [
                d
                for d in self._documents.values()
                if d.status is status and d.updated_at is not None and d.updated_at < updated_before
            ]
        stale.sort(key=lambda d: d.updated_at or updated_before)
        return stale[:limit]

    def update_status(
        self,
        document_id: int,
        expected: DocumentStatus,
        new: DocumentStatus,
        *,
        extraction: ExtractionResult | None = None,
        error_message: str | None = None,
    ) -> bool:
        self._check_status_update(expected, new, extraction, error_message)
        with self._lock:
            current = self._get(document_id)
            if current.status is not expected:
                Log.warning(
                    f"Document {document_id}: expected status {expected.value}, "
                    f"found {current.status.value}; {new.value} not applied"
                )
                return False
            self._documents[document_id] = replace(
                current,
                status=new,
                extraction=extraction,
                error_message=error_message,
                updated_at=datetime.now(timezone.utc),
            )
        return True

    def materialize(
        self,
        document_id: int,
        draft: TransactionDraft,
    ) -> tuple[Document, int]:
        with self._lock:
            current = self._get(document_id)
            ensure_transition(current.status, DocumentStatus.TRANSACTION_CREATED)
            now = datetime.now(timezone.utc)
            transaction_id = next(self._transaction_ids)
            self._transactions[transaction_id] = TransactionRecord(
                id=transaction_id,
                owner_id=draft.owner_id,
                document_id=document_id,
                amount=draft.amount,
                currency=draft.currency,
                category_id=draft.category_id,
                category_kind=draft.category_kind,
                description=draft.description,
                payment_method_id=draft.payment_method_id,
                transaction_date=draft.transaction_date,
                created_at=now,
            )
            document = replace(
                current,
                status=DocumentStatus.TRANSACTION_CREATED,
                transaction_id=transaction_id,
                updated_at=now,
            )
            self._documents[document_id] = document
        return document, transaction_id

    def transactions(self) -> list[TransactionRecord]:
        """Ledger rows created so far, in creation order."""
        with self._lock:
            return list(self._transactions.values())

    def _get(self, document_id: int) -> Document:
        document = self._documents.get(document_id)
        if document is None:
            raise DocumentNotFoundError(f"Document {document_id} not found")
        return document
