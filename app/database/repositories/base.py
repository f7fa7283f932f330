from abc import ABC, abstractmethod
from datetime import datetime

from app.documents.exceptions import InvalidState, ValidationFailure
from app.documents.models import Document, DocumentStatus, ExtractionResult, TransactionDraft
from app.documents.state_machine import ensure_transition


class BaseDocumentRepository(ABC):
    """Contract for document persistence.

    The repository is the only writer of document status. Every status
    write is conditional on the status the caller last observed.
    """

    @abstractmethod
    def create_document(
        self,
        owner_id: str,
        storage_key: str,
        original_filename: str,
        file_size_bytes: int,
        mime_type: str,
    ) -> Document:
        """Insert a new document in status 'uploaded'."""

    @abstractmethod
    def find_by_id(self, document_id: int) -> Document:
        """Fetch a document.

        Raises:
            DocumentNotFoundError: if no live document has this ID.
        """

    @abstractmethod
    def list_by_owner(self, owner_id: str) -> list[Document]:
        """All live documents of an owner, newest first."""

    @abstractmethod
    def find_stale(
        self,
        status: DocumentStatus,
        updated_before: datetime,
        limit: int = 50,
    ) -> list[Document]:
        """Documents sitting in status since before updated_before, oldest first."""

    @abstractmethod
    def update_status(
        self,
        document_id: int,
        expected: DocumentStatus,
        new: DocumentStatus,
        *,
        extraction: ExtractionResult | None = None,
        error_message: str | None = None,
    ) -> bool:
        """Move a document from expected to new.

        Returns:
            True if applied, False if the persisted status was not `expected`.

        Raises:
            InvalidState: if expected -> new is not a lifecycle edge.
            DocumentNotFoundError: if no live document has this ID.
        """

    @abstractmethod
    def materialize(
        self,
        document_id: int,
        draft: TransactionDraft,
    ) -> tuple[Document, int]:
        """Create the ledger transaction and link it, atomically.

        Returns:
            The updated document and the new transaction ID.

        Raises:
            AlreadyMaterialized: if the document already has a transaction.
            InvalidState: if the document is not 'parsed'.
            DocumentNotFoundError: if no live document has this ID.
        """

    @staticmethod
    def _check_status_update(
        expected: DocumentStatus,
        new: DocumentStatus,
        extraction: ExtractionResult | None,
        error_message: str | None,
    ) -> None:
        ensure_transition(expected, new)
        if new is DocumentStatus.TRANSACTION_CREATED:
            raise InvalidState("transaction_created is only reachable through materialize()")
        if (new is DocumentStatus.PARSED) != (extraction is not None):
            raise ValueError("An extraction result is required exactly when moving to parsed")
        if (new is DocumentStatus.FAILED) != bool(error_message):
            raise ValueError("An error message is required exactly when moving to failed")
        if extraction is not None and not 0.0 <= extraction.confidence_score <= 1.0:
            raise ValidationFailure(
                f"confidence score {extraction.confidence_score} is outside [0, 1]"
            )
