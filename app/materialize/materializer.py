from app.database.repositories.base import BaseDocumentRepository
from app.documents.exceptions import InvalidState, ValidationFailure
from app.documents.formatting import format_amount
from app.documents.models import (
    Document,
    DocumentStatus,
    MaterializationResult,
    TransactionDraft,
    TransactionOverrides,
)
from app.documents.state_machine import ensure_transition
from app.logging.logger import Log


class TransactionMaterializer:
    """Turns a parsed document into exactly one ledger transaction."""

    def __init__(self, doc_repo: BaseDocumentRepository) -> None:
        self._doc_repo = doc_repo

    def confirm(
        self,
        document_id: int,
        overrides: TransactionOverrides | None = None,
    ) -> MaterializationResult:
        """Create the transaction for a parsed document.

        Raises:
            AlreadyMaterialized: if the document already has its transaction,
                including when a concurrent confirmation won the race.
            InvalidState: if the document is not parsed.
            ValidationFailure: if the overrides are unusable.
            DocumentNotFoundError: if the document does not exist.
        """
        document = self._doc_repo.find_by_id(document_id)
        ensure_transition(document.status, DocumentStatus.TRANSACTION_CREATED)
        draft = build_draft(document, overrides or TransactionOverrides())

        updated, transaction_id = self._doc_repo.materialize(document_id, draft)
        Log.info(
            f"Created transaction {transaction_id} from document {document_id}: "
            f"{draft.description} {format_amount(draft.amount, draft.currency)}"
        )
        return MaterializationResult(document=updated, transaction_id=transaction_id)


def build_draft(document: Document, overrides: TransactionOverrides) -> TransactionDraft:
    """Merge user overrides onto the document's suggested values."""
    extraction = document.extraction
    if extraction is None:
        raise InvalidState(f"Document {document.id} has no extraction result")

    amount = overrides.amount if overrides.amount is not None else extraction.total_amount
    if amount < 0:
        raise ValidationFailure(f"amount must be non-negative, got {amount}")
    description = overrides.description
    if description is None or not description.strip():
        description = extraction.vendor_name

    return TransactionDraft(
        owner_id=document.owner_id,
        document_id=document.id,
        amount=amount,
        currency=extraction.currency,
        category_id=(
            overrides.category_id
            if overrides.category_id is not None
            else extraction.suggested_category_id
        ),
        category_kind=overrides.category_kind or extraction.suggested_category_kind,
        payment_method_id=(
            overrides.payment_method_id
            if overrides.payment_method_id is not None
            else extraction.suggested_payment_method_id
        ),
        description=description.strip(),
        transaction_date=extraction.transaction_date,
    )
