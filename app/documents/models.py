from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any


class DocumentStatus(str, Enum):
    """Lifecycle states of an uploaded document."""

    UPLOADED = "uploaded"
    PROCESSING = "processing"
    PARSED = "parsed"
    TRANSACTION_CREATED = "transaction_created"
    FAILED = "failed"


class TransactionKind(str, Enum):
    EXPENSE = "expense"
    INCOME = "income"


class DocumentType(str, Enum):
    RECEIPT = "receipt"
    INVOICE = "invoice"
    BANK_STATEMENT = "bank_statement"
    OTHER = "other"


@dataclass(frozen=True)
class ExtractionResult:
    """Structured fields returned by the recognition service."""

    document_type: DocumentType
    vendor_name: str
    transaction_date: date | None
    total_amount: Decimal
    currency: str
    transaction_kind: TransactionKind
    suggested_category_id: int
    suggested_category_kind: TransactionKind
    confidence_score: float
    suggested_payment_method_id: int | None = None

    def to_payload(self) -> dict[str, Any]:
        """Serialize using the recognition service's wire names."""
        return {
            "documentType": self.document_type.value,
            "vendorName": self.vendor_name,
            "transactionDate": (
                self.transaction_date.isoformat() if self.transaction_date else None
            ),
            "totalAmount": str(self.total_amount),
            "currency": self.currency,
            "transactionKind": self.transaction_kind.value,
            "suggestedCategoryId": self.suggested_category_id,
            "suggestedCategoryKind": self.suggested_category_kind.value,
            "suggestedPaymentMethodId": self.suggested_payment_method_id,
            "confidenceScore": self.confidence_score,
        }

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> "ExtractionResult":
        """Rebuild from a payload produced by to_payload()."""
        raw_date = payload.get("transactionDate")
        return cls(
            document_type=DocumentType(payload["documentType"]),
            vendor_name=payload["vendorName"],
            transaction_date=date.fromisoformat(raw_date) if raw_date else None,
            total_amount=Decimal(str(payload["totalAmount"])),
            currency=payload["currency"],
            transaction_kind=TransactionKind(payload["transactionKind"]),
            suggested_category_id=int(payload["suggestedCategoryId"]),
            suggested_category_kind=TransactionKind(payload["suggestedCategoryKind"]),
            suggested_payment_method_id=payload.get("suggestedPaymentMethodId"),
            confidence_score=float(payload["confidenceScore"]),
        )


@dataclass(frozen=True)
class Document:
    """Persisted record tracking one uploaded file through extraction."""

    id: int
    owner_id: str
    storage_key: str
    original_filename: str
    file_size_bytes: int
    mime_type: str
    status: DocumentStatus
    extraction: ExtractionResult | None = None
    error_message: str | None = None
    transaction_id: int | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


@dataclass(frozen=True)
class TransactionOverrides:
    """User adjustments applied on top of the suggested values at confirmation."""

    category_id: int | None = None
    category_kind: TransactionKind | None = None
    payment_method_id: int | None = None
    amount: Decimal | None = None
    description: str | None = None


@dataclass(frozen=True)
class TransactionDraft:
    """Fields of the ledger transaction about to be created from a document."""

    owner_id: str
    document_id: int
    amount: Decimal
    currency: str
    category_id: int
    category_kind: TransactionKind
    description: str
    payment_method_id: int | None = None
    transaction_date: date | None = None


@dataclass(frozen=True)
class ProcessingEvent:
    """Ephemeral realtime message announcing a document's extraction outcome."""

    document_id: int
    result: ExtractionResult | None = None
    error: str | None = None

    def __post_init__(self) -> None:
        if (self.result is None) == (self.error is None):
            raise ValueError("ProcessingEvent requires exactly one of result or error")

    def to_payload(self) -> dict[str, Any]:
        return {
            "documentId": self.document_id,
            "result": self.result.to_payload() if self.result is not None else None,
            "error": self.error,
        }

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> "ProcessingEvent":
        raw_result = payload.get("result")
        return cls(
            document_id=int(payload["documentId"]),
            result=ExtractionResult.from_payload(raw_result) if raw_result else None,
            error=payload.get("error"),
        )


@dataclass(frozen=True)
class MaterializationResult:
    """Outcome of a successful confirmation."""

    document: Document
    transaction_id: int


@dataclass
class ReferenceData:
    """Owner's categories and payment methods offered to the recognizer as context."""

    expense_categories: list[tuple[int, str, str]] = field(default_factory=list)
    income_categories: list[tuple[int, str, str]] = field(default_factory=list)
    payment_methods: list[tuple[int, str]] = field(default_factory=list)
