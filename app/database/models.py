from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal

from app.documents.models import TransactionKind


@dataclass
class TransactionRecord:
    """Represents a row from the transactions table."""

    id: int
    owner_id: str
    document_id: int
    amount: Decimal
    currency: str
    category_id: int
    category_kind: TransactionKind
    description: str
    payment_method_id: int | None = None
    transaction_date: date | None = None
    created_at: datetime | None = None
