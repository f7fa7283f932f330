from datetime import datetime
from typing import Any

import psycopg
from psycopg.rows import dict_row

from app.database.connection import get_connection
from app.database.repositories.base import BaseDocumentRepository
from app.documents.exceptions import DocumentNotFoundError
from app.documents.models import (
    Document,
    DocumentStatus,
    DocumentType,
    ExtractionResult,
    TransactionDraft,
    TransactionKind,
)
from app.documents.state_machine import ensure_transition
from app.logging.logger import Log

_DOCUMENT_COLUMNS = """
    id, owner_id, storage_key, original_filename, file_size_bytes, mime_type,
    status, document_type, vendor_name, transaction_date, total_amount, currency,
    transaction_kind, suggested_category_id, suggested_category_kind,
    suggested_payment_method_id, confidence_score, error_message,
    transaction_id, created_at, updated_at
"""


def document_from_row(row: dict[str, Any]) -> Document:
    """Map a documents row onto the domain model."""
    extraction = None
    if row["confidence_score"] is not None:
        extraction = ExtractionResult(
            document_type=DocumentType(row["document_type"]),
            vendor_name=row["vendor_name"],
            transaction_date=row["transaction_date"],
            total_amount=row["total_amount"],
            currency=row["currency"],
            transaction_kind=TransactionKind(row["transaction_kind"]),
            suggested_category_id=row["suggested_category_id"],
            suggested_category_kind=TransactionKind(row["suggested_category_kind"]),
            suggested_payment_method_id=row["suggested_payment_method_id"],
            confidence_score=row["confidence_score"],
        )
    return Document(
        id=row["id"],
        owner_id=row["owner_id"],
        storage_key=row["storage_key"],
        original_filename=row["original_filename"],
        file_size_bytes=row["file_size_bytes"],
        mime_type=row["mime_type"],
        status=DocumentStatus(row["status"]),
        extraction=extraction,
        error_message=row["error_message"],
        transaction_id=row["transaction_id"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


class PostgresDocumentRepository(BaseDocumentRepository):
    """Database operations for the documents and transactions tables."""

    def create_document(
        self,
        owner_id: str,
        storage_key: str,
        original_filename: str,
        file_size_bytes: int,
        mime_type: str,
    ) -> Document:
        with get_connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    f"""
                    INSERT INTO documents
                        (owner_id, storage_key, original_filename, file_size_bytes, mime_type)
                    VALUES (%s, %s, %s, %s, %s)
                    RETURNING {_DOCUMENT_COLUMNS}
                    """,
                    (owner_id, storage_key, original_filename, file_size_bytes, mime_type),
                )
                row = cur.fetchone()
            conn.commit()

        if row is None:
            raise RuntimeError("INSERT INTO documents returned no row")
        return document_from_row(row)

    def find_by_id(self, document_id: int) -> Document:
        with get_connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    f"""
                    SELECT {_DOCUMENT_COLUMNS}
                    FROM documents
                    WHERE id = %s AND NOT is_deleted
                    """,
                    (document_id,),
                )
                row = cur.fetchone()

        if row is None:
            raise DocumentNotFoundError(f"Document {document_id} not found")
        return document_from_row(row)

    def list_by_owner(self, owner_id: str) -> list[Document]:
        with get_connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    f"""
                    SELECT {_DOCUMENT_COLUMNS}
                    FROM documents
                    WHERE owner_id = %s AND NOT is_deleted
                    ORDER BY created_at DESC, id DESC
                    """,
                    (owner_id,),
                )
                rows = cur.fetchall()
        return [document_from_row(row) for row in rows]

    def find_stale(
        self,
        status: DocumentStatus,
        updated_before: datetime,
        limit: int = 50,
    ) -> list[Document]:
        with get_connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    f"""
                    SELECT {_DOCUMENT_COLUMNS}
                    FROM documents
                    WHERE status = %s AND updated_at < %s AND NOT is_deleted
                    ORDER BY updated_at
                    LIMIT %s
                    """,
                    (status.value, updated_before, limit),
                )
                rows = cur.fetchall()
        return [document_from_row(row) for row in rows]

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
        values = _extraction_values(extraction)
        current = None
        with get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    """
                    UPDATE documents
                    SET status = %s,
                        document_type = %s,
                        vendor_name = %s,
                        transaction_date = %s,
                        total_amount = %s,
                        currency = %s,
                        transaction_kind = %s,
                        suggested_category_id = %s,
                        suggested_category_kind = %s,
                        suggested_payment_method_id = %s,
                        confidence_score = %s,
                        error_message = %s,
                        updated_at = NOW()
                    WHERE id = %s AND status = %s AND NOT is_deleted
                    """,
                    (new.value, *values, error_message, document_id, expected.value),
                )
                applied = cur.rowcount == 1
                if not applied:
                    cur.execute(
                        "SELECT status FROM documents WHERE id = %s AND NOT is_deleted",
                        (document_id,),
                    )
                    current = cur.fetchone()
            conn.commit()

        if applied:
            return True
        if current is None:
            raise DocumentNotFoundError(f"Document {document_id} not found")
        Log.warning(
            f"Document {document_id}: expected status {expected.value}, "
            f"found {current[0]}; {new.value} not applied"
        )
        return False

    def materialize(
        self,
        document_id: int,
        draft: TransactionDraft,
    ) -> tuple[Document, int]:
        with get_connection() as conn:
            try:
                document, transaction_id = self._materialize_locked(conn, document_id, draft)
            except Exception:
                conn.rollback()
                raise
            conn.commit()
        return document, transaction_id

    def _materialize_locked(
        self,
        conn: psycopg.Connection[Any],
        document_id: int,
        draft: TransactionDraft,
    ) -> tuple[Document, int]:
        with conn.cursor(row_factory=dict_row) as cur:
            # Row lock serializes concurrent confirmations of one document.
            cur.execute(
                "SELECT status FROM documents WHERE id = %s AND NOT is_deleted FOR UPDATE",
                (document_id,),
            )
            row = cur.fetchone()
            if row is None:
                raise DocumentNotFoundError(f"Document {document_id} not found")
            ensure_transition(DocumentStatus(row["status"]), DocumentStatus.TRANSACTION_CREATED)

            cur.execute(
                """
                INSERT INTO transactions
                    (owner_id, document_id, amount, currency, category_id, category_kind,
                     payment_method_id, description, transaction_date)
                VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s)
                RETURNING id
                """,
                (
                    draft.owner_id,
                    document_id,
                    draft.amount,
                    draft.currency,
                    draft.category_id,
                    draft.category_kind.value,
                    draft.payment_method_id,
                    draft.description,
                    draft.transaction_date,
                ),
            )
            inserted = cur.fetchone()
            if inserted is None:
                raise RuntimeError("INSERT INTO transactions returned no row")
            transaction_id = inserted["id"]

            cur.execute(
                f"""
                UPDATE documents
                SET status = %s, transaction_id = %s, updated_at = NOW()
                WHERE id = %s
                RETURNING {_DOCUMENT_COLUMNS}
                """,
                (DocumentStatus.TRANSACTION_CREATED.value, transaction_id, document_id),
            )
            updated = cur.fetchone()

        if updated is None:
            raise DocumentNotFoundError(f"Document {document_id} not found")
        return document_from_row(updated), transaction_id


def _extraction_values(extraction: ExtractionResult | None) -> tuple[object, ...]:
    if extraction is None:
        return (None,) * 10
    return (
        extraction.document_type.value,
        extraction.vendor_name,
        extraction.transaction_date,
        extraction.total_amount,
        extraction.currency,
        extraction.transaction_kind.value,
        extraction.suggested_category_id,
        extraction.suggested_category_kind.value,
        extraction.suggested_payment_method_id,
        extraction.confidence_score,
    )
