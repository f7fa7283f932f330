"""Validates a raw recognition response and builds an ExtractionResult."""

import math
from datetime import date
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any

from app.documents.exceptions import ValidationFailure
from app.documents.models import DocumentType, ExtractionResult, TransactionKind
from app.documents.currencies import is_known_currency

_UNKNOWN_VENDOR = "Unknown Vendor"
_CENT = Decimal("0.01")
# Bounds of the NUMERIC(14, 2) and INTEGER columns the result is stored in.
_MAX_AMOUNT = Decimal("999999999999.99")
_MAX_ID = 2_147_483_647


def validate_and_build(
    data: dict[str, Any],
    *,
    default_currency: str,
    clamp_tolerance: float = 0.01,
) -> ExtractionResult:
    """Validate a recognition payload and build an ExtractionResult.

    Confidence scores outside [0, 1] by at most clamp_tolerance are clamped
    onto the interval; anything further out is rejected.

    Raises:
        ValidationFailure: on any validation failure.
    """
    if not isinstance(data, dict):
        raise ValidationFailure("Recognition response must be an object")
    return ExtractionResult(
        document_type=_build_document_type(data.get("documentType")),
        vendor_name=_build_vendor_name(data.get("vendorName")),
        transaction_date=_build_date(data.get("transactionDate")),
        total_amount=_build_amount(data.get("totalAmount")),
        currency=_build_currency(data.get("currency"), default_currency),
        transaction_kind=_build_kind(data.get("transactionKind"), "transactionKind"),
        suggested_category_id=_build_id(data.get("suggestedCategoryId"), "suggestedCategoryId"),
        suggested_category_kind=_build_kind(
            data.get("suggestedCategoryKind"), "suggestedCategoryKind"
        ),
        suggested_payment_method_id=_build_optional_id(
            data.get("suggestedPaymentMethodId"), "suggestedPaymentMethodId"
        ),
        confidence_score=_build_confidence(data.get("confidenceScore"), clamp_tolerance),
    )


def _build_document_type(raw: Any) -> DocumentType:
    if raw is None:
        return DocumentType.RECEIPT
    try:
        return DocumentType(raw)
    except ValueError as exc:
        raise ValidationFailure(
            f"'documentType' must be one of {[t.value for t in DocumentType]}, got {raw!r}"
        ) from exc


def _build_vendor_name(raw: Any) -> str:
    if raw is None:
        return _UNKNOWN_VENDOR
    if not isinstance(raw, str):
        raise ValidationFailure("'vendorName' must be a string")
    return raw.strip() or _UNKNOWN_VENDOR


def _build_date(raw: Any) -> date | None:
    if raw is None:
        return None
    if not isinstance(raw, str):
        raise ValidationFailure("'transactionDate' must be an ISO-8601 date string or null")
    try:
        return date.fromisoformat(raw)
    except ValueError as exc:
        raise ValidationFailure(f"'transactionDate' is not an ISO-8601 date: {raw!r}") from exc


def _build_amount(raw: Any) -> Decimal:
    if raw is None:
        raise ValidationFailure("'totalAmount' is required")
    if isinstance(raw, bool) or not isinstance(raw, (int, float, str, Decimal)):
        raise ValidationFailure("'totalAmount' must be a number")
    if isinstance(raw, float) and not math.isfinite(raw):
        raise ValidationFailure("'totalAmount' must be finite")
    try:
        amount = Decimal(str(raw).strip())
    except InvalidOperation as exc:
        raise ValidationFailure(f"'totalAmount' must be a number, got {raw!r}") from exc
    if not amount.is_finite():
        raise ValidationFailure("'totalAmount' must be finite")
    if amount < 0:
        raise ValidationFailure(f"'totalAmount' must be non-negative, got {amount}")
    if amount >= _MAX_AMOUNT + _CENT / 2:
        raise ValidationFailure(f"'totalAmount' must not exceed {_MAX_AMOUNT}, got {raw!r}")
    return amount.quantize(_CENT, rounding=ROUND_HALF_UP)


def _build_currency(raw: Any, default_currency: str) -> str:
    if raw is None or raw == "":
        return default_currency
    if not isinstance(raw, str):
        raise ValidationFailure("'currency' must be a string")
    code = raw.strip().upper()
    if len(code) != 3 or not is_known_currency(code):
        raise ValidationFailure(f"'currency' is not a recognized ISO 4217 code: {raw!r}")
    return code


def _build_kind(raw: Any, field: str) -> TransactionKind:
    if raw is None:
        return TransactionKind.EXPENSE
    try:
        return TransactionKind(raw)
    except ValueError as exc:
        raise ValidationFailure(f"'{field}' must be 'expense' or 'income', got {raw!r}") from exc


def _build_id(raw: Any, field: str) -> int:
    if raw is None:
        raise ValidationFailure(f"'{field}' is required")
    return _coerce_id(raw, field)


def _build_optional_id(raw: Any, field: str) -> int | None:
    if raw is None:
        return None
    return _coerce_id(raw, field)


def _coerce_id(raw: Any, field: str) -> int:
    if isinstance(raw, bool):
        raise ValidationFailure(f"'{field}' must be an integer")
    if isinstance(raw, int):
        value = raw
    elif isinstance(raw, float) and raw.is_integer():
        value = int(raw)
    elif isinstance(raw, str) and raw.strip().isdigit():
        value = int(raw.strip())
    else:
        raise ValidationFailure(f"'{field}' must be an integer, got {raw!r}")
    if not 1 <= value <= _MAX_ID:
        raise ValidationFailure(f"'{field}' must be between 1 and {_MAX_ID}, got {raw!r}")
    return value


def _build_confidence(raw: Any, clamp_tolerance: float) -> float:
    if raw is None:
        raise ValidationFailure("'confidenceScore' is required")
    if isinstance(raw, bool) or not isinstance(raw, (int, float)):
        raise ValidationFailure("'confidenceScore' must be a number")
    score = float(raw)
    if not math.isfinite(score):
        raise ValidationFailure("'confidenceScore' must be finite")
    if -clamp_tolerance <= score < 0.0:
        return 0.0
    if 1.0 < score <= 1.0 + clamp_tolerance:
        return 1.0
    if not 0.0 <= score <= 1.0:
        raise ValidationFailure(f"'confidenceScore' must lie in [0, 1], got {score}")
    return score
