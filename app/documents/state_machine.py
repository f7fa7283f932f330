"""Allowed document status transitions.

uploaded -> processing -> parsed -> transaction_created
                       `-> failed

transaction_created and failed are terminal. A failed upload is retried by
uploading again, never by moving the old record back.
"""

from app.documents.exceptions import AlreadyMaterialized, InvalidState
from app.documents.models import DocumentStatus

_TRANSITIONS: dict[DocumentStatus, frozenset[DocumentStatus]] = {
    DocumentStatus.UPLOADED: frozenset({DocumentStatus.PROCESSING}),
    DocumentStatus.PROCESSING: frozenset({DocumentStatus.PARSED, DocumentStatus.FAILED}),
    DocumentStatus.PARSED: frozenset({DocumentStatus.TRANSACTION_CREATED}),
    DocumentStatus.TRANSACTION_CREATED: frozenset(),
    DocumentStatus.FAILED: frozenset(),
}

# Position along the lifecycle; parsed and failed share a stage.
_STAGE: dict[DocumentStatus, int] = {
    DocumentStatus.UPLOADED: 0,
    DocumentStatus.PROCESSING: 1,
    DocumentStatus.PARSED: 2,
    DocumentStatus.FAILED: 2,
    DocumentStatus.TRANSACTION_CREATED: 3,
}


def can_transition(current: DocumentStatus, new: DocumentStatus) -> bool:
    return new in _TRANSITIONS[current]


def ensure_transition(current: DocumentStatus, new: DocumentStatus) -> None:
    """Raise unless current -> new is an edge of the lifecycle.

    Raises:
        AlreadyMaterialized: if the document already has its transaction.
        InvalidState: for any other disallowed edge.
    """
    if can_transition(current, new):
        return
    if current is DocumentStatus.TRANSACTION_CREATED and new is DocumentStatus.TRANSACTION_CREATED:
        raise AlreadyMaterialized("Document already has a transaction")
    raise InvalidState(f"Transition {current.value} -> {new.value} is not allowed")


def is_terminal(status: DocumentStatus) -> bool:
    return not _TRANSITIONS[status]


def stage(status: DocumentStatus) -> int:
    """Lifecycle position used to detect stale or duplicate updates."""
    return _STAGE[status]
