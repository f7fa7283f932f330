from typing import ClassVar


class PipelineError(Exception):
    """Base exception for all document pipeline errors."""

    cause_label: ClassVar[str] = "PipelineError"

    def describe(self) -> str:
        """Human-readable cause stored on failed documents."""
        return f"{self.cause_label}: {self}"


class DocumentNotFoundError(PipelineError):
    """Raised when a document cannot be found in the repository."""

    cause_label = "DocumentNotFound"


class UploadRejected(PipelineError):
    """Raised when a submission breaks the upload contract (file count, type, size)."""

    cause_label = "UploadRejected"


class StorageFailure(PipelineError):
    """Raised when the raw file could not be written to the blob store."""

    cause_label = "StorageFailure"


class PersistenceFailure(PipelineError):
    """Raised when a document record could not be written, on upload or when storing a result."""

    cause_label = "PersistenceFailure"


class DispatchFailure(PipelineError):
    """Raised when the recognition service could not be reached or returned an error."""

    cause_label = "DispatchFailure"


class ValidationFailure(PipelineError):
    """Raised when extracted data is malformed or out of range."""

    cause_label = "ValidationFailure"


class TimeoutFailure(PipelineError):
    """Raised when the recognition service did not answer within the bound."""

    cause_label = "Timeout"


class InvalidState(PipelineError):
    """Raised when a status transition is not allowed from the current status."""

    cause_label = "InvalidState"


class AlreadyMaterialized(InvalidState):
    """Raised when a document already produced its transaction."""

    cause_label = "AlreadyMaterialized"
