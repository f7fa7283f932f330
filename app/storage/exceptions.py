class BlobStoreError(Exception):
    """Base exception for blob store failures."""


class BlobAlreadyExistsError(BlobStoreError):
    """Raised when a write targets a key that already holds content."""


class BlobNotFoundError(BlobStoreError):
    """Raised when no content is stored under a key."""


class InvalidBlobKeyError(BlobStoreError):
    """Raised when a key would escape the store root."""
