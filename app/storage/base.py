from abc import ABC, abstractmethod


class BaseBlobStore(ABC):
    """Contract for raw file storage. Keys are write-once."""

    @abstractmethod
    def put(self, key: str, data: bytes) -> None:
        """Store bytes under a new key.

        Raises:
            BlobAlreadyExistsError: if the key is already taken.
            BlobStoreError: on any other storage failure.
        """

    @abstractmethod
    def get(self, key: str) -> bytes:
        """Read the bytes stored under key.

        Raises:
            BlobNotFoundError: if nothing is stored under key.
        """
