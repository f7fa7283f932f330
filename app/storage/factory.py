from pathlib import Path

from app.config.settings import Settings
from app.storage.base import BaseBlobStore
from app.storage.local_adapter import LocalBlobStore


class BlobStoreFactory:
    """Creates the blob store configured in settings."""

    @classmethod
    def create(cls, settings: Settings) -> BaseBlobStore:
        return LocalBlobStore(files_root=Path(settings.files_root))
