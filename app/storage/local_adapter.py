from pathlib import Path

from app.storage.base import BaseBlobStore
from app.storage.exceptions import (
    BlobAlreadyExistsError,
    BlobNotFoundError,
    BlobStoreError,
    InvalidBlobKeyError,
)


class LocalBlobStore(BaseBlobStore):
    """Stores blobs as files below a root directory: {files_root}/{key}."""

    FILES_ROOT = Path("/app/files")

    def __init__(self, files_root: Path | None = None) -> None:
        self._files_root = files_root if files_root is not None else self.FILES_ROOT

    def put(self, key: str, data: bytes) -> None:
        path = self._resolve_path(key)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            with path.open("xb") as fh:
                fh.write(data)
        except FileExistsError as exc:
            raise BlobAlreadyExistsError(f"Blob already exists: {key}") from exc
        except OSError as exc:
            raise BlobStoreError(f"Failed to write blob {key}: {exc}") from exc

    def get(self, key: str) -> bytes:
        path = self._resolve_path(key)
        if not path.exists():
            raise BlobNotFoundError(f"Blob not found: {key}")
        return path.read_bytes()

    def _resolve_path(self, key: str) -> Path:
        root = self._files_root.resolve()
        path = (root / key).resolve()
        if root not in path.parents:
            raise InvalidBlobKeyError(f"Invalid blob key: {key!r}")
        return path
