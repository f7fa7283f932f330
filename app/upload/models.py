from dataclasses import dataclass
from typing import ClassVar


@dataclass(frozen=True)
class UploadedFile:
    """One file as received from the client."""

    filename: str
    content: bytes
    mime_type: str

    @property
    def size(self) -> int:
        return len(self.content)


@dataclass(frozen=True)
class UploadPolicy:
    """Acceptance rules for submitted files."""

    ALLOWED_MIME_TYPES: ClassVar[frozenset[str]] = frozenset(
        {"image/png", "image/jpeg", "application/pdf"}
    )

    max_file_size_bytes: int = 10 * 1024 * 1024
