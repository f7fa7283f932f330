from dataclasses import dataclass


@dataclass(frozen=True)
class RecognitionRequest:
    """Input handed to the recognition service for one document."""

    document_id: int
    owner_id: str
    storage_key: str
    mime_type: str

    def to_payload(self) -> dict[str, object]:
        return {"documentId": self.document_id, "storageKey": self.storage_key}
