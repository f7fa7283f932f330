from collections.abc import Sequence

from app.database.repositories.base import BaseDocumentRepository
from app.dispatch.dispatcher import RecognitionDispatcher
from app.documents.exceptions import PersistenceFailure, StorageFailure, UploadRejected
from app.documents.models import Document
from app.logging.logger import Log
from app.storage.base import BaseBlobStore
from app.storage.keys import build_storage_key
from app.upload.models import UploadedFile, UploadPolicy


class UploadCoordinator:
    """Validates a submission, stores it and registers the document.

    Order: blob write -> document record -> schedule recognition. A document
    record never exists without its blob; a blob may exist without a record
    if the insert fails.
    """

    def __init__(
        self,
        *,
        blob_store: BaseBlobStore,
        doc_repo: BaseDocumentRepository,
        dispatcher: RecognitionDispatcher,
        policy: UploadPolicy | None = None,
    ) -> None:
        self._blob_store = blob_store
        self._doc_repo = doc_repo
        self._dispatcher = dispatcher
        self._policy = policy or UploadPolicy()

    def upload(self, owner_id: str, files: Sequence[UploadedFile]) -> Document:
        """Accept exactly one file and return its new document (status uploaded).

        Recognition is only scheduled; the returned document says nothing
        about whether it has started.

        Raises:
            UploadRejected: wrong file count, disallowed type or size.
            StorageFailure: the blob write failed; nothing was recorded.
            PersistenceFailure: the blob was written but the record was not.
        """
        file = self._validate(files)
        storage_key = build_storage_key(owner_id, file.filename)

        try:
            self._blob_store.put(storage_key, file.content)
        except Exception as exc:
            Log.error(f"Blob write failed for {storage_key}: {exc}")
            raise StorageFailure(f"Could not store {file.filename}: {exc}") from exc
        Log.info(f"Stored {file.size} bytes at {storage_key}")

        try:
            document = self._doc_repo.create_document(
                owner_id=owner_id,
                storage_key=storage_key,
                original_filename=file.filename,
                file_size_bytes=file.size,
                mime_type=file.mime_type,
            )
        except Exception as exc:
            Log.error(f"Document record creation failed for {storage_key}: {exc}")
            raise PersistenceFailure(
                f"Stored {file.filename} but could not record it: {exc}"
            ) from exc
        Log.info(f"Created document {document.id} for owner {owner_id}")

        try:
            self._dispatcher.submit(document)
        except RuntimeError as exc:
            # Left in uploaded; the recovery worker dispatches it later.
            Log.warning(f"Could not schedule recognition for document {document.id}: {exc}")
        return document

    def _validate(self, files: Sequence[UploadedFile]) -> UploadedFile:
        if len(files) != 1:
            raise UploadRejected(f"Exactly one file per upload is accepted, got {len(files)}")
        file = files[0]
        if file.mime_type not in UploadPolicy.ALLOWED_MIME_TYPES:
            raise UploadRejected(
                f"Unsupported file type '{file.mime_type}'. "
                f"Allowed: {sorted(UploadPolicy.ALLOWED_MIME_TYPES)}"
            )
        if file.size == 0:
            raise UploadRejected(f"{file.filename} is empty")
        if file.size > self._policy.max_file_size_bytes:
            raise UploadRejected(
                f"{file.filename} is {file.size} bytes; "
                f"limit is {self._policy.max_file_size_bytes}"
            )
        return file
