from datetime import datetime, timedelta, timezone

from app.database.repositories.base import BaseDocumentRepository
from app.dispatch.dispatcher import RecognitionDispatcher
from app.documents.exceptions import TimeoutFailure
from app.documents.models import DocumentStatus, ProcessingEvent
from app.logging.logger import Log
from app.notify.base import BaseNotifier


class RecoveryRunner:
    """Repairs documents left behind by a crashed process.

    - uploaded for longer than stale_upload_seconds: recognition was never
      scheduled, dispatch it now.
    - processing for longer than twice the recognition timeout: no dispatcher
      is waiting on it any more, fail it with Timeout.
    """

    def __init__(
        self,
        *,
        doc_repo: BaseDocumentRepository,
        dispatcher: RecognitionDispatcher,
        notifier: BaseNotifier,
        stale_upload_seconds: float,
        recognition_timeout_seconds: float,
        batch_size: int = 50,
    ) -> None:
        self._doc_repo = doc_repo
        self._dispatcher = dispatcher
        self._notifier = notifier
        self._stale_upload = timedelta(seconds=stale_upload_seconds)
        self._stuck_processing = timedelta(seconds=2 * recognition_timeout_seconds)
        self._recognition_timeout_seconds = recognition_timeout_seconds
        self._batch_size = batch_size

    def run_once(self, now: datetime | None = None) -> int:
        """Handle one batch of stale documents. Returns how many were touched."""
        now = now or datetime.now(timezone.utc)
        return self._redispatch_uploads(now) + self._expire_processing(now)

    def _redispatch_uploads(self, now: datetime) -> int:
        stale = self._doc_repo.find_stale(
            DocumentStatus.UPLOADED, now - self._stale_upload, self._batch_size
        )
        for document in stale:
            Log.warning(f"Document {document.id} was never dispatched, scheduling now")
            self._dispatcher.submit(document)
        return len(stale)

    def _expire_processing(self, now: datetime) -> int:
        stuck = self._doc_repo.find_stale(
            DocumentStatus.PROCESSING, now - self._stuck_processing, self._batch_size
        )
        expired = 0
        cause = TimeoutFailure(
            f"recognition service did not respond within "
            f"{self._recognition_timeout_seconds:g}s"
        ).describe()
        for document in stuck:
            if not self._doc_repo.update_status(
                document.id,
                DocumentStatus.PROCESSING,
                DocumentStatus.FAILED,
                error_message=cause,
            ):
                continue
            expired += 1
            Log.error(f"Document {document.id} stuck in processing, marked failed")
            try:
                self._notifier.publish(
                    document.owner_id, ProcessingEvent(document_id=document.id, error=cause)
                )
            except Exception as exc:
                Log.warning(f"Could not publish event for document {document.id}: {exc}")
        return expired
