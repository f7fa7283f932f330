import threading
from concurrent.futures import Future, ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from typing import Any

from app.database.repositories.base import BaseDocumentRepository
from app.documents.exceptions import (
    DispatchFailure,
    PersistenceFailure,
    PipelineError,
    TimeoutFailure,
    ValidationFailure,
)
from app.documents.models import Document, DocumentStatus, ExtractionResult, ProcessingEvent
from app.logging.logger import Log
from app.notify.base import BaseNotifier
from app.recognition.base import BaseRecognitionClient
from app.recognition.models import RecognitionRequest
from app.recognition.validator import validate_and_build


class RecognitionDispatcher:
    """Runs recognition for uploaded documents and records the outcome.

    Sole writer of processing -> parsed and processing -> failed. Failures are
    recorded on the document and announced through the notifier; they are
    never raised to whoever scheduled the work.
    """

    def __init__(
        self,
        *,
        doc_repo: BaseDocumentRepository,
        recognizer: BaseRecognitionClient,
        notifier: BaseNotifier,
        timeout_seconds: float,
        default_currency: str,
        clamp_tolerance: float = 0.01,
        max_workers: int = 4,
    ) -> None:
        self._doc_repo = doc_repo
        self._recognizer = recognizer
        self._notifier = notifier
        self._timeout_seconds = timeout_seconds
        self._default_currency = default_currency
        self._clamp_tolerance = clamp_tolerance
        self._executor = ThreadPoolExecutor(max_workers, thread_name_prefix="dispatch")
        self._in_flight: set[int] = set()
        self._lock = threading.Lock()

    def submit(self, document: Document) -> Future[Document | None]:
        """Schedule recognition in the background and return immediately.

        A document that is already queued or running is not scheduled again;
        the returned future then resolves to None straight away.
        """
        if not self._claim(document.id):
            Log.info(f"Document {document.id} is already scheduled, skipping")
            skipped: Future[Document | None] = Future()
            skipped.set_result(None)
            return skipped
        Log.info(f"Scheduling recognition for document {document.id}")
        try:
            return self._executor.submit(self._dispatch_claimed, document.id)
        except RuntimeError:
            self._release(document.id)
            raise

    def dispatch(self, document_id: int) -> Document | None:
        """Run recognition for one document on the calling thread.

        Returns:
            The document in its final status, or None when the document was
            already being handled elsewhere or could not be updated.
        """
        if not self._claim(document_id):
            Log.warning(f"Document {document_id} is already being dispatched, skipping")
            return None
        return self._dispatch_claimed(document_id)

    def shutdown(self, wait: bool = True) -> None:
        self._executor.shutdown(wait=wait)

    def _dispatch_claimed(self, document_id: int) -> Document | None:
        try:
            return self._run(document_id)
        except Exception as exc:
            Log.exception(f"Dispatch of document {document_id} aborted: {exc}")
            return None
        finally:
            self._release(document_id)

    def _run(self, document_id: int) -> Document | None:
        document = self._doc_repo.find_by_id(document_id)
        if document.status is not DocumentStatus.UPLOADED:
            Log.warning(
                f"Document {document_id} is {document.status.value}, expected uploaded; skipping"
            )
            return None
        if not self._doc_repo.update_status(
            document_id, DocumentStatus.UPLOADED, DocumentStatus.PROCESSING
        ):
            return None
        Log.info(f"Document {document_id} marked as processing")

        try:
            extraction = self._recognize(document)
        except PipelineError as exc:
            return self._fail(document, exc)
        return self._complete(document, extraction)

    def _recognize(self, document: Document) -> ExtractionResult:
        request = RecognitionRequest(
            document_id=document.id,
            owner_id=document.owner_id,
            storage_key=document.storage_key,
            mime_type=document.mime_type,
        )
        future = self._start_call(request)
        try:
            payload = future.result(timeout=self._timeout_seconds)
        except FutureTimeoutError as exc:
            # The call thread is abandoned; whatever it returns later is never read.
            raise TimeoutFailure(
                f"recognition service did not respond within {self._timeout_seconds:g}s"
            ) from exc
        except PipelineError:
            raise
        except Exception as exc:
            raise DispatchFailure(str(exc) or type(exc).__name__) from exc

        if not isinstance(payload, dict):
            raise ValidationFailure("Recognition response must be an object")
        return validate_and_build(
            payload,
            default_currency=self._default_currency,
            clamp_tolerance=self._clamp_tolerance,
        )

    def _start_call(self, request: RecognitionRequest) -> Future[dict[str, Any]]:
        """Run one recognition call on its own daemon thread.

        A hung call holds only its own thread, never a pool slot that queued
        documents are waiting for.
        """
        future: Future[dict[str, Any]] = Future()

        def run() -> None:
            if not future.set_running_or_notify_cancel():
                return
            try:
                future.set_result(self._recognizer.recognize(request))
            except Exception as exc:
                future.set_exception(exc)

        threading.Thread(
            target=run, name=f"recognition-{request.document_id}", daemon=True
        ).start()
        return future

    def _complete(self, document: Document, extraction: ExtractionResult) -> Document | None:
        try:
            applied = self._doc_repo.update_status(
                document.id,
                DocumentStatus.PROCESSING,
                DocumentStatus.PARSED,
                extraction=extraction,
            )
        except PipelineError as exc:
            return self._fail(document, exc)
        except Exception as exc:
            Log.exception(f"Could not store extraction for document {document.id}: {exc}")
            return self._fail(
                document, PersistenceFailure(f"could not store extraction result: {exc}")
            )
        if not applied:
            Log.warning(f"Discarding late recognition result for document {document.id}")
            return None
        Log.info(
            f"Document {document.id} parsed: {extraction.vendor_name} "
            f"{extraction.total_amount} {extraction.currency} "
            f"(confidence {extraction.confidence_score:.2f})"
        )
        self._publish(document, ProcessingEvent(document_id=document.id, result=extraction))
        return self._doc_repo.find_by_id(document.id)

    def _fail(self, document: Document, exc: PipelineError) -> Document | None:
        cause = exc.describe()
        Log.error(f"Recognition failed for document {document.id}: {cause}")
        applied = self._doc_repo.update_status(
            document.id,
            DocumentStatus.PROCESSING,
            DocumentStatus.FAILED,
            error_message=cause,
        )
        if not applied:
            return None
        self._publish(document, ProcessingEvent(document_id=document.id, error=cause))
        return self._doc_repo.find_by_id(document.id)

    def _publish(self, document: Document, event: ProcessingEvent) -> None:
        try:
            self._notifier.publish(document.owner_id, event)
        except Exception as exc:
            # Delivery is best effort; the persisted status is already final.
            Log.warning(f"Could not publish event for document {document.id}: {exc}")

    def _claim(self, document_id: int) -> bool:
        with self._lock:
            if document_id in self._in_flight:
                return False
            self._in_flight.add(document_id)
            return True

    def _release(self, document_id: int) -> None:
        with self._lock:
            self._in_flight.discard(document_id)
