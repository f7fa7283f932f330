from collections.abc import Iterable
from dataclasses import dataclass

from app.client.cache import InvalidationListener
from app.client.session import ClientSession
from app.config.settings import Settings
from app.database.repositories.base import BaseDocumentRepository
from app.database.repositories.factory import DocumentRepositoryFactory
from app.database.repositories.reference_data_repository import ReferenceDataRepository
from app.dispatch.dispatcher import RecognitionDispatcher
from app.materialize.materializer import TransactionMaterializer
from app.notify.base import BaseNotifier
from app.notify.factory import NotifierFactory
from app.recognition.base import BaseRecognitionClient
from app.recognition.factory import RecognizerFactory
from app.storage.base import BaseBlobStore
from app.storage.factory import BlobStoreFactory
from app.upload.coordinator import UploadCoordinator
from app.upload.models import UploadPolicy


@dataclass
class Pipeline:
    """Wired components of the document -> transaction pipeline."""

    settings: Settings
    doc_repo: BaseDocumentRepository
    blob_store: BaseBlobStore
    notifier: BaseNotifier
    dispatcher: RecognitionDispatcher
    coordinator: UploadCoordinator
    materializer: TransactionMaterializer

    def open_session(
        self,
        owner_id: str,
        invalidation_listeners: Iterable[InvalidationListener] = (),
    ) -> ClientSession:
        return ClientSession(
            owner_id,
            doc_repo=self.doc_repo,
            notifier=self.notifier,
            materializer=self.materializer,
            invalidation_listeners=invalidation_listeners,
        ).open()

    def close(self) -> None:
        self.dispatcher.shutdown(wait=True)
        self.notifier.close()


def build_pipeline(
    settings: Settings,
    *,
    doc_repo: BaseDocumentRepository | None = None,
    blob_store: BaseBlobStore | None = None,
    notifier: BaseNotifier | None = None,
    recognizer: BaseRecognitionClient | None = None,
) -> Pipeline:
    """Build the pipeline from settings; any component may be passed in instead."""
    doc_repo = doc_repo or DocumentRepositoryFactory.create(settings)
    blob_store = blob_store or BlobStoreFactory.create(settings)
    notifier = notifier or NotifierFactory.create(settings)
    if recognizer is None:
        reference_loader = (
            ReferenceDataRepository().load
            if settings.document_store.lower() == "postgres"
            else None
        )
        recognizer = RecognizerFactory.create(
            settings,
            blob_store=blob_store,
            reference_data_loader=reference_loader,
        )
    dispatcher = RecognitionDispatcher(
        doc_repo=doc_repo,
        recognizer=recognizer,
        notifier=notifier,
        timeout_seconds=settings.recognition_timeout_seconds,
        default_currency=settings.default_currency,
        clamp_tolerance=settings.confidence_clamp_tolerance,
        max_workers=settings.dispatcher_max_workers,
    )
    coordinator = UploadCoordinator(
        blob_store=blob_store,
        doc_repo=doc_repo,
        dispatcher=dispatcher,
        policy=UploadPolicy(max_file_size_bytes=settings.upload_max_file_size_bytes),
    )
    return Pipeline(
        settings=settings,
        doc_repo=doc_repo,
        blob_store=blob_store,
        notifier=notifier,
        dispatcher=dispatcher,
        coordinator=coordinator,
        materializer=TransactionMaterializer(doc_repo),
    )
