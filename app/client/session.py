from collections.abc import Iterable
from types import TracebackType

from app.client.cache import InvalidationListener, ReconciliationCache
from app.database.repositories.base import BaseDocumentRepository
from app.documents.exceptions import InvalidState
from app.documents.models import Document, MaterializationResult, TransactionOverrides
from app.logging.logger import Log
from app.materialize.materializer import TransactionMaterializer
from app.notify.base import BaseNotifier, Subscription


class ClientSession:
    """One live client: a subscription, a local cache and the confirm action.

    Lifecycle: open() subscribes first and then fetches, so no event can fall
    between the two; close() drops the subscription and the cache.
    """

    def __init__(
        self,
        owner_id: str,
        *,
        doc_repo: BaseDocumentRepository,
        notifier: BaseNotifier,
        materializer: TransactionMaterializer,
        invalidation_listeners: Iterable[InvalidationListener] = (),
    ) -> None:
        self.owner_id = owner_id
        self._doc_repo = doc_repo
        self._notifier = notifier
        self._materializer = materializer
        self.cache = ReconciliationCache(owner_id, invalidation_listeners)
        self._subscription: Subscription | None = None

    def open(self) -> "ClientSession":
        if self._subscription is None:
            self._subscription = self._notifier.subscribe(self.owner_id)
            self.refresh()
            Log.info(f"Session opened for owner {self.owner_id}: {len(self.cache)} documents")
        return self

    def close(self) -> None:
        if self._subscription is not None:
            self._subscription.close()
            self._subscription = None
        self.cache.clear()

    def __enter__(self) -> "ClientSession":
        return self.open()

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()

    def refresh(self) -> None:
        """Reload every entry from the repository."""
        self.cache.load(self._doc_repo.list_by_owner(self.owner_id))

    def record_upload(self, document: Document) -> None:
        self.cache.insert_optimistic(document)

    def pump(self, timeout: float = 0.0) -> int:
        """Apply pending events; wait up to timeout for the first one.

        Returns:
            Number of entries that changed.
        """
        if self._subscription is None:
            raise RuntimeError("Session is not open")
        changed = 0
        event = self._subscription.get(timeout=timeout)
        while event is not None:
            if self.cache.apply_event(event):
                changed += 1
            event = self._subscription.get(timeout=0)
        return changed

    def confirm(
        self,
        document_id: int,
        overrides: TransactionOverrides | None = None,
    ) -> MaterializationResult:
        """Materialize a document; the repository decides, the cache follows.

        Raises:
            InvalidState: the document was not confirmable. The cache entry
                is refreshed from the repository before re-raising.
        """
        try:
            result = self._materializer.confirm(document_id, overrides)
        except InvalidState:
            if document_id in self.cache:
                self.cache.upsert(self._doc_repo.find_by_id(document_id))
            raise
        self.cache.mark_materialized(result.document)
        return result

    def dismiss(self, document_id: int) -> None:
        self.cache.remove(document_id)
