import threading
from collections.abc import Callable, Iterable
from dataclasses import replace

from app.documents.models import Document, DocumentStatus, ProcessingEvent
from app.documents.state_machine import stage
from app.logging.logger import Log

# Read caches outside this pipeline that depend on the ledger.
DOWNSTREAM_CACHES: tuple[str, ...] = ("ledger", "budget_spend", "summary")

InvalidationListener = Callable[[str, str], None]


class ReconciliationCache:
    """A client session's local view of its documents.

    Never authoritative: load() replaces everything with repository state,
    events only move entries forward, and removals stay local.
    """

    def __init__(
        self,
        owner_id: str,
        invalidation_listeners: Iterable[InvalidationListener] = (),
    ) -> None:
        self.owner_id = owner_id
        self._entries: dict[int, Document] = {}
        self._listeners = list(invalidation_listeners)
        self._lock = threading.RLock()

    def load(self, documents: Iterable[Document]) -> None:
        """Replace all entries with an authoritative fetch."""
        with self._lock:
            self._entries = {d.id: d for d in documents if d.owner_id == self.owner_id}

    def insert_optimistic(self, document: Document) -> None:
        """Show a freshly uploaded document before any processing news."""
        with self._lock:
            current = self._entries.get(document.id)
            if current is None or stage(document.status) > stage(current.status):
                self._entries[document.id] = document

    def apply_event(self, event: ProcessingEvent) -> bool:
        """Merge a processing event into its entry.

        Returns:
            True if the entry changed. Unknown documents and events that
            would move an entry backwards (late or duplicate) are ignored.
        """
        with self._lock:
            current = self._entries.get(event.document_id)
            if current is None:
                Log.debug(f"Ignoring event for untracked document {event.document_id}")
                return False
            if event.result is not None:
                updated = replace(
                    current,
                    status=DocumentStatus.PARSED,
                    extraction=event.result,
                    error_message=None,
                )
            else:
                updated = replace(current, status=DocumentStatus.FAILED, error_message=event.error)
            if stage(updated.status) <= stage(current.status):
                Log.debug(
                    f"Ignoring stale event for document {event.document_id} "
                    f"({current.status.value})"
                )
                return False
            self._entries[event.document_id] = updated
            return True

    def upsert(self, document: Document) -> None:
        """Overwrite one entry with repository state."""
        with self._lock:
            self._entries[document.id] = document

    def mark_materialized(self, document: Document) -> None:
        """Record a confirmed document and signal downstream caches."""
        with self._lock:
            self._entries[document.id] = document
        for cache_name in DOWNSTREAM_CACHES:
            for listener in self._listeners:
                try:
                    listener(cache_name, self.owner_id)
                except Exception as exc:
                    Log.warning(f"Invalidation listener failed for {cache_name}: {exc}")

    def remove(self, document_id: int) -> None:
        """Dismiss an entry locally. Server state is untouched."""
        with self._lock:
            self._entries.pop(document_id, None)

    def get(self, document_id: int) -> Document | None:
        with self._lock:
            return self._entries.get(document_id)

    def snapshot(self) -> list[Document]:
        """Entries, newest first."""
        with self._lock:
            return sorted(self._entries.values(), key=lambda d: d.id, reverse=True)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __contains__(self, document_id: object) -> bool:
        with self._lock:
            return document_id in self._entries

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
