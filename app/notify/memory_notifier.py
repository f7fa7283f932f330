import queue
import threading

from app.documents.models import ProcessingEvent
from app.logging.logger import Log
from app.notify.base import BaseNotifier, Subscription


class QueueSubscription(Subscription):
    def __init__(self, owner_id: str, notifier: "InMemoryNotifier") -> None:
        super().__init__(owner_id)
        self._queue: queue.Queue[ProcessingEvent] = queue.Queue()
        self._notifier = notifier

    def deliver(self, event: ProcessingEvent) -> None:
        self._queue.put(event)

    def get(self, timeout: float | None = None) -> ProcessingEvent | None:
        if self.closed:
            return None
        try:
            if timeout == 0:
                return self._queue.get_nowait()
            return self._queue.get(timeout=timeout)
        except queue.Empty:
            return None

    def close(self) -> None:
        if not self.closed:
            self.closed = True
            self._notifier.unsubscribe(self)


class InMemoryNotifier(BaseNotifier):
    """Process-local channels backed by one FIFO queue per subscriber."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._subscribers: dict[str, list[QueueSubscription]] = {}

    def publish(self, owner_id: str, event: ProcessingEvent) -> None:
        # Delivering under the lock keeps every subscriber's order identical.
        with self._lock:
            subscribers = list(self._subscribers.get(owner_id, ()))
            for subscription in subscribers:
                subscription.deliver(event)
        Log.debug(
            f"Published event for document {event.document_id} "
            f"to {len(subscribers)} subscriber(s) of owner {owner_id}"
        )

    def subscribe(self, owner_id: str) -> Subscription:
        subscription = QueueSubscription(owner_id, self)
        with self._lock:
            self._subscribers.setdefault(owner_id, []).append(subscription)
        return subscription

    def unsubscribe(self, subscription: QueueSubscription) -> None:
        with self._lock:
            subscribers = self._subscribers.get(subscription.owner_id, [])
            if subscription in subscribers:
                subscribers.remove(subscription)
            if not subscribers:
                self._subscribers.pop(subscription.owner_id, None)

    def subscriber_count(self, owner_id: str) -> int:
        with self._lock:
            return len(self._subscribers.get(owner_id, ()))
