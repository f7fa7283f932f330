from abc import ABC, abstractmethod

from app.documents.models import ProcessingEvent


class Subscription(ABC):
    """One subscriber's view of an owner channel.

    Events published before the subscription was opened are never delivered.
    """

    def __init__(self, owner_id: str) -> None:
        self.owner_id = owner_id
        self.closed = False

    @abstractmethod
    def get(self, timeout: float | None = None) -> ProcessingEvent | None:
        """Next event, or None if none arrives within timeout seconds."""

    @abstractmethod
    def close(self) -> None:
        """Stop receiving events."""

    def drain(self) -> list[ProcessingEvent]:
        """All events already delivered, without waiting."""
        events: list[ProcessingEvent] = []
        while True:
            event = self.get(timeout=0)
            if event is None:
                return events
            events.append(event)


class BaseNotifier(ABC):
    """Best-effort publish/subscribe of processing events, one channel per owner.

    No persistence and no replay. Every open subscription of an owner gets
    every event; events about one document arrive in publish order.
    """

    @abstractmethod
    def publish(self, owner_id: str, event: ProcessingEvent) -> None:
        """Broadcast event to the owner's current subscribers."""

    @abstractmethod
    def subscribe(self, owner_id: str) -> Subscription:
        """Open a subscription to the owner's channel."""

    def close(self) -> None:
        """Release backend resources."""
