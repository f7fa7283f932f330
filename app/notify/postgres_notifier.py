"""Processing events over PostgreSQL LISTEN/NOTIFY."""

import hashlib
import json
from collections.abc import Callable
from decimal import InvalidOperation
from typing import Any

import psycopg
from psycopg import sql

from app.database.connection import get_connection
from app.documents.models import ProcessingEvent
from app.logging.logger import Log
from app.notify.base import BaseNotifier, Subscription


def channel_name(owner_id: str) -> str:
    """Per-owner channel; hashed to stay within the 63-byte identifier limit."""
    digest = hashlib.sha256(owner_id.encode("utf-8")).hexdigest()[:32]
    return f"documents_{digest}"


class PostgresSubscription(Subscription):
    def __init__(self, owner_id: str, conn: psycopg.Connection[Any]) -> None:
        super().__init__(owner_id)
        self._conn = conn
        self._conn.execute(sql.SQL("LISTEN {}").format(sql.Identifier(channel_name(owner_id))))

    def get(self, timeout: float | None = None) -> ProcessingEvent | None:
        if self.closed:
            return None
        for notify in self._conn.notifies(timeout=timeout, stop_after=1):
            try:
                return ProcessingEvent.from_payload(json.loads(notify.payload))
            except (ValueError, KeyError, TypeError, AttributeError, InvalidOperation) as exc:
                Log.warning(f"Dropping malformed notification on {notify.channel}: {exc}")
                return None
        return None

    def close(self) -> None:
        if not self.closed:
            self.closed = True
            self._conn.close()


class PostgresNotifier(BaseNotifier):
    """Publishes with pg_notify; each subscription holds its own connection."""

    def __init__(self, connect: Callable[[], psycopg.Connection[Any]]) -> None:
        self._connect = connect

    def publish(self, owner_id: str, event: ProcessingEvent) -> None:
        payload = json.dumps(event.to_payload())
        with get_connection() as conn:
            conn.execute("SELECT pg_notify(%s, %s)", (channel_name(owner_id), payload))
            conn.commit()
        Log.debug(f"Notified {channel_name(owner_id)} about document {event.document_id}")

    def subscribe(self, owner_id: str) -> Subscription:
        return PostgresSubscription(owner_id, self._connect())
