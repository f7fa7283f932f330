from functools import partial

from app.config.settings import Settings
from app.database.connection import open_listen_connection
from app.notify.base import BaseNotifier
from app.notify.memory_notifier import InMemoryNotifier
from app.notify.postgres_notifier import PostgresNotifier


class NotifierFactory:
    """Creates the realtime notifier configured in settings."""

    @classmethod
    def create(cls, settings: Settings) -> BaseNotifier:
        backend = settings.notifier_backend.lower()
        if backend == "memory":
            return InMemoryNotifier()
        if backend == "postgres":
            return PostgresNotifier(partial(open_listen_connection, settings))
        raise ValueError(
            f"Unknown notifier backend '{backend}'. Choose from: ['memory', 'postgres']"
        )
