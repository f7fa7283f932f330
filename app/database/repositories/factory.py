from app.config.settings import Settings
from app.database.repositories.base import BaseDocumentRepository
from app.database.repositories.document_repository import PostgresDocumentRepository
from app.database.repositories.memory_repository import InMemoryDocumentRepository


class DocumentRepositoryFactory:
    """Creates the document repository configured in settings."""

    ADAPTERS: dict[str, type[BaseDocumentRepository]] = {
        "postgres": PostgresDocumentRepository,
        "memory": InMemoryDocumentRepository,
    }

    @classmethod
    def create(cls, settings: Settings) -> BaseDocumentRepository:
        store = settings.document_store.lower()
        adapter_cls = cls.ADAPTERS.get(store)
        if adapter_cls is None:
            raise ValueError(
                f"Unknown document store '{store}'. Choose from: {list(cls.ADAPTERS)}"
            )
        return adapter_cls()
