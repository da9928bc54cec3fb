from fieldreport.config.settings import Settings
from fieldreport.store.base import BaseDocumentStore
from fieldreport.store.memory_store import InMemoryDocumentStore
from fieldreport.store.postgres_store import PostgresDocumentStore


class DocumentStoreFactory:
    """Creates the local document store engine named in settings."""

    ENGINES: dict[str, type[BaseDocumentStore]] = {
        "postgres": PostgresDocumentStore,
        "memory": InMemoryDocumentStore,
    }

    @classmethod
    def create(cls, settings: Settings) -> BaseDocumentStore:
        engine = settings.store_engine.lower()
        store_cls = cls.ENGINES.get(engine)
        if store_cls is None:
            raise ValueError(
                f"Unknown store engine '{engine}'. Choose from: {list(cls.ENGINES)}"
            )
        return store_cls()
