"""Document store adapters."""

from forkchat.config import Settings
from forkchat.db.memory import MemoryStore
from forkchat.db.postgres import PostgresStore
from forkchat.db.store import DocumentStore, Record


def create_store(settings: Settings) -> DocumentStore:
    """Build the configured store. Callers own its connect/disconnect lifecycle."""
    if settings.storage_backend == "memory":
        return MemoryStore()
    return PostgresStore(
        settings.database_url,
        min_size=settings.db_pool_min_size,
        max_size=settings.db_pool_max_size,
    )


__all__ = ["DocumentStore", "MemoryStore", "PostgresStore", "Record", "create_store"]
