"""Document store interface consumed by the conversation services."""

from abc import ABC, abstractmethod
from typing import Any

from forkchat.db.paths import DocumentPath

Record = dict[str, Any]


class DocumentStore(ABC):
    """Async access to hierarchically nested records.

    Implementations provide per-document atomic reads and writes and no
    cross-document transactions. Infrastructure failures are raised as
    ``StorageFault``. Writing a child under a missing parent document raises
    ``NotFound``, and a document that still has children cannot be deleted.
    """

    async def connect(self) -> None:
        """Open the underlying connection, if any."""

    async def disconnect(self) -> None:
        """Release the underlying connection, if any."""

    async def ensure_tables_exist(self) -> None:
        """Create backing storage if it does not exist yet."""

    @abstractmethod
    async def get(self, path: DocumentPath) -> Record | None:
        """Return the record at path, or None when absent."""

    @abstractmethod
    async def set(self, path: DocumentPath, record: Record) -> None:
        """Write the full record at path, replacing any existing one."""

    @abstractmethod
    async def create(self, path: DocumentPath, record: Record) -> bool:
        """Write record only if path is absent. Returns True if it was written."""

    @abstractmethod
    async def update(self, path: DocumentPath, fields: Record) -> None:
        """Merge fields into the record at path. Raises NotFound when absent."""

    @abstractmethod
    async def delete(self, path: DocumentPath) -> None:
        """Delete the record at path. Deleting an absent record is a no-op."""

    @abstractmethod
    async def list_children(
        self, collection: DocumentPath, where: Record | None = None
    ) -> list[tuple[str, Record]]:
        """List (id, record) pairs in a collection, optionally filtered by equality."""

    @abstractmethod
    async def list_children_ordered(
        self, collection: DocumentPath, field: str, descending: bool = False
    ) -> list[tuple[str, Record]]:
        """List (id, record) pairs in a collection ordered by field, ties broken by id."""
