"""In-process document store for tests and local development."""

import asyncio
import copy
import logging
from collections import defaultdict

from forkchat.db.paths import DocumentPath, parent_document, validate_path
from forkchat.db.store import DocumentStore, Record
from forkchat.errors import NotFound, StorageFault

logger = logging.getLogger(__name__)


class MemoryStore(DocumentStore):
    """Dictionary-backed DocumentStore with the same referential rules as PostgreSQL."""

    def __init__(self):
        self._docs: dict[DocumentPath, Record] = {}
        # collection path -> ids in insertion order
        self._children: dict[DocumentPath, dict[str, None]] = defaultdict(dict)

    async def connect(self) -> None:
        logger.info("Using in-memory document store")

    async def get(self, path: DocumentPath) -> Record | None:
        validate_path(path, collection=False)
        await asyncio.sleep(0)
        record = self._docs.get(path)
        return copy.deepcopy(record) if record is not None else None

    async def set(self, path: DocumentPath, record: Record) -> None:
        validate_path(path, collection=False)
        await asyncio.sleep(0)
        self._check_parent(path)
        self._write(path, record)

    async def create(self, path: DocumentPath, record: Record) -> bool:
        validate_path(path, collection=False)
        await asyncio.sleep(0)
        if path in self._docs:
            return False
        self._check_parent(path)
        self._write(path, record)
        return True

    async def update(self, path: DocumentPath, fields: Record) -> None:
        validate_path(path, collection=False)
        await asyncio.sleep(0)
        if path not in self._docs:
            raise NotFound(path)
        self._docs[path].update(copy.deepcopy(fields))

    async def delete(self, path: DocumentPath) -> None:
        validate_path(path, collection=False)
        await asyncio.sleep(0)
        if path not in self._docs:
            return
        for collection, ids in self._children.items():
            if ids and collection[:-1] == path:
                raise StorageFault(f"{'/'.join(path)} still has children in {collection[-1]}")
        del self._docs[path]
        siblings = self._children[path[:-1]]
        siblings.pop(path[-1], None)
        if not siblings:
            del self._children[path[:-1]]

    async def list_children(
        self, collection: DocumentPath, where: Record | None = None
    ) -> list[tuple[str, Record]]:
        validate_path(collection, collection=True)
        await asyncio.sleep(0)
        results = []
        for doc_id in self._children.get(collection, {}):
            record = self._docs[collection + (doc_id,)]
            if where and any(record.get(k) != v for k, v in where.items()):
                continue
            results.append((doc_id, copy.deepcopy(record)))
        return results

    async def list_children_ordered(
        self, collection: DocumentPath, field: str, descending: bool = False
    ) -> list[tuple[str, Record]]:
        children = await self.list_children(collection)
        return sorted(children, key=lambda item: (item[1][field], item[0]), reverse=descending)

    def _check_parent(self, path: DocumentPath) -> None:
        parent = parent_document(path)
        if parent is not None and parent not in self._docs:
            raise NotFound(parent)

    def _write(self, path: DocumentPath, record: Record) -> None:
        self._docs[path] = copy.deepcopy(record)
        self._children[path[:-1]][path[-1]] = None
