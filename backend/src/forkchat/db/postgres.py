"""PostgreSQL document store.

The conversation -> branch -> message nesting is stored as three tables keyed
by (conversation_id), (conversation_id, branch_id) and
(conversation_id, branch_id, message_id), with foreign keys standing in for
physical nesting.
"""

import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Any

import asyncpg

from forkchat.db.paths import DocumentPath, parent_document, validate_path
from forkchat.db.store import DocumentStore, Record
from forkchat.errors import NotFound, StorageFault

logger = logging.getLogger(__name__)


# SQL schema for the conversation tree
SCHEMA_SQL = """
-- Conversations (one owner each)
CREATE TABLE IF NOT EXISTS conversations (
    id TEXT PRIMARY KEY,
    owner_user_id TEXT NOT NULL,
    title TEXT,
    created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
);
CREATE INDEX IF NOT EXISTS idx_conversations_owner ON conversations(owner_user_id);

-- Branches ("main" plus forks)
CREATE TABLE IF NOT EXISTS branches (
    conversation_id TEXT NOT NULL REFERENCES conversations(id),
    id TEXT NOT NULL,
    parent_branch_id TEXT,
    parent_message_id TEXT,
    created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    PRIMARY KEY (conversation_id, id),
    CHECK ((parent_branch_id IS NULL) = (parent_message_id IS NULL))
);

-- Messages (append-only per branch)
CREATE TABLE IF NOT EXISTS messages (
    conversation_id TEXT NOT NULL,
    branch_id TEXT NOT NULL,
    id TEXT NOT NULL,
    role TEXT NOT NULL CHECK (role IN ('user', 'assistant', 'system')),
    content TEXT NOT NULL,
    "timestamp" TIMESTAMPTZ NOT NULL,
    PRIMARY KEY (conversation_id, branch_id, id),
    FOREIGN KEY (conversation_id, branch_id) REFERENCES branches(conversation_id, id)
);
CREATE INDEX IF NOT EXISTS idx_messages_branch_timestamp
    ON messages(conversation_id, branch_id, "timestamp");
"""


@dataclass(frozen=True)
class _Table:
    name: str
    keys: tuple[str, ...]  # outermost first, document ID last
    columns: tuple[str, ...]

    def check_fields(self, fields: Record) -> None:
        unknown = set(fields) - set(self.columns)
        if unknown:
            raise ValueError(f"Unknown {self.name} fields: {sorted(unknown)}")

    def check_column(self, column: str) -> None:
        if column not in self.columns and column not in self.keys:
            raise ValueError(f"Unknown {self.name} column: {column}")


# Tables by nesting depth
_TABLES = {
    1: _Table(
        "conversations",
        ("id",),
        ("owner_user_id", "title", "created_at", "updated_at"),
    ),
    2: _Table(
        "branches",
        ("conversation_id", "id"),
        ("parent_branch_id", "parent_message_id", "created_at", "updated_at"),
    ),
    3: _Table(
        "messages",
        ("conversation_id", "branch_id", "id"),
        ("role", "content", "timestamp"),
    ),
}


def _q(column: str) -> str:
    return f'"{column}"'


def _resolve(path: DocumentPath) -> tuple[_Table, list[str]]:
    """Map a document or collection path to its table and key values."""
    depth = (len(path) + 1) // 2
    return _TABLES[depth], list(path[1::2])


def _where(keys: tuple[str, ...], start: int = 1) -> str:
    return " AND ".join(f"{_q(k)} = ${i}" for i, k in enumerate(keys, start=start))


class PostgresStore(DocumentStore):
    """PostgreSQL-backed DocumentStore on an asyncpg pool."""

    def __init__(self, database_url: str, min_size: int = 2, max_size: int = 10):
        self._database_url = database_url
        self._min_size = min_size
        self._max_size = max_size
        self._pool: asyncpg.Pool | None = None

    async def connect(self):
        """Create connection pool."""
        try:
            self._pool = await asyncpg.create_pool(
                self._database_url,
                min_size=self._min_size,
                max_size=self._max_size,
            )
        except (asyncpg.PostgresError, OSError) as e:
            raise StorageFault(f"Could not connect to database: {e}") from e
        logger.info("Connected to PostgreSQL")

    async def disconnect(self):
        """Close connection pool."""
        if self._pool:
            await self._pool.close()
            self._pool = None

    @asynccontextmanager
    async def connection(self):
        """Get a connection from the pool."""
        if not self._pool:
            raise StorageFault("Database not connected")
        try:
            async with self._pool.acquire() as conn:
                yield conn
        except asyncpg.ForeignKeyViolationError:
            raise
        except (asyncpg.PostgresError, asyncpg.InterfaceError, OSError) as e:
            raise StorageFault(str(e)) from e

    async def ensure_tables_exist(self):
        """Create tables if they don't exist."""
        async with self.connection() as conn:
            await conn.execute(SCHEMA_SQL)

    # ============= Document Operations =============

    async def get(self, path: DocumentPath) -> Record | None:
        validate_path(path, collection=False)
        table, key_values = _resolve(path)
        columns = ", ".join(_q(c) for c in table.columns)
        async with self.connection() as conn:
            row = await conn.fetchrow(
                f"SELECT {columns} FROM {table.name} WHERE {_where(table.keys)}",
                *key_values,
            )
        if not row:
            return None
        return dict(row)

    async def set(self, path: DocumentPath, record: Record) -> None:
        validate_path(path, collection=False)
        table, key_values = _resolve(path)
        table.check_fields(record)
        sql = self._insert_sql(table)
        updates = ", ".join(f"{_q(c)} = EXCLUDED.{_q(c)}" for c in table.columns)
        sql += f" ON CONFLICT ({', '.join(_q(k) for k in table.keys)}) DO UPDATE SET {updates}"
        await self._insert(path, sql, key_values, [record.get(c) for c in table.columns])

    async def create(self, path: DocumentPath, record: Record) -> bool:
        validate_path(path, collection=False)
        table, key_values = _resolve(path)
        table.check_fields(record)
        sql = self._insert_sql(table) + " ON CONFLICT DO NOTHING"
        status = await self._insert(path, sql, key_values, [record.get(c) for c in table.columns])
        # asyncpg status for INSERT is "INSERT <oid> <rows>"
        return status.split()[-1] == "1"

    async def update(self, path: DocumentPath, fields: Record) -> None:
        validate_path(path, collection=False)
        table, key_values = _resolve(path)
        table.check_fields(fields)
        if not fields:
            if await self.get(path) is None:
                raise NotFound(path)
            return
        params: list[Any] = list(fields.values())
        assignments = ", ".join(f"{_q(c)} = ${i}" for i, c in enumerate(fields, start=1))
        where = _where(table.keys, start=len(params) + 1)
        async with self.connection() as conn:
            status = await conn.execute(
                f"UPDATE {table.name} SET {assignments} WHERE {where}",
                *params,
                *key_values,
            )
        if status.split()[-1] == "0":
            raise NotFound(path)

    async def delete(self, path: DocumentPath) -> None:
        validate_path(path, collection=False)
        table, key_values = _resolve(path)
        try:
            async with self.connection() as conn:
                await conn.execute(
                    f"DELETE FROM {table.name} WHERE {_where(table.keys)}",
                    *key_values,
                )
        except asyncpg.ForeignKeyViolationError as e:
            raise StorageFault(f"{'/'.join(path)} still has children") from e

    async def list_children(
        self, collection: DocumentPath, where: Record | None = None
    ) -> list[tuple[str, Record]]:
        validate_path(collection, collection=True)
        table, key_values = _resolve(collection)
        filters = dict(where or {})
        for column in filters:
            table.check_column(column)
        sql, params = self._select_children(table, key_values, filters)
        async with self.connection() as conn:
            rows = await conn.fetch(sql, *params)
        return [self._split_row(row) for row in rows]

    async def list_children_ordered(
        self, collection: DocumentPath, field: str, descending: bool = False
    ) -> list[tuple[str, Record]]:
        validate_path(collection, collection=True)
        table, key_values = _resolve(collection)
        table.check_column(field)
        direction = "DESC" if descending else "ASC"
        sql, params = self._select_children(table, key_values, {})
        sql += f" ORDER BY {_q(field)} {direction}, {_q('id')} {direction}"
        async with self.connection() as conn:
            rows = await conn.fetch(sql, *params)
        return [self._split_row(row) for row in rows]

    # ============= Helpers =============

    def _insert_sql(self, table: _Table) -> str:
        names = table.keys + table.columns
        placeholders = ", ".join(f"${i}" for i in range(1, len(names) + 1))
        return f"INSERT INTO {table.name} ({', '.join(_q(n) for n in names)}) VALUES ({placeholders})"

    async def _insert(
        self, path: DocumentPath, sql: str, key_values: list[str], values: list[Any]
    ) -> str:
        try:
            async with self.connection() as conn:
                return await conn.execute(sql, *key_values, *values)
        except asyncpg.ForeignKeyViolationError as e:
            raise NotFound(parent_document(path) or path) from e

    def _select_children(
        self, table: _Table, parent_keys: list[str], filters: Record
    ) -> tuple[str, list[Any]]:
        columns = ", ".join(_q(c) for c in ("id",) + table.columns)
        conditions = [_where(table.keys[:-1])] if parent_keys else []
        params: list[Any] = list(parent_keys)
        for column, value in filters.items():
            if value is None:
                conditions.append(f"{_q(column)} IS NULL")
            else:
                params.append(value)
                conditions.append(f"{_q(column)} = ${len(params)}")
        sql = f"SELECT {columns} FROM {table.name}"
        if conditions:
            sql += " WHERE " + " AND ".join(conditions)
        return sql, params

    def _split_row(self, row: asyncpg.Record) -> tuple[str, Record]:
        record = dict(row)
        return record.pop("id"), record
