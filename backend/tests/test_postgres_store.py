"""Unit tests for the PostgreSQL store's path-to-SQL mapping (no database needed)."""

import pytest

from forkchat.db.paths import (
    branch_path,
    branches_collection,
    conversation_path,
    conversations_collection,
    message_path,
    messages_collection,
)
from forkchat.db.postgres import PostgresStore, _resolve, _where
from forkchat.errors import StorageFault


class TestPathMapping:
    """Test mapping hierarchical paths onto tables."""

    def test_resolve_documents(self):
        """Test that documents map to their table and full key."""
        table, keys = _resolve(conversation_path("c1"))
        assert table.name == "conversations"
        assert keys == ["c1"]

        table, keys = _resolve(branch_path("c1", "main"))
        assert table.name == "branches"
        assert keys == ["c1", "main"]

        table, keys = _resolve(message_path("c1", "main", "m1"))
        assert table.name == "messages"
        assert keys == ["c1", "main", "m1"]

    def test_resolve_collections(self):
        """Test that collections map to their table and parent key."""
        table, keys = _resolve(conversations_collection())
        assert table.name == "conversations"
        assert keys == []

        table, keys = _resolve(branches_collection("c1"))
        assert table.name == "branches"
        assert keys == ["c1"]

        table, keys = _resolve(messages_collection("c1", "main"))
        assert table.name == "messages"
        assert keys == ["c1", "main"]

    def test_where_numbering(self):
        """Test placeholder numbering for key conditions."""
        assert _where(("conversation_id", "id")) == '"conversation_id" = $1 AND "id" = $2'
        assert _where(("id",), start=3) == '"id" = $3'


class TestSqlBuilding:
    """Test generated statements."""

    def test_insert_sql(self):
        """Test INSERT column order: keys first, then data columns."""
        store = PostgresStore("postgresql://localhost/forkchat")
        table, _ = _resolve(message_path("c1", "main", "m1"))
        sql = store._insert_sql(table)
        assert sql == (
            'INSERT INTO messages ("conversation_id", "branch_id", "id", "role", "content", "timestamp") '
            "VALUES ($1, $2, $3, $4, $5, $6)"
        )

    def test_select_children_with_filter(self):
        """Test child listing with parent key and equality filters."""
        store = PostgresStore("postgresql://localhost/forkchat")
        table, keys = _resolve(branches_collection("c1"))
        sql, params = store._select_children(table, keys, {"parent_branch_id": "main"})
        assert sql == (
            'SELECT "id", "parent_branch_id", "parent_message_id", "created_at", "updated_at" '
            'FROM branches WHERE "conversation_id" = $1 AND "parent_branch_id" = $2'
        )
        assert params == ["c1", "main"]

    def test_select_children_null_filter(self):
        """Test that None filters become IS NULL."""
        store = PostgresStore("postgresql://localhost/forkchat")
        table, keys = _resolve(conversations_collection())
        sql, params = store._select_children(table, keys, {"title": None})
        assert sql.endswith('FROM conversations WHERE "title" IS NULL')
        assert params == []

    def test_unknown_fields_rejected(self):
        """Test that only known columns can be written."""
        table, _ = _resolve(conversation_path("c1"))
        with pytest.raises(ValueError, match="Unknown conversations fields"):
            table.check_fields({"owner_user_id": "u1", "bogus": 1})


class TestDisconnected:
    """Test behavior before connect()."""

    @pytest.mark.asyncio
    async def test_operations_raise_storage_fault(self):
        """Test that an unconnected store reports a storage fault."""
        store = PostgresStore("postgresql://localhost/forkchat")
        with pytest.raises(StorageFault, match="not connected"):
            await store.get(conversation_path("c1"))
        with pytest.raises(StorageFault):
            await store.list_children(branches_collection("c1"))

    @pytest.mark.asyncio
    async def test_disconnect_without_pool(self):
        """Test that disconnecting an unconnected store is harmless."""
        store = PostgresStore("postgresql://localhost/forkchat")
        await store.disconnect()
