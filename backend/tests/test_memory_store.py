"""Unit tests for the in-memory document store and path helpers."""

import pytest

from forkchat.db import MemoryStore
from forkchat.db.paths import (
    branch_path,
    branches_collection,
    conversation_path,
    conversations_collection,
    message_path,
    messages_collection,
    parent_document,
    validate_path,
)
from forkchat.errors import NotFound, StorageFault


class TestPaths:
    """Test hierarchical path helpers."""

    def test_message_path_shape(self):
        """Test that a message path alternates collections and IDs."""
        assert message_path("c1", "main", "m1") == (
            "conversations", "c1", "branches", "main", "messages", "m1",
        )

    def test_parent_document(self):
        """Test parent lookup for nested documents."""
        assert parent_document(message_path("c1", "main", "m1")) == branch_path("c1", "main")
        assert parent_document(branch_path("c1", "main")) == conversation_path("c1")
        assert parent_document(conversation_path("c1")) is None

    def test_validate_rejects_wrong_kind(self):
        """Test that document and collection paths are not interchangeable."""
        with pytest.raises(ValueError, match="Expected a collection path"):
            validate_path(conversation_path("c1"), collection=True)
        with pytest.raises(ValueError, match="Expected a document path"):
            validate_path(branches_collection("c1"), collection=False)

    def test_validate_rejects_unknown_collection(self):
        """Test that only the conversation hierarchy is accepted."""
        with pytest.raises(ValueError, match="Unknown collection"):
            validate_path(("conversations", "c1", "threads", "t1"), collection=False)

    def test_validate_rejects_empty_id(self):
        """Test that empty document IDs are rejected."""
        with pytest.raises(ValueError, match="Empty document ID"):
            validate_path(conversation_path(""), collection=False)


class TestMemoryStore:
    """Test MemoryStore document operations."""

    @pytest.mark.asyncio
    async def test_get_missing_returns_none(self):
        """Test that reading an absent document returns None."""
        store = MemoryStore()
        assert await store.get(conversation_path("nope")) is None

    @pytest.mark.asyncio
    async def test_set_and_get_copy(self):
        """Test that stored records are isolated from caller mutation."""
        store = MemoryStore()
        record = {"owner_user_id": "u1", "title": None}
        await store.set(conversation_path("c1"), record)
        record["owner_user_id"] = "u2"

        fetched = await store.get(conversation_path("c1"))
        assert fetched == {"owner_user_id": "u1", "title": None}
        fetched["title"] = "changed"
        assert (await store.get(conversation_path("c1")))["title"] is None

    @pytest.mark.asyncio
    async def test_create_only_if_absent(self):
        """Test that create does not overwrite an existing document."""
        store = MemoryStore()
        assert await store.create(conversation_path("c1"), {"owner_user_id": "u1"})
        assert not await store.create(conversation_path("c1"), {"owner_user_id": "u2"})
        assert (await store.get(conversation_path("c1")))["owner_user_id"] == "u1"

    @pytest.mark.asyncio
    async def test_update_merges_fields(self):
        """Test partial updates."""
        store = MemoryStore()
        await store.set(conversation_path("c1"), {"owner_user_id": "u1", "title": None})
        await store.update(conversation_path("c1"), {"title": "Hello"})
        assert await store.get(conversation_path("c1")) == {"owner_user_id": "u1", "title": "Hello"}

    @pytest.mark.asyncio
    async def test_update_missing_raises_not_found(self):
        """Test that updating an absent document raises NotFound."""
        store = MemoryStore()
        with pytest.raises(NotFound):
            await store.update(conversation_path("c1"), {"title": "x"})

    @pytest.mark.asyncio
    async def test_child_requires_parent(self):
        """Test referential check on writes under a missing parent."""
        store = MemoryStore()
        with pytest.raises(NotFound):
            await store.set(branch_path("c1", "main"), {})
        with pytest.raises(NotFound):
            await store.create(branch_path("c1", "main"), {})

    @pytest.mark.asyncio
    async def test_delete_is_idempotent(self):
        """Test that deleting twice does not fail."""
        store = MemoryStore()
        await store.set(conversation_path("c1"), {"owner_user_id": "u1"})
        await store.delete(conversation_path("c1"))
        await store.delete(conversation_path("c1"))
        assert await store.get(conversation_path("c1")) is None
        assert await store.list_children(conversations_collection()) == []

    @pytest.mark.asyncio
    async def test_delete_with_children_faults(self):
        """Test that a parent cannot be deleted before its children."""
        store = MemoryStore()
        await store.set(conversation_path("c1"), {"owner_user_id": "u1"})
        await store.set(branch_path("c1", "main"), {})
        with pytest.raises(StorageFault, match="still has children"):
            await store.delete(conversation_path("c1"))

        await store.delete(branch_path("c1", "main"))
        await store.delete(conversation_path("c1"))
        assert await store.get(conversation_path("c1")) is None

    @pytest.mark.asyncio
    async def test_delete_releases_empty_collections(self):
        """Test that create/delete cycles do not leave empty collections behind."""
        store = MemoryStore()
        for cid in ["c1", "c2", "c3"]:
            await store.set(conversation_path(cid), {"owner_user_id": "u1"})
            await store.set(branch_path(cid, "main"), {})
            await store.set(message_path(cid, "main", "m1"), {"content": "hi"})
            await store.delete(message_path(cid, "main", "m1"))
            await store.delete(branch_path(cid, "main"))
            await store.delete(conversation_path(cid))

        assert store._children == {}
        assert await store.list_children(messages_collection("c1", "main")) == []

    @pytest.mark.asyncio
    async def test_list_children_with_filter(self):
        """Test equality filtering of collection listings."""
        store = MemoryStore()
        await store.set(conversation_path("c1"), {"owner_user_id": "u1"})
        await store.set(conversation_path("c2"), {"owner_user_id": "u2"})
        await store.set(conversation_path("c3"), {"owner_user_id": "u1"})

        owned = await store.list_children(conversations_collection(), where={"owner_user_id": "u1"})
        assert [cid for cid, _ in owned] == ["c1", "c3"]

    @pytest.mark.asyncio
    async def test_list_children_of_missing_collection_is_empty(self):
        """Test that an unwritten collection lists as empty."""
        store = MemoryStore()
        assert await store.list_children(messages_collection("c1", "main")) == []

    @pytest.mark.asyncio
    async def test_list_children_ordered(self):
        """Test ordering by a field, with ties broken by ID."""
        store = MemoryStore()
        await store.set(conversation_path("c1"), {"owner_user_id": "u1"})
        await store.set(branch_path("c1", "main"), {})
        collection = messages_collection("c1", "main")
        await store.set(message_path("c1", "main", "b"), {"timestamp": 2})
        await store.set(message_path("c1", "main", "c"), {"timestamp": 1})
        await store.set(message_path("c1", "main", "a"), {"timestamp": 2})

        ascending = await store.list_children_ordered(collection, "timestamp")
        assert [mid for mid, _ in ascending] == ["c", "a", "b"]

        descending = await store.list_children_ordered(collection, "timestamp", descending=True)
        assert [mid for mid, _ in descending] == ["b", "a", "c"]
