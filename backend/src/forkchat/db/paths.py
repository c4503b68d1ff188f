"""Hierarchical document paths.

A path is a tuple alternating collection names and document IDs:

    ("conversations",)                                  collection
    ("conversations", cid)                              conversation document
    ("conversations", cid, "branches")                  collection
    ("conversations", cid, "branches", bid)             branch document
    ("conversations", cid, "branches", bid, "messages") collection
    ("conversations", cid, "branches", bid, "messages", mid)

Odd-length paths name collections, even-length paths name documents.
"""

DocumentPath = tuple[str, ...]

CONVERSATIONS = "conversations"
BRANCHES = "branches"
MESSAGES = "messages"

# Collection names, by nesting depth
HIERARCHY = (CONVERSATIONS, BRANCHES, MESSAGES)


def conversations_collection() -> DocumentPath:
    return (CONVERSATIONS,)


def conversation_path(conversation_id: str) -> DocumentPath:
    return (CONVERSATIONS, conversation_id)


def branches_collection(conversation_id: str) -> DocumentPath:
    return (CONVERSATIONS, conversation_id, BRANCHES)


def branch_path(conversation_id: str, branch_id: str) -> DocumentPath:
    return (CONVERSATIONS, conversation_id, BRANCHES, branch_id)


def messages_collection(conversation_id: str, branch_id: str) -> DocumentPath:
    return (CONVERSATIONS, conversation_id, BRANCHES, branch_id, MESSAGES)


def message_path(conversation_id: str, branch_id: str, message_id: str) -> DocumentPath:
    return (CONVERSATIONS, conversation_id, BRANCHES, branch_id, MESSAGES, message_id)


def is_collection(path: DocumentPath) -> bool:
    return len(path) % 2 == 1


def validate_path(path: DocumentPath, *, collection: bool) -> None:
    """Raise ValueError unless path is a well-formed collection or document path."""
    if not path or len(path) > 2 * len(HIERARCHY):
        raise ValueError(f"Invalid path depth: {path!r}")
    if is_collection(path) != collection:
        kind = "collection" if collection else "document"
        raise ValueError(f"Expected a {kind} path, got {path!r}")
    for depth, name in enumerate(path[0::2]):
        if name != HIERARCHY[depth]:
            raise ValueError(f"Unknown collection {name!r} in {path!r}")
    for doc_id in path[1::2]:
        if not doc_id:
            raise ValueError(f"Empty document ID in {path!r}")


def parent_document(path: DocumentPath) -> DocumentPath | None:
    """The document that owns a document's collection, or None at the root."""
    return path[:-2] if len(path) > 2 else None
