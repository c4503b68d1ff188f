"""Domain errors surfaced by the conversation store."""


class ForkchatError(Exception):
    """Base class for forkchat errors."""


class OwnershipViolation(ForkchatError):
    """The requesting user does not own the target conversation."""

    def __init__(self, conversation_id: str, user_id: str):
        self.conversation_id = conversation_id
        self.user_id = user_id
        super().__init__(f"User {user_id} does not own conversation {conversation_id}")


class NotFound(ForkchatError):
    """A document or collection is absent."""

    def __init__(self, path: tuple[str, ...]):
        self.path = path
        super().__init__(f"Not found: {'/'.join(path)}")


class MessageNotFound(ForkchatError):
    """A fork was requested at a message that is not in the source branch."""

    def __init__(self, message_id: str, branch_id: str):
        self.message_id = message_id
        self.branch_id = branch_id
        super().__init__(f"Message {message_id} not found in branch {branch_id}")


class StorageFault(ForkchatError):
    """The document store failed for infrastructure reasons."""


class InvalidCredential(ForkchatError):
    """A bearer credential could not be verified."""


class GenerationError(ForkchatError):
    """The reply or title generator failed."""
