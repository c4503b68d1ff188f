"""Bearer-token identity for the routing layer."""

import logging
import secrets
from dataclasses import dataclass
from typing import Protocol

from forkchat.errors import InvalidCredential

logger = logging.getLogger(__name__)

BEARER_PREFIX = "Bearer "


@dataclass(frozen=True)
class Identity:
    """An authenticated user."""

    user_id: str
    email: str | None = None


class IdentityProvider(Protocol):
    async def verify(self, token: str) -> Identity:
        """Return the identity behind token or raise InvalidCredential."""
        ...


class StaticTokenIdentityProvider:
    """Verifies tokens against a fixed token -> user ID table."""

    def __init__(self, tokens: dict[str, str]):
        self._tokens = dict(tokens)

    async def verify(self, token: str) -> Identity:
        for known, user_id in self._tokens.items():
            if secrets.compare_digest(known.encode(), token.encode()):
                return Identity(user_id=user_id)
        raise InvalidCredential("Unknown token")


def parse_bearer(authorization: str | None) -> str:
    """Extract the token from an Authorization header."""
    if not authorization or not authorization.startswith(BEARER_PREFIX):
        raise InvalidCredential("Missing or invalid authorization header")
    token = authorization[len(BEARER_PREFIX):].strip()
    if not token:
        raise InvalidCredential("Missing token")
    return token
