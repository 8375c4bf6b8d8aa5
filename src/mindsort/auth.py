"""
Authentication for Mindsort.

Identity is provided from outside; this module only resolves a bearer
token to the user it belongs to. Tokens live in config.toml:

    [auth.tokens]
    "s3cret-token" = { id = "user-1", email = "me@example.com" }
"""

import hmac
import logging
from typing import Any, Protocol

from pydantic import BaseModel

from mindsort.config import load_config

logger = logging.getLogger(__name__)


class CurrentUser(BaseModel):
    """The authenticated caller."""

    id: str
    email: str | None = None


class Authenticator(Protocol):
    def get_current_user(self, token: str | None) -> CurrentUser | None: ...


class TokenAuthenticator:
    """Static token -> user map."""

    def __init__(self, tokens: dict[str, Any] | None = None, config: dict[str, Any] | None = None):
        if tokens is None:
            config = config or load_config()
            tokens = config.get("auth", {}).get("tokens", {})

        self._users: dict[str, CurrentUser] = {}
        for token, user in tokens.items():
            if isinstance(user, str):
                user = {"id": user}
            self._users[token] = CurrentUser(**user)

    def get_current_user(self, token: str | None) -> CurrentUser | None:
        """Return the user for a token, or None if unknown."""
        if not token:
            return None
        for known, user in self._users.items():
            if hmac.compare_digest(known.encode(), token.encode()):
                return user
        logger.info("Rejected unknown API token")
        return None
