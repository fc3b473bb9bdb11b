"""
Ponto Urbano Backend — Server-side Session Store
==================================================

What:  Creates, looks up, renames and destroys login sessions.
Why:   The cookie (Starlette SessionMiddleware, signed with SESSION_SECRET)
       only carries an opaque token. The identity behind it (user id, name,
       email) lives in the session store, so logout revokes it for real and an
       expired or destroyed session can't be replayed from an old cookie.
       Sessions are not part of the relational store: checking a session
       never runs SQL.
How:   SessionStore is the interface; MemorySessionStore keeps sessions in
       process memory. token = secrets.token_urlsafe(32); entries expire after
       SESSION_MAX_AGE and expired entries are purged whenever a new session
       is created, so the store stays bounded by the number of live sessions.

Lifecycle:
    login   → create()  → token placed in request.session["sid"]
    request → get()     → SessionData or None
    /perfil → rename()  → cached display name follows the user row
    logout  → destroy() → entry gone, cookie cleared by the middleware
"""

import logging
import secrets
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Callable, Dict, Optional

from pontourbano.models.user import User

logger = logging.getLogger(__name__)

# Key under which the token is kept in the signed cookie payload
SESSION_KEY = "sid"


@dataclass
class SessionData:
    """One logged-in browser. Name and email are cached copies of the user row."""

    user_id: int
    name: str
    email: str
    expires_at: float

    def __repr__(self) -> str:
        # Never log the token itself
        return f"<SessionData(user_id={self.user_id}, expires_at={self.expires_at:.0f})>"


class SessionStore(ABC):
    """
    Abstract interface for session persistence.

    Contract:
        - create() returns a fresh, unguessable token for every login
        - get() of an unknown, empty or expired token returns None
        - destroy() of an unknown or empty token is a no-op (logout is idempotent)
    """

    backend_name: str = "abstract"

    @abstractmethod
    async def create(self, user: User) -> str:
        """Open a session for `user` and return its token."""
        ...

    @abstractmethod
    async def get(self, token: Optional[str]) -> Optional[SessionData]:
        """Return the live session for `token`, or None."""
        ...

    @abstractmethod
    async def rename(self, user_id: int, name: str) -> None:
        """Update the cached display name on every session of `user_id`."""
        ...

    @abstractmethod
    async def destroy(self, token: Optional[str]) -> None:
        """
        Delete a session.

        Raises:
            InternalError: The store could not be reached.
        """
        ...

    async def close(self) -> None:
        return None


class MemorySessionStore(SessionStore):
    """
    Sessions held in this process.

    Sessions do not survive a restart and are not shared between worker
    processes; run a single worker per store.
    """

    backend_name = "memory"

    def __init__(self, max_age: int, clock: Callable[[], float] = time.monotonic):
        self.max_age = max_age
        self._clock = clock
        self._sessions: Dict[str, SessionData] = {}

    def __len__(self) -> int:
        return len(self._sessions)

    def purge_expired(self) -> int:
        """Drop every expired session. Returns how many were removed."""
        now = self._clock()
        expired = [token for token, data in self._sessions.items() if data.expires_at <= now]
        for token in expired:
            del self._sessions[token]
        if expired:
            logger.debug("Purged %d expired sessions", len(expired))
        return len(expired)

    async def create(self, user: User) -> str:
        self.purge_expired()
        token = secrets.token_urlsafe(32)
        self._sessions[token] = SessionData(
            user_id=user.id,
            name=user.name,
            email=user.email,
            expires_at=self._clock() + self.max_age,
        )
        logger.info("Session opened for user %s", user.id)
        return token

    async def get(self, token: Optional[str]) -> Optional[SessionData]:
        if not token:
            return None
        data = self._sessions.get(token)
        if data is None:
            return None
        if data.expires_at <= self._clock():
            del self._sessions[token]
            logger.info("Expired session removed for user %s", data.user_id)
            return None
        return data

    async def rename(self, user_id: int, name: str) -> None:
        for data in self._sessions.values():
            if data.user_id == user_id:
                data.name = name

    async def destroy(self, token: Optional[str]) -> None:
        if token:
            self._sessions.pop(token, None)

    async def close(self) -> None:
        self._sessions.clear()
