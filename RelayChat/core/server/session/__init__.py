"""
Session management module for the server.

Provides session token generation and an in-memory session store used
when no durable store is configured (tests, throwaway local runs).
"""

import logging
import secrets
import threading
import time
from typing import Dict, Optional

from RelayChat.core.server.interfaces import Session

logger = logging.getLogger(__name__)

TOKEN_BYTES = 32


def new_session(user_id: str, max_age: int, now: Optional[float] = None) -> Session:
    """
    Create a new session for a user.

    Args:
        user_id: Id of the authenticated user
        max_age: Session lifetime in seconds
        now: Creation timestamp (defaults to the current time)

    Returns:
        A Session with a fresh unguessable token
    """
    created = time.time() if now is None else now
    return Session(
        token=secrets.token_urlsafe(TOKEN_BYTES),
        user_id=str(user_id),
        created_at=created,
        expires_at=created + max_age,
    )


class InMemorySessionStore:
    """
    In-memory session store implementation.

    Guarded by a lock because the authentication gate calls stores
    from worker threads.
    """

    def __init__(self):
        self._sessions: Dict[str, Session] = {}
        self._lock = threading.Lock()

    def save_session(self, session: Session) -> None:
        with self._lock:
            self._sessions[session.token] = session
        logger.debug("Added session for user %s", session.user_id)

    def get_session(self, token: str) -> Optional[Session]:
        with self._lock:
            session = self._sessions.get(token)
            if session is None:
                return None
            if session.is_expired():
                del self._sessions[token]
                return None
            return session

    def delete_session(self, token: str) -> None:
        with self._lock:
            session = self._sessions.pop(token, None)
        if session:
            logger.debug("Removed session for user %s", session.user_id)

    def purge_expired(self) -> int:
        now = time.time()
        with self._lock:
            expired = [t for t, s in self._sessions.items() if s.is_expired(now)]
            for token in expired:
                del self._sessions[token]

        if expired:
            logger.info("Cleaned up %d expired sessions", len(expired))
        return len(expired)

    def __len__(self) -> int:
        return len(self._sessions)

    def __contains__(self, token: str) -> bool:
        return self.get_session(token) is not None


__all__ = ['new_session', 'InMemorySessionStore', 'TOKEN_BYTES']
