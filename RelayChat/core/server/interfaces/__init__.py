"""
Abstract interfaces and data model for the server module.

The authentication gate, the HTTP routes and the broadcast hub only depend
on these contracts, so stores and transports can be swapped (SQLite or
in-memory stores, Starlette or fake connections in tests).
"""

import time
from abc import abstractmethod
from dataclasses import dataclass
from typing import Optional, Protocol, runtime_checkable


@dataclass(frozen=True)
class User:
    """A registered account. Owned by the credential repository."""
    id: str
    username: str
    password_hash: str


@dataclass(frozen=True)
class Session:
    """
    A login session shared by the HTTP layer and the broadcast hub.

    Attributes:
        token: Opaque, unguessable session identifier
        user_id: Id of the authenticated user
        created_at: Creation timestamp
        expires_at: Timestamp after which the session is no longer live
    """
    token: str
    user_id: str
    created_at: float
    expires_at: float

    def is_expired(self, now: Optional[float] = None) -> bool:
        return (time.time() if now is None else now) >= self.expires_at


@runtime_checkable
class CredentialRepository(Protocol):
    """Protocol for user record storage."""

    @abstractmethod
    def get_user_by_username(self, username: str) -> Optional[User]:
        ...

    @abstractmethod
    def get_user_by_id(self, user_id: str) -> Optional[User]:
        ...

    @abstractmethod
    def create_user(self, username: str, password_hash: str) -> Optional[User]:
        """
        Insert a new user.

        Returns:
            The created User, or None if the username is already taken
        """
        ...


@runtime_checkable
class SessionStore(Protocol):
    """Protocol for session storage implementations."""

    @abstractmethod
    def save_session(self, session: Session) -> None:
        ...

    @abstractmethod
    def get_session(self, token: str) -> Optional[Session]:
        """Return the live session for a token, or None if missing or expired."""
        ...

    @abstractmethod
    def delete_session(self, token: str) -> None:
        """Destroy a session. Unknown tokens are ignored."""
        ...

    @abstractmethod
    def purge_expired(self) -> int:
        """Remove expired sessions and return how many were removed."""
        ...


@runtime_checkable
class TransportConnection(Protocol):
    """Protocol for real-time connections held by the broadcast hub."""

    conn_id: str

    @abstractmethod
    async def send(self, message: str) -> bool:
        """Send a frame. Returns False if the peer could not be reached."""
        ...

    @abstractmethod
    async def close(self, code: int = 1000, reason: str = "") -> None:
        ...

    @abstractmethod
    def is_open(self) -> bool:
        ...


__all__ = [
    'User',
    'Session',
    'CredentialRepository',
    'SessionStore',
    'TransportConnection',
]
