"""
Authentication module for the server.

Verifies credentials at login, establishes sessions, and answers the
"who is this session" question for both the HTTP routes and the
real-time connection handshake.

The browser only ever holds a signed cookie. Its payload is the opaque
session token; the session itself lives in the session store, so logging
out invalidates the cookie everywhere at once.
"""

import asyncio
import logging
from typing import Optional

import bcrypt
import jwt
from starlette.requests import HTTPConnection

from RelayChat.config import Config
from RelayChat.core.server.exceptions import (
    BadPassword,
    DuplicateUsername,
    UnknownUser,
)
from RelayChat.core.server.interfaces import (
    CredentialRepository,
    Session,
    SessionStore,
    User,
)
from RelayChat.core.server.session import new_session

logger = logging.getLogger(__name__)


# bcrypt only reads the first 72 bytes of a password
MAX_PASSWORD_BYTES = 72


def _password_bytes(password: str) -> bytes:
    return password.encode('utf-8')[:MAX_PASSWORD_BYTES]


class PasswordHasher:
    """
    Salted bcrypt hashing. Deliberately slow; call it off the event loop.

    Passwords longer than 72 UTF-8 bytes are truncated before hashing and
    before checking, so long passwords register and log in normally.
    """

    def __init__(self, rounds: int = Config.DEFAULT_BCRYPT_ROUNDS):
        self._rounds = rounds

    def hash(self, password: str) -> str:
        salt = bcrypt.gensalt(rounds=self._rounds)
        return bcrypt.hashpw(_password_bytes(password), salt).decode('utf-8')

    def verify(self, password: str, password_hash: str) -> bool:
        try:
            return bcrypt.checkpw(_password_bytes(password), password_hash.encode('utf-8'))
        except ValueError:
            # Stored value is not a bcrypt hash
            logger.warning("Malformed password hash encountered during login")
            return False


class SessionCookieCodec:
    """
    Signs session tokens into cookie values and verifies them back.

    The cookie is a JWT carrying the session token in its ``sid`` claim and
    the session expiry in ``exp``.
    """

    def __init__(self, secret: str, algorithm: str = Config.SESSION_ALGORITHM):
        self._secret = secret
        self._algorithm = algorithm

    def encode(self, session: Session) -> str:
        payload = {"sid": session.token, "exp": int(session.expires_at)}
        return jwt.encode(payload, self._secret, algorithm=self._algorithm)

    def decode(self, cookie_value: Optional[str]) -> Optional[str]:
        """
        Verify a cookie value.

        Returns:
            The session token, or None if the cookie is absent, tampered with
            or expired
        """
        if not cookie_value:
            return None
        try:
            payload = jwt.decode(cookie_value, self._secret, algorithms=[self._algorithm])
        except jwt.ExpiredSignatureError:
            logger.debug("Session cookie expired")
            return None
        except jwt.InvalidTokenError as e:
            logger.debug("Rejected session cookie: %s", e)
            return None

        sid = payload.get("sid")
        return sid if isinstance(sid, str) and sid else None


class SessionCookieExtractor:
    """
    Reads the session cookie from a Starlette request or websocket handshake.
    """

    def __init__(self, cookie_name: str = Config.DEFAULT_COOKIE_NAME):
        self.cookie_name = cookie_name

    def extract(self, connection: HTTPConnection) -> Optional[str]:
        return connection.cookies.get(self.cookie_name) or None


class AuthenticationGate:
    """
    Registration, login, logout and identity lookup.

    Blocking work (bcrypt, store I/O) runs in worker threads so the event
    loop keeps serving other requests and connections.
    """

    def __init__(
        self,
        users: CredentialRepository,
        sessions: SessionStore,
        cookie_codec: SessionCookieCodec,
        hasher: Optional[PasswordHasher] = None,
        session_max_age: int = Config.DEFAULT_SESSION_MAX_AGE,
    ):
        self._users = users
        self._sessions = sessions
        self._cookie_codec = cookie_codec
        self._hasher = hasher or PasswordHasher()
        self._session_max_age = session_max_age
        self._dummy_hash: Optional[str] = None

    @classmethod
    def from_config(
        cls,
        config: Config,
        users: CredentialRepository,
        sessions: SessionStore,
    ) -> 'AuthenticationGate':
        return cls(
            users,
            sessions,
            SessionCookieCodec(config.SESSION_SECRET, config.SESSION_ALGORITHM),
            PasswordHasher(config.BCRYPT_ROUNDS),
            session_max_age=config.SESSION_MAX_AGE,
        )

    @property
    def session_max_age(self) -> int:
        return self._session_max_age

    async def register(self, username: str, password: str) -> User:
        """
        Create a new account.

        Raises:
            ValueError: If username or password is empty
            DuplicateUsername: If the username is already taken
            StoreUnavailable: If the credential store fails
        """
        if not username or not password:
            raise ValueError("Username and password are required")

        if await asyncio.to_thread(self._users.get_user_by_username, username):
            raise DuplicateUsername(username)

        password_hash = await asyncio.to_thread(self._hasher.hash, password)
        user = await asyncio.to_thread(self._users.create_user, username, password_hash)
        if user is None:
            # Lost a race with a concurrent registration
            raise DuplicateUsername(username)

        logger.info("Registered user %s (id=%s)", user.username, user.id)
        return user

    async def login(self, username: str, password: str) -> Session:
        """
        Verify credentials and open a session.

        Raises:
            UnknownUser: If no such username exists
            BadPassword: If the password does not match
            StoreUnavailable: If a store fails
        """
        user = await asyncio.to_thread(self._users.get_user_by_username, username) if username else None
        if user is None:
            # Spend the same bcrypt time as a real comparison
            await asyncio.to_thread(self._hasher.verify, password or "", await self._get_dummy_hash())
            logger.info("Login failed: unknown user %r", username)
            raise UnknownUser(username)

        if not await asyncio.to_thread(self._hasher.verify, password or "", user.password_hash):
            logger.info("Login failed: bad password for %s", username)
            raise BadPassword(username)

        session = new_session(user.id, self._session_max_age)
        await asyncio.to_thread(self._sessions.save_session, session)
        logger.info("User %s logged in", user.username)
        return session

    async def current_identity(self, session_token: Optional[str]) -> Optional[str]:
        """Return the user id behind a session token, or None if it is not live."""
        if not session_token:
            return None
        session = await asyncio.to_thread(self._sessions.get_session, session_token)
        return session.user_id if session else None

    async def current_user(self, session_token: Optional[str]) -> Optional[User]:
        user_id = await self.current_identity(session_token)
        if user_id is None:
            return None
        return await asyncio.to_thread(self._users.get_user_by_id, user_id)

    async def logout(self, session_token: Optional[str]) -> None:
        """Destroy a session. Unknown or already destroyed tokens are ignored."""
        if not session_token:
            return
        await asyncio.to_thread(self._sessions.delete_session, session_token)
        logger.debug("Session destroyed")

    # ----------------------------- cookies -----------------------------
    def cookie_value(self, session: Session) -> str:
        return self._cookie_codec.encode(session)

    def token_from_cookie(self, cookie_value: Optional[str]) -> Optional[str]:
        return self._cookie_codec.decode(cookie_value)

    async def identity_from_cookie(self, cookie_value: Optional[str]) -> Optional[str]:
        return await self.current_identity(self.token_from_cookie(cookie_value))

    async def user_from_cookie(self, cookie_value: Optional[str]) -> Optional[User]:
        return await self.current_user(self.token_from_cookie(cookie_value))

    async def _get_dummy_hash(self) -> str:
        if self._dummy_hash is None:
            self._dummy_hash = await asyncio.to_thread(self._hasher.hash, "relaychat-placeholder")
        return self._dummy_hash


__all__ = [
    'PasswordHasher',
    'SessionCookieCodec',
    'SessionCookieExtractor',
    'AuthenticationGate',
]
