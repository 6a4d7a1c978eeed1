"""
Server module for RelayChat.

Architecture Overview:
---------------------

1. **Authentication** (`auth/`)
   - AuthenticationGate: register, login, logout, identity lookup
   - PasswordHasher: bcrypt hashing and verification
   - SessionCookieCodec / SessionCookieExtractor: signed session cookie

2. **Session Management** (`session/`)
   - new_session: session token generation
   - InMemorySessionStore: non-durable session storage

3. **Storage** (`storage_sqlite.py`)
   - SQLiteStore: durable users and sessions

4. **Transport Layer** (`transport/`)
   - WebSocketConnection: connection wrapper
   - ConnectionRegistry: admitted connections, guarded by one lock

5. **Broadcast Hub** (`websocket_manager.py`)
   - BroadcastHub: handshake admission and fan-out to the shared room
"""

from RelayChat.core.server.auth import (
    AuthenticationGate,
    PasswordHasher,
    SessionCookieCodec,
    SessionCookieExtractor,
)
from RelayChat.core.server.exceptions import (
    AuthError,
    BadPassword,
    DuplicateUsername,
    RelayChatError,
    StoreUnavailable,
    UnknownUser,
)
from RelayChat.core.server.interfaces import (
    CredentialRepository,
    Session,
    SessionStore,
    TransportConnection,
    User,
)
from RelayChat.core.server.session import InMemorySessionStore, new_session
from RelayChat.core.server.storage_sqlite import SQLiteStore
from RelayChat.core.server.transport import ConnectionRegistry, WebSocketConnection
from RelayChat.core.server.websocket_manager import (
    BroadcastHub,
    ConnectionContext,
    ConnectionState,
)

__all__ = [
    'AuthenticationGate',
    'PasswordHasher',
    'SessionCookieCodec',
    'SessionCookieExtractor',

    'RelayChatError',
    'AuthError',
    'DuplicateUsername',
    'UnknownUser',
    'BadPassword',
    'StoreUnavailable',

    'User',
    'Session',
    'CredentialRepository',
    'SessionStore',
    'TransportConnection',

    'InMemorySessionStore',
    'new_session',
    'SQLiteStore',

    'WebSocketConnection',
    'ConnectionRegistry',

    'BroadcastHub',
    'ConnectionContext',
    'ConnectionState',
]
