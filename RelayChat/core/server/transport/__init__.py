"""
Transport layer abstraction for WebSocket connections.

Provides the connection wrapper used by the broadcast hub and the
registry of admitted connections.
"""

import asyncio
import logging
import uuid
from typing import Dict, List, Optional

from starlette.websockets import WebSocket, WebSocketState

from RelayChat.core.server.interfaces import TransportConnection

logger = logging.getLogger(__name__)


class WebSocketConnection:
    """
    Wrapper around a Starlette WebSocket that implements TransportConnection.
    """

    def __init__(self, websocket: WebSocket, user_id: str, username: Optional[str] = None):
        """
        Initialize WebSocket connection wrapper.

        Args:
            websocket: Accepted Starlette WebSocket
            user_id: Id of the authenticated user
            username: Display name, used for logging only
        """
        self._websocket = websocket
        self._user_id = user_id
        self._username = username or user_id
        self._closed = False
        self.conn_id: str = uuid.uuid4().hex

    @property
    def user_id(self) -> str:
        return self._user_id

    @property
    def username(self) -> str:
        return self._username

    @property
    def raw_websocket(self) -> WebSocket:
        return self._websocket

    async def send(self, message: str) -> bool:
        """
        Send a message through the connection.

        Args:
            message: Frame to send

        Returns:
            True if message was sent successfully
        """
        if not self.is_open():
            return False

        try:
            await self._websocket.send_text(message)
            return True
        except Exception as e:
            logger.debug("Failed to send to %s (%s): %s", self._username, self.conn_id, e)
            return False

    async def close(self, code: int = 1000, reason: str = "") -> None:
        if self._closed:
            return
        self._closed = True
        if self._websocket.application_state == WebSocketState.DISCONNECTED:
            return
        try:
            await self._websocket.close(code=code, reason=reason)
        except Exception as e:
            logger.debug("Error closing connection for %s: %s", self._username, e)

    def mark_closed(self) -> None:
        """Record that the peer went away."""
        self._closed = True

    def is_open(self) -> bool:
        if self._closed:
            return False
        return (
            self._websocket.client_state == WebSocketState.CONNECTED
            and self._websocket.application_state == WebSocketState.CONNECTED
        )


class ConnectionRegistry:
    """
    Registry of admitted connections keyed by connection id.

    Add, remove and snapshot are the only operations, and all of them take
    the same asyncio lock so connects, disconnects and broadcasts never
    observe a half-updated set.
    """

    def __init__(self):
        self._connections: Dict[str, TransportConnection] = {}
        self._lock = asyncio.Lock()

    async def add(self, connection: TransportConnection) -> None:
        async with self._lock:
            self._connections[connection.conn_id] = connection
        logger.debug("Registered connection %s", connection.conn_id)

    async def remove(self, conn_id: str) -> Optional[TransportConnection]:
        async with self._lock:
            connection = self._connections.pop(conn_id, None)
        if connection is not None:
            logger.debug("Unregistered connection %s", conn_id)
        return connection

    async def snapshot(self) -> List[TransportConnection]:
        async with self._lock:
            return list(self._connections.values())

    def __len__(self) -> int:
        return len(self._connections)

    def __contains__(self, conn_id: str) -> bool:
        return conn_id in self._connections


__all__ = ['WebSocketConnection', 'ConnectionRegistry']
