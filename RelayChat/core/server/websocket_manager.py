"""
Broadcast hub for the shared chat room.

Admits real-time connections whose session cookie resolves to a known
user, and relays every ``chat message`` event to all admitted
connections, the sender included.

Connection lifecycle:
    CONNECTING -> ADMITTED -> RELAYING -> CLOSED
    CONNECTING -> REJECTED          (no live session at handshake)
"""

import asyncio
import logging
from enum import Enum, auto
from typing import Any, Optional

from starlette.websockets import WebSocket

from RelayChat.core.message.protocol import Message, ProtocolError
from RelayChat.core.server.auth import AuthenticationGate, SessionCookieExtractor
from RelayChat.core.server.exceptions import StoreUnavailable
from RelayChat.core.server.interfaces import TransportConnection, User
from RelayChat.core.server.transport import ConnectionRegistry, WebSocketConnection

logger = logging.getLogger(__name__)

# WebSocket close codes
POLICY_VIOLATION = 1008
INTERNAL_ERROR = 1011
GOING_AWAY = 1001


class ConnectionState(Enum):
    CONNECTING = auto()
    ADMITTED = auto()
    RELAYING = auto()
    CLOSED = auto()
    REJECTED = auto()


class ConnectionContext:
    """Per-connection state tracked by the hub."""

    def __init__(self, connection: TransportConnection, user: User):
        self.connection = connection
        self.user = user
        self.state = ConnectionState.ADMITTED

    @property
    def conn_id(self) -> str:
        return self.connection.conn_id

    def __repr__(self) -> str:
        return f"ConnectionContext({self.user.username!r}, {self.conn_id}, {self.state.name})"


class BroadcastHub:
    """
    Admission and fan-out for the single chat room.

    Example:
        hub = BroadcastHub(gate, SessionCookieExtractor(config.SESSION_COOKIE_NAME))

        @app.websocket("/socket")
        async def socket(websocket: WebSocket):
            await hub.handle(websocket)
    """

    def __init__(
        self,
        gate: AuthenticationGate,
        cookie_extractor: Optional[SessionCookieExtractor] = None,
        registry: Optional[ConnectionRegistry] = None,
    ):
        self._gate = gate
        self._cookie_extractor = cookie_extractor or SessionCookieExtractor()
        self._registry = registry or ConnectionRegistry()
        # One fan-out at a time so every peer sees the same order
        self._broadcast_lock = asyncio.Lock()

    @property
    def registry(self) -> ConnectionRegistry:
        return self._registry

    @property
    def connection_count(self) -> int:
        return len(self._registry)

    async def admit(self, transport_context: Any) -> Optional[User]:
        """
        Resolve the session cookie carried by a handshake.

        Returns:
            The authenticated User, or None if the connection must be rejected

        Raises:
            StoreUnavailable: If the session or credential store fails
        """
        cookie = self._cookie_extractor.extract(transport_context)
        if not cookie:
            return None
        return await self._gate.user_from_cookie(cookie)

    async def handle(self, websocket: WebSocket) -> None:
        """Run one connection from handshake to teardown."""
        try:
            user = await self.admit(websocket)
        except StoreUnavailable as e:
            logger.error("Rejecting connection, session store unavailable: %s", e)
            await websocket.close(code=INTERNAL_ERROR)
            return

        if user is None:
            logger.info("Rejected connection without a valid session")
            await websocket.close(code=POLICY_VIOLATION)
            return

        await websocket.accept()
        connection = WebSocketConnection(websocket, user.id, user.username)
        context = ConnectionContext(connection, user)
        await self._registry.add(connection)
        logger.info("User %s connected (%s)", user.username, connection.conn_id)

        try:
            await self._message_loop(context, websocket)
        except Exception as e:
            logger.exception("Error handling connection %s: %s", connection.conn_id, e)
        finally:
            await self._cleanup_connection(context)

    async def _message_loop(self, context: ConnectionContext, websocket: WebSocket) -> None:
        while True:
            frame = await websocket.receive()
            if frame["type"] == "websocket.disconnect":
                break
            text = frame.get("text")
            if text is None:
                logger.debug("Ignoring binary frame from %s", context.user.username)
                continue
            await self.on_frame(context, text)

    async def on_frame(self, context: ConnectionContext, raw: str) -> bool:
        """
        Handle one inbound text frame.

        Returns:
            True if the frame was a chat message and was broadcast
        """
        if context.state is ConnectionState.CLOSED:
            return False
        if context.conn_id not in self._registry:
            # Dropped by a failed delivery
            context.state = ConnectionState.CLOSED
            return False

        try:
            message = Message.deserialize(raw)
        except ProtocolError as e:
            logger.debug("Ignoring malformed frame from %s: %s", context.user.username, e)
            return False

        if not message.is_chat:
            logger.debug("Ignoring unhandled event %r from %s", message.event, context.user.username)
            return False

        context.state = ConnectionState.RELAYING
        logger.info("message from %s: %s", context.user.username, message.data)
        await self.broadcast(message)
        return True

    async def broadcast(self, message: Message) -> int:
        """
        Send a message to every admitted connection.

        Connections that fail to receive it are dropped from the registry
        and closed, so nothing more is read from them either.

        Returns:
            Number of connections the message was delivered to
        """
        frame = message.serialize()
        delivered = 0
        async with self._broadcast_lock:
            for connection in await self._registry.snapshot():
                if await connection.send(frame):
                    delivered += 1
                else:
                    await self._drop(connection)
        return delivered

    async def _drop(self, connection: TransportConnection) -> None:
        await self._registry.remove(connection.conn_id)
        logger.info("Dropping connection %s after a failed send", connection.conn_id)
        await connection.close(INTERNAL_ERROR, "Delivery failed")

    async def _cleanup_connection(self, context: ConnectionContext) -> None:
        context.state = ConnectionState.CLOSED
        await self._registry.remove(context.conn_id)
        if isinstance(context.connection, WebSocketConnection):
            context.connection.mark_closed()
        logger.info("User %s disconnected (%s)", context.user.username, context.conn_id)

    async def close_all(self, code: int = GOING_AWAY, reason: str = "Server shutting down") -> None:
        for connection in await self._registry.snapshot():
            await connection.close(code, reason)
            await self._registry.remove(connection.conn_id)


__all__ = [
    'BroadcastHub',
    'ConnectionContext',
    'ConnectionState',
    'POLICY_VIOLATION',
    'INTERNAL_ERROR',
    'GOING_AWAY',
]
