import asyncio
import getpass
import threading
from typing import Callable, Optional

import websockets
from websockets.exceptions import ConnectionClosed, InvalidStatus

from RelayChat.api.client import RelayChatAPIClient
from RelayChat.config import Config
from RelayChat.core.message.protocol import Message, ProtocolError
from .client_base import Client
from .utils import AuthenticationError, WsConnectionError


class StandardCommandlineClient(Client):
    """
    Standard command-line chat client implementation.
    Logs in over HTTP like a browser, then joins the room with the
    session cookie it was given.
    """

    def __init__(
        self,
        host: str = "localhost",
        port: int = Config.DEFAULT_PORT,
        cookie_name: str = Config.DEFAULT_COOKIE_NAME,
    ):
        super().__init__(host, port)
        self.cookie_name = cookie_name

    @staticmethod
    def format_incoming(raw: str) -> Optional[str]:
        """
        Turn a relayed frame into a printable line.

        Returns:
            The chat text, or None for frames that are not chat messages
        """
        try:
            msg = Message.deserialize(raw)
        except ProtocolError:
            return None
        return msg.data if msg.is_chat else None

    @staticmethod
    async def _prompt(text: str, reader: Callable[[str], str] = None) -> str:
        """
        Read one line in a daemon thread.

        Cancelling the await abandons the read; exit does not wait for Enter.
        """
        reader = reader or input
        loop = asyncio.get_running_loop()
        future = loop.create_future()

        def settle(result: Optional[str], error: Optional[BaseException]) -> None:
            if future.done():
                return
            if error is not None:
                future.set_exception(error)
            else:
                future.set_result(result)

        def read() -> None:
            try:
                line, error = reader(text), None
            except EOFError as e:
                line, error = None, e
            try:
                loop.call_soon_threadsafe(settle, line, error)
            except RuntimeError:
                # Event loop closed while waiting for input
                return

        threading.Thread(target=read, name="stdin-reader", daemon=True).start()
        return await future

    @staticmethod
    async def send(websocket):
        """
        Read lines from stdin and send each as a chat message.

        Args:
            websocket: Websocket connection object
        """
        while True:
            try:
                text = await StandardCommandlineClient._prompt("> ")
            except EOFError:
                break
            if not text:
                continue
            try:
                await websocket.send(Message.chat(text).serialize())
            except ConnectionClosed:
                break

    @staticmethod
    async def receive(websocket):
        """
        Print every relayed chat message.

        Args:
            websocket: Websocket connection object
        """
        try:
            async for raw in websocket:
                line = StandardCommandlineClient.format_incoming(raw)
                if line is not None:
                    print(f"\n{line}")
        except ConnectionClosed:
            pass
        print("\n! Server connection closed")

    async def authenticate(self, api: RelayChatAPIClient) -> None:
        """
        Prompt until the user is logged in.

        Raises:
            AuthenticationError: If the user gives up (EOF at a prompt)
        """
        while not api.is_authenticated():
            print("\nPlease select options:")
            print("1. Login")
            print("2. Register")
            try:
                choice = (await self._prompt("Please enter your choice (1/2): ")).strip()
                if choice not in ("1", "2"):
                    print("Invalid option, please choose again")
                    continue
                username = (await self._prompt("Username: ")).strip()
                password = await self._prompt("Password: ", getpass.getpass)
            except EOFError as e:
                raise AuthenticationError("Input closed before login") from e

            if choice == "2":
                result = await api.register(username, password)
                print(result["message"])
                if not result["success"]:
                    continue

            result = await api.login(username, password)
            print(result["message"])

    async def connect(self, api: RelayChatAPIClient):
        """
        Open the chat socket with the session cookie.

        Raises:
            WsConnectionError: If the server refuses the handshake
        """
        try:
            return await websockets.connect(api.get_ws_url(), additional_headers=api.get_ws_headers())
        except InvalidStatus as e:
            raise WsConnectionError(
                "Server rejected the connection",
                {"status": e.response.status_code},
            ) from e
        except OSError as e:
            raise WsConnectionError(f"Cannot reach {api.get_ws_url()}: {e}") from e

    async def run(self):
        """
        Log in, join the room and relay stdin/stdout until either side closes.
        """
        async with RelayChatAPIClient(self.host, self.port, self.cookie_name) as api:
            await self.authenticate(api)
            websocket = await self.connect(api)
            print(f"Joined the room as {api.username}. Type messages and press Enter.")

            async with websocket:
                tasks = [
                    asyncio.create_task(self.send(websocket)),
                    asyncio.create_task(self.receive(websocket)),
                ]
                _, pending = await asyncio.wait(tasks, return_when=asyncio.FIRST_COMPLETED)
                for task in pending:
                    task.cancel()

            await api.logout()
