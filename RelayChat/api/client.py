"""
HTTP client for RelayChat's form-based authentication routes.
Logs in the way a browser does and hands back the session cookie so
terminal clients can open the chat socket with it.
"""

from typing import Optional, Dict, Any

import aiohttp

from RelayChat.config import Config


class RelayChatAPIClient:
    """
    Thin aiohttp wrapper around /register, /login and /logout.

    Example:
        async with RelayChatAPIClient("localhost", 3000) as api:
            result = await api.login("alice", "secret1")
            if result["success"]:
                url, headers = api.get_ws_url(), api.get_ws_headers()
    """

    def __init__(
        self,
        host: str = "localhost",
        port: int = Config.DEFAULT_PORT,
        cookie_name: str = Config.DEFAULT_COOKIE_NAME,
    ):
        """
        Initialize the API client.

        Args:
            host (str): Server hostname
            port (int): Server port
            cookie_name (str): Name of the session cookie set by /login
        """
        self.host = host
        self.port = port
        self.cookie_name = cookie_name
        self.base_url = f"http://{host}:{port}"
        self.session_cookie: Optional[str] = None
        self.username: Optional[str] = None
        self._session: Optional[aiohttp.ClientSession] = None

    async def __aenter__(self) -> 'RelayChatAPIClient':
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    async def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            timeout = aiohttp.ClientTimeout(total=60, connect=10)
            self._session = aiohttp.ClientSession(timeout=timeout, trust_env=False)
        return self._session

    async def close(self) -> None:
        if self._session and not self._session.closed:
            await self._session.close()
        self._session = None

    async def _post_form(self, endpoint: str, username: str, password: str):
        """POST credentials without following the redirect. Returns (response, body)."""
        session = await self._get_session()
        async with session.post(
            f"{self.base_url}{endpoint}",
            data={"username": username, "password": password},
            allow_redirects=False,
        ) as response:
            return response, await response.text()

    async def register(self, username: str, password: str) -> Dict[str, Any]:
        """
        Register a new user.

        Returns:
            dict: ``success`` and a human readable ``message``
        """
        try:
            response, body = await self._post_form("/register", username, password)
        except aiohttp.ClientError as e:
            return {"success": False, "message": f"Request failed: {e}"}

        if response.status in (302, 303):
            return {"success": True, "message": "Registration successful"}
        return {"success": False, "message": body or f"Registration failed with status {response.status}"}

    async def login(self, username: str, password: str) -> Dict[str, Any]:
        """
        Log in and remember the session cookie.

        Returns:
            dict: ``success`` and a ``message``; the cookie is kept on the client
        """
        try:
            response, _ = await self._post_form("/login", username, password)
        except aiohttp.ClientError as e:
            return {"success": False, "message": f"Request failed: {e}"}

        morsel = response.cookies.get(self.cookie_name)
        location = response.headers.get("Location", "")
        if response.status in (302, 303) and location.endswith("/chat") and morsel is not None:
            self.session_cookie = morsel.value
            self.username = username
            return {"success": True, "message": "Login successful"}

        return {"success": False, "message": "Incorrect username or password"}

    async def logout(self) -> Dict[str, Any]:
        if not self.session_cookie:
            return {"success": True, "message": "Not logged in"}
        try:
            session = await self._get_session()
            async with session.get(
                f"{self.base_url}/logout",
                headers=self.get_ws_headers(),
                allow_redirects=False,
            ) as response:
                await response.read()
        except aiohttp.ClientError as e:
            return {"success": False, "message": f"Request failed: {e}"}

        self.session_cookie = None
        self.username = None
        return {"success": True, "message": "Logged out"}

    def get_ws_url(self) -> str:
        return f"ws://{self.host}:{self.port}/socket"

    def get_ws_headers(self) -> Dict[str, str]:
        """
        Headers that carry the session cookie on the socket handshake.

        Raises:
            ValueError: If the client has not logged in
        """
        if not self.session_cookie:
            raise ValueError("No session cookie available, log in first")
        return {"Cookie": f"{self.cookie_name}={self.session_cookie}"}

    def is_authenticated(self) -> bool:
        return self.session_cookie is not None


__all__ = ["RelayChatAPIClient"]
