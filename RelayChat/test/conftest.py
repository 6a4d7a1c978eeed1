"""
Test configuration and fixtures for RelayChat tests.

Provides:
- A fast Config (low bcrypt cost, temporary SQLite database)
- Store, gate and application fixtures
- Fake transport connections for hub tests
"""

import json
from pathlib import Path
from typing import Dict, Generator, List, Optional

import pytest
from starlette.requests import HTTPConnection
from starlette.testclient import TestClient

from RelayChat.config import Config
from RelayChat.core.logging import configure_logging, create_testing_config
from RelayChat.core.server.auth import AuthenticationGate
from RelayChat.core.server.storage_sqlite import SQLiteStore
from RelayChat.web.routes import create_app

TEST_SECRET = "test-session-secret"


class FakeConnection:
    """In-memory TransportConnection that records what it was sent."""

    def __init__(self, conn_id: str, fail: bool = False):
        self.conn_id = conn_id
        self.sent: List[str] = []
        self.closed_with: Optional[int] = None
        self._fail = fail

    async def send(self, message: str) -> bool:
        if self._fail or self.closed_with is not None:
            return False
        self.sent.append(message)
        return True

    async def close(self, code: int = 1000, reason: str = "") -> None:
        self.closed_with = code

    def is_open(self) -> bool:
        return self.closed_with is None

    @property
    def texts(self) -> List[str]:
        return [json.loads(frame)["data"] for frame in self.sent]


def handshake(cookie_header: Optional[str] = None) -> HTTPConnection:
    """Websocket handshake connection carrying an optional Cookie header."""
    headers = []
    if cookie_header is not None:
        headers.append((b"cookie", cookie_header.encode("latin-1")))
    return HTTPConnection({"type": "websocket", "path": "/socket", "headers": headers})


def make_config(tmp_path: Path, **overrides: str) -> Config:
    environ = {
        "DATABASE_URI": f"sqlite:///{tmp_path / 'relaychat-test.db'}",
        "SESSION_SECRET": TEST_SECRET,
        "BCRYPT_ROUNDS": "4",
        "RELAYCHAT_ENV": "testing",
    }
    environ.update(overrides)
    return Config(environ)


@pytest.fixture(scope="session", autouse=True)
def _logging():
    configure_logging(create_testing_config())


@pytest.fixture
def config(tmp_path: Path) -> Config:
    return make_config(tmp_path)


@pytest.fixture
def store(config: Config) -> Generator[SQLiteStore, None, None]:
    s = SQLiteStore(config.database_path)
    yield s
    s.close()


@pytest.fixture
def gate(config: Config, store: SQLiteStore) -> AuthenticationGate:
    return AuthenticationGate.from_config(config, store, store)


@pytest.fixture
def app(config: Config, store: SQLiteStore, gate: AuthenticationGate):
    return create_app(config, store=store, gate=gate)


@pytest.fixture
def client(app) -> Generator[TestClient, None, None]:
    # One client per test: every websocket session shares its event loop
    with TestClient(app) as c:
        yield c


def register(client: TestClient, username: str, password: str):
    return client.post(
        "/register",
        data={"username": username, "password": password},
        follow_redirects=False,
    )


def login(client: TestClient, username: str, password: str):
    return client.post(
        "/login",
        data={"username": username, "password": password},
        follow_redirects=False,
    )


def session_cookie_header(config: Config, response) -> Dict[str, str]:
    """Cookie header carrying the session set by a /login response."""
    value = response.cookies.get(config.SESSION_COOKIE_NAME)
    assert value, "login response did not set the session cookie"
    return {"cookie": f"{config.SESSION_COOKIE_NAME}={value}"}


def pytest_configure(config):
    config.addinivalue_line(
        "markers", "integration: exercises the full HTTP and socket stack"
    )
