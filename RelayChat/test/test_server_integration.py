"""
Integration tests for the HTTP routes and the chat socket.

Tests include:
- Page delivery and the login wall in front of /chat
- Registration, login and logout flows
- Socket admission from the session cookie
- Room-wide broadcast over real websocket sessions

Run with: python -m pytest RelayChat/test/test_server_integration.py -v
"""

import pytest
from starlette.testclient import TestClient
from starlette.websockets import WebSocketDisconnect

from RelayChat.core.server.auth import AuthenticationGate, SessionCookieCodec
from RelayChat.core.server.exceptions import StoreUnavailable
from RelayChat.core.server.session import new_session
from RelayChat.web.routes import create_app

from .conftest import TEST_SECRET, login, make_config, register, session_cookie_header

pytestmark = pytest.mark.integration


def chat(text: str) -> dict:
    return {"event": "chat message", "data": text}


class TestPages:

    @pytest.mark.parametrize("path", ["/", "/login", "/register"])
    def test_public_pages(self, client: TestClient, path: str):
        response = client.get(path)

        assert response.status_code == 200
        assert "text/html" in response.headers["content-type"]

    def test_static_assets(self, client: TestClient):
        assert client.get("/static/chat.js").status_code == 200

    def test_chat_requires_login(self, client: TestClient):
        response = client.get("/chat", follow_redirects=False)

        assert response.status_code == 302
        assert response.headers["location"] == "/login"


class TestRegistration:

    def test_register_redirects_to_login(self, client: TestClient, store):
        response = register(client, "alice", "secret1")

        assert response.status_code == 302
        assert response.headers["location"] == "/login"
        assert store.count_users("alice") == 1

    def test_duplicate_registration(self, client: TestClient, store):
        register(client, "alice", "secret1")

        response = register(client, "alice", "other")

        assert response.status_code == 500
        assert response.text.startswith("Error registering new user:")
        assert store.count_users("alice") == 1

    @pytest.mark.parametrize("form", [
        {"username": "alice"},
        {"password": "secret1"},
        {"username": "   ", "password": "secret1"},
    ])
    def test_missing_fields(self, client: TestClient, store, form):
        response = client.post("/register", data=form, follow_redirects=False)

        assert response.status_code == 400
        assert store.count_users() == 0


class TestLogin:

    def test_login_sets_cookie_and_opens_chat(self, client: TestClient, config):
        register(client, "alice", "secret1")

        response = login(client, "alice", "secret1")

        assert response.status_code == 302
        assert response.headers["location"] == "/chat"
        assert response.cookies.get(config.SESSION_COOKIE_NAME)

        page = client.get("/chat", headers=session_cookie_header(config, response))
        assert page.status_code == 200
        assert "text/html" in page.headers["content-type"]

    def test_long_password_registers_and_logs_in(self, client: TestClient, config):
        password = "p" * 80

        response = register(client, "alice", password)
        assert response.status_code == 302
        assert response.headers["location"] == "/login"

        response = login(client, "alice", password)
        assert response.status_code == 302
        assert response.headers["location"] == "/chat"
        assert response.cookies.get(config.SESSION_COOKIE_NAME)

    def test_failures_are_indistinguishable(self, client: TestClient, config):
        register(client, "alice", "secret1")

        wrong_password = login(client, "alice", "wrong")
        unknown_user = login(client, "mallory", "secret1")

        for response in (wrong_password, unknown_user):
            assert response.status_code == 302
            assert response.headers["location"] == "/login"
            assert config.SESSION_COOKIE_NAME not in response.cookies
        assert wrong_password.text == unknown_user.text

    def test_missing_fields_redirect_to_login(self, client: TestClient):
        response = client.post("/login", data={"username": "alice"}, follow_redirects=False)

        assert response.status_code == 302
        assert response.headers["location"] == "/login"

    def test_logout_then_chat_redirects(self, client: TestClient, config):
        register(client, "alice", "secret1")
        cookie = session_cookie_header(config, login(client, "alice", "secret1"))

        response = client.get("/logout", headers=cookie, follow_redirects=False)
        assert response.status_code == 302
        assert response.headers["location"] == "/"

        response = client.get("/chat", headers=cookie, follow_redirects=False)
        assert response.status_code == 302
        assert response.headers["location"] == "/login"

    def test_logout_without_session(self, client: TestClient):
        response = client.get("/logout", follow_redirects=False)

        assert response.status_code == 302
        assert response.headers["location"] == "/"


class TestSocket:

    def _join(self, client: TestClient, config, username: str):
        register(client, username, "pw-" + username)
        return session_cookie_header(config, login(client, username, "pw-" + username))

    def test_rejected_without_session(self, client: TestClient):
        client.cookies.clear()

        with pytest.raises(WebSocketDisconnect) as exc_info:
            with client.websocket_connect("/socket"):
                pass

        assert exc_info.value.code == 1008

    def test_rejected_with_forged_cookie(self, client: TestClient, config):
        forged = {"cookie": f"{config.SESSION_COOKIE_NAME}=eyJhbGciOiJIUzI1NiJ9.e30.bad"}

        with pytest.raises(WebSocketDisconnect):
            with client.websocket_connect("/socket", headers=forged):
                pass

    def test_rejected_after_logout(self, client: TestClient, config):
        cookie = self._join(client, config, "alice")
        client.get("/logout", headers=cookie, follow_redirects=False)

        with pytest.raises(WebSocketDisconnect):
            with client.websocket_connect("/socket", headers=cookie):
                pass

    def test_end_to_end_echo(self, client: TestClient, config):
        assert register(client, "alice", "secret1").status_code == 302
        cookie = session_cookie_header(config, login(client, "alice", "secret1"))

        with client.websocket_connect("/socket", headers=cookie) as ws:
            ws.send_json(chat("hello"))
            assert ws.receive_json() == chat("hello")

    def test_broadcast_includes_sender_and_skips_departed(self, client: TestClient, config):
        cookie_a = self._join(client, config, "alice")
        cookie_b = self._join(client, config, "bob")
        cookie_c = self._join(client, config, "carol")

        with client.websocket_connect("/socket", headers=cookie_a) as ws_a, \
                client.websocket_connect("/socket", headers=cookie_c) as ws_c:
            with client.websocket_connect("/socket", headers=cookie_b) as ws_b:
                ws_a.send_json(chat("one"))
                for ws in (ws_a, ws_b, ws_c):
                    assert ws.receive_json() == chat("one")

            ws_a.send_json(chat("two"))
            assert ws_a.receive_json() == chat("two")
            assert ws_c.receive_json() == chat("two")
            assert client.app.state.hub.connection_count == 2

    def test_unhandled_events_are_not_relayed(self, client: TestClient, config):
        cookie = self._join(client, config, "alice")

        with client.websocket_connect("/socket", headers=cookie) as ws:
            ws.send_text("not json")
            ws.send_json({"event": "typing", "data": "alice"})
            ws.send_json(chat("real"))
            assert ws.receive_json() == chat("real")


class _BrokenStore:
    """Credential repository and session store whose backend is down."""

    def _fail(self, *args, **kwargs):
        raise StoreUnavailable("database is unreachable")

    get_user_by_username = get_user_by_id = create_user = _fail
    save_session = get_session = delete_session = _fail

    def purge_expired(self):
        return 0


class TestStoreUnavailable:

    def _client(self, config):
        store = _BrokenStore()
        gate = AuthenticationGate(store, store, SessionCookieCodec(TEST_SECRET))
        return TestClient(create_app(config, store=store, gate=gate))

    def test_register_reports_server_error(self, config):
        with self._client(config) as client:
            response = register(client, "alice", "secret1")

        assert response.status_code == 500
        assert response.text == "Internal Server Error"

    def test_login_reports_server_error(self, config):
        with self._client(config) as client:
            response = login(client, "alice", "secret1")

        assert response.status_code == 500

    def test_socket_closed_when_sessions_unreachable(self, config):
        with self._client(config) as client:
            value = SessionCookieCodec(TEST_SECRET).encode(new_session("1", 60))
            cookie = {"cookie": f"{config.SESSION_COOKIE_NAME}={value}"}
            with pytest.raises(WebSocketDisconnect) as exc_info:
                with client.websocket_connect("/socket", headers=cookie):
                    pass

        assert exc_info.value.code == 1011


class TestSessionStoreSelection:

    def _login_cookie(self, config, store):
        with TestClient(create_app(config, store=store)) as client:
            register(client, "alice", "secret1")
            cookie = session_cookie_header(config, login(client, "alice", "secret1"))
            assert client.get("/chat", headers=cookie, follow_redirects=False).status_code == 200
        return cookie

    def _chat_status_after_restart(self, config, store, cookie):
        with TestClient(create_app(config, store=store)) as client:
            return client.get("/chat", headers=cookie, follow_redirects=False).status_code

    def test_sqlite_sessions_survive_restart(self, config, store):
        cookie = self._login_cookie(config, store)

        assert self._chat_status_after_restart(config, store, cookie) == 200

    def test_memory_sessions_end_with_the_process(self, tmp_path, store):
        config = make_config(tmp_path, SESSION_STORE="memory")
        cookie = self._login_cookie(config, store)

        assert self._chat_status_after_restart(config, store, cookie) == 302
        assert store.count_users("alice") == 1
