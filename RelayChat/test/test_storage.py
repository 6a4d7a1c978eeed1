"""
Tests for the SQLite credential repository and session store.
"""

import time

import pytest

from RelayChat.core.server.exceptions import StoreUnavailable
from RelayChat.core.server.interfaces import Session
from RelayChat.core.server.session import InMemorySessionStore, new_session
from RelayChat.core.server.storage_sqlite import SQLiteStore


@pytest.fixture
def memory_store():
    s = SQLiteStore(":memory:")
    yield s
    s.close()


@pytest.fixture
def alice(memory_store):
    return memory_store.create_user("alice", "hash-a")


class TestUsers:

    def test_create_and_lookup(self, memory_store, alice):
        assert alice.username == "alice"
        assert memory_store.get_user_by_username("alice") == alice
        assert memory_store.get_user_by_id(alice.id) == alice

    def test_duplicate_username_returns_none(self, memory_store, alice):
        assert memory_store.create_user("alice", "hash-b") is None
        assert memory_store.count_users("alice") == 1
        assert memory_store.get_user_by_username("alice").password_hash == "hash-a"

    def test_usernames_are_case_sensitive(self, memory_store, alice):
        assert memory_store.create_user("Alice", "hash-b") is not None
        assert memory_store.count_users() == 2

    @pytest.mark.parametrize("user_id", ["999", "not-a-number", None])
    def test_unknown_id(self, memory_store, alice, user_id):
        assert memory_store.get_user_by_id(user_id) is None

    def test_unknown_username(self, memory_store):
        assert memory_store.get_user_by_username("nobody") is None

    def test_users_survive_reopen(self, tmp_path):
        path = str(tmp_path / "users.db")
        first = SQLiteStore(path)
        first.create_user("alice", "hash-a")
        first.close()

        second = SQLiteStore(path)
        try:
            assert second.get_user_by_username("alice") is not None
        finally:
            second.close()


class TestSessions:

    def test_save_and_get(self, memory_store, alice):
        session = new_session(alice.id, 60)
        memory_store.save_session(session)

        assert memory_store.get_session(session.token) == session

    def test_delete(self, memory_store, alice):
        session = new_session(alice.id, 60)
        memory_store.save_session(session)

        memory_store.delete_session(session.token)
        memory_store.delete_session(session.token)

        assert memory_store.get_session(session.token) is None

    def test_expired_session_is_dropped_on_read(self, memory_store, alice):
        session = new_session(alice.id, 60, now=time.time() - 120)
        memory_store.save_session(session)

        assert memory_store.get_session(session.token) is None
        assert memory_store.purge_expired() == 0

    def test_purge_expired(self, memory_store, alice):
        live = new_session(alice.id, 60)
        stale = new_session(alice.id, 60, now=time.time() - 120)
        memory_store.save_session(live)
        memory_store.save_session(stale)

        assert memory_store.purge_expired() == 1
        assert memory_store.get_session(live.token) == live

    def test_unknown_token(self, memory_store):
        assert memory_store.get_session("missing") is None


class TestStoreFailures:

    def test_closed_store_reports_unavailable(self):
        s = SQLiteStore(":memory:")
        s.close()

        with pytest.raises(StoreUnavailable):
            s.get_user_by_username("alice")

    def test_unopenable_path(self, tmp_path):
        with pytest.raises(StoreUnavailable):
            SQLiteStore(str(tmp_path / "missing-dir" / "relay.db"))


class TestInMemorySessionStore:

    def test_round_trip(self):
        store = InMemorySessionStore()
        session = new_session("1", 60)
        store.save_session(session)

        assert store.get_session(session.token) == session
        assert session.token in store
        assert len(store) == 1

    def test_expiry_and_purge(self):
        store = InMemorySessionStore()
        store.save_session(new_session("1", 60, now=time.time() - 120))
        store.save_session(new_session("2", 60))

        assert store.purge_expired() == 1
        assert len(store) == 1

    def test_session_expiry_boundary(self):
        session = Session(token="t", user_id="1", created_at=0.0, expires_at=10.0)

        assert not session.is_expired(now=9.9)
        assert session.is_expired(now=10.0)

    def test_tokens_are_unique(self):
        tokens = {new_session("1", 60).token for _ in range(100)}

        assert len(tokens) == 100
