"""SQLite persistence layer for RelayChat.

Holds the two durable stores of the relay in one database file:
  - users: the credential repository (username, bcrypt hash)
  - sessions: login sessions shared by the HTTP routes and the broadcast hub

Design goals:
  - Zero extra dependencies (uses stdlib sqlite3)
  - Safe for multi-request use (single process): guarded by a lock
  - Keep APIs small and explicit

The DB file location is controlled by Config.DATABASE_URI.
"""

from __future__ import annotations

import logging
import sqlite3
import threading
import time
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional

from RelayChat.core.server.exceptions import StoreUnavailable
from RelayChat.core.server.interfaces import Session, User

logger = logging.getLogger(__name__)


SCHEMA_SQL = """
PRAGMA foreign_keys=ON;

CREATE TABLE IF NOT EXISTS users (
  id INTEGER PRIMARY KEY AUTOINCREMENT,
  username TEXT UNIQUE NOT NULL,
  password_hash TEXT NOT NULL,
  created_at REAL NOT NULL
);

CREATE TABLE IF NOT EXISTS sessions (
  token TEXT PRIMARY KEY,
  user_id INTEGER NOT NULL,
  created_at REAL NOT NULL,
  expires_at REAL NOT NULL,
  FOREIGN KEY(user_id) REFERENCES users(id) ON DELETE CASCADE
);

CREATE INDEX IF NOT EXISTS idx_sessions_expires ON sessions(expires_at);
"""


def _row_to_user(row: sqlite3.Row) -> User:
    return User(
        id=str(row["id"]),
        username=str(row["username"]),
        password_hash=str(row["password_hash"]),
    )


def _row_to_session(row: sqlite3.Row) -> Session:
    return Session(
        token=str(row["token"]),
        user_id=str(row["user_id"]),
        created_at=float(row["created_at"]),
        expires_at=float(row["expires_at"]),
    )


class SQLiteStore:
    """A tiny SQLite-backed credential repository and session store."""

    def __init__(self, db_path: str):
        self.db_path = db_path if db_path == ":memory:" else str(Path(db_path))
        self._lock = threading.RLock()
        try:
            self._conn = sqlite3.connect(self.db_path, check_same_thread=False)
        except sqlite3.Error as e:
            raise StoreUnavailable(f"Cannot open database {self.db_path}: {e}") from e
        self._conn.row_factory = sqlite3.Row
        self._init_db()

    def _init_db(self) -> None:
        with self._locked():
            if self.db_path != ":memory:":
                self._conn.execute("PRAGMA journal_mode=WAL")
            self._conn.executescript(SCHEMA_SQL)
            self._conn.commit()

    @contextmanager
    def _locked(self) -> Iterator[sqlite3.Connection]:
        """Serialise access and report driver failures as StoreUnavailable."""
        with self._lock:
            try:
                yield self._conn
            except sqlite3.IntegrityError:
                raise
            except sqlite3.Error as e:
                logger.error("SQLite error on %s: %s", self.db_path, e)
                raise StoreUnavailable(f"Database error: {e}") from e

    def close(self) -> None:
        with self._lock:
            self._conn.close()

    # --------------------------- users ---------------------------
    def get_user_by_username(self, username: str) -> Optional[User]:
        with self._locked() as conn:
            row = conn.execute(
                "SELECT id, username, password_hash FROM users WHERE username=?",
                (username,),
            ).fetchone()
        return None if row is None else _row_to_user(row)

    def get_user_by_id(self, user_id: str) -> Optional[User]:
        try:
            uid = int(user_id)
        except (TypeError, ValueError):
            return None
        with self._locked() as conn:
            row = conn.execute(
                "SELECT id, username, password_hash FROM users WHERE id=?",
                (uid,),
            ).fetchone()
        return None if row is None else _row_to_user(row)

    def create_user(self, username: str, password_hash: str) -> Optional[User]:
        now = time.time()
        with self._locked() as conn:
            try:
                cur = conn.execute(
                    "INSERT INTO users(username, password_hash, created_at) VALUES(?,?,?)",
                    (username, password_hash, now),
                )
                conn.commit()
            except sqlite3.IntegrityError:
                conn.rollback()
                return None
        return User(id=str(cur.lastrowid), username=username, password_hash=password_hash)

    def count_users(self, username: Optional[str] = None) -> int:
        with self._locked() as conn:
            if username is None:
                row = conn.execute("SELECT COUNT(*) AS n FROM users").fetchone()
            else:
                row = conn.execute(
                    "SELECT COUNT(*) AS n FROM users WHERE username=?", (username,)
                ).fetchone()
        return int(row["n"])

    # -------------------------- sessions --------------------------
    def save_session(self, session: Session) -> None:
        with self._locked() as conn:
            conn.execute(
                "INSERT OR REPLACE INTO sessions(token, user_id, created_at, expires_at) VALUES(?,?,?,?)",
                (session.token, int(session.user_id), session.created_at, session.expires_at),
            )
            conn.commit()

    def get_session(self, token: str) -> Optional[Session]:
        with self._locked() as conn:
            row = conn.execute(
                "SELECT token, user_id, created_at, expires_at FROM sessions WHERE token=?",
                (token,),
            ).fetchone()
            if row is None:
                return None
            session = _row_to_session(row)
            if session.is_expired():
                conn.execute("DELETE FROM sessions WHERE token=?", (token,))
                conn.commit()
                return None
        return session

    def delete_session(self, token: str) -> None:
        with self._locked() as conn:
            conn.execute("DELETE FROM sessions WHERE token=?", (token,))
            conn.commit()

    def purge_expired(self) -> int:
        with self._locked() as conn:
            cur = conn.execute("DELETE FROM sessions WHERE expires_at<=?", (time.time(),))
            conn.commit()
        if cur.rowcount:
            logger.info("Purged %d expired sessions", cur.rowcount)
        return cur.rowcount
