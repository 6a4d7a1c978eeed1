"""
Configuration module for RelayChat application.
Reads all settings and sensitive information from the process environment.
"""

import logging
import os
from typing import Dict, Any, Mapping, Optional

logger = logging.getLogger(__name__)

DEFAULT_SESSION_SECRET = "default-secret-key-change-in-production"


class Config:
    """Application configuration class."""

    # Session cookie signing
    SESSION_ALGORITHM = "HS256"
    DEFAULT_SESSION_MAX_AGE = 14 * 24 * 60 * 60
    DEFAULT_COOKIE_NAME = "relaychat.sid"

    # Server Configuration
    DEFAULT_HOST = "0.0.0.0"
    DEFAULT_PORT = 3000

    # Credential / session database
    DEFAULT_DATABASE_URI = "sqlite:///relaychat.db"

    DEFAULT_BCRYPT_ROUNDS = 10

    # Where login sessions live: "sqlite" (next to users) or "memory"
    SESSION_STORES = ("sqlite", "memory")
    DEFAULT_SESSION_STORE = "sqlite"

    def __init__(self, environ: Optional[Mapping[str, str]] = None):
        env = os.environ if environ is None else environ

        self.DATABASE_URI = env.get("DATABASE_URI", self.DEFAULT_DATABASE_URI)
        self.SESSION_SECRET = env.get("SESSION_SECRET") or DEFAULT_SESSION_SECRET
        self.HOST = env.get("HOST", self.DEFAULT_HOST)
        self.PORT = int(env.get("PORT", self.DEFAULT_PORT))
        self.SESSION_MAX_AGE = int(env.get("SESSION_MAX_AGE", self.DEFAULT_SESSION_MAX_AGE))
        self.SESSION_COOKIE_NAME = env.get("SESSION_COOKIE_NAME", self.DEFAULT_COOKIE_NAME)
        self.BCRYPT_ROUNDS = int(env.get("BCRYPT_ROUNDS", self.DEFAULT_BCRYPT_ROUNDS))
        self.SESSION_STORE = env.get("SESSION_STORE", self.DEFAULT_SESSION_STORE).lower()
        self.ENV = env.get("RELAYCHAT_ENV", "development").lower()

        if self.SESSION_STORE not in self.SESSION_STORES:
            raise ValueError(
                f"SESSION_STORE must be one of {', '.join(self.SESSION_STORES)}, got {self.SESSION_STORE!r}"
            )

        if self.SESSION_SECRET == DEFAULT_SESSION_SECRET:
            logger.warning("SESSION_SECRET is not set, using the development default")

    @property
    def database_path(self) -> str:
        """Filesystem path of the SQLite database named by DATABASE_URI."""
        uri = self.DATABASE_URI
        if uri.startswith("sqlite:///"):
            return uri[len("sqlite:///"):] or ":memory:"
        if uri.startswith("sqlite://"):
            return ":memory:"
        return uri

    def get_config(self) -> Dict[str, Any]:
        """Get all configuration values as a dictionary (secret masked)."""
        return {
            "DATABASE_URI": self.DATABASE_URI,
            "SESSION_SECRET": "***",
            "SESSION_ALGORITHM": self.SESSION_ALGORITHM,
            "SESSION_MAX_AGE": self.SESSION_MAX_AGE,
            "SESSION_COOKIE_NAME": self.SESSION_COOKIE_NAME,
            "HOST": self.HOST,
            "PORT": self.PORT,
            "BCRYPT_ROUNDS": self.BCRYPT_ROUNDS,
            "SESSION_STORE": self.SESSION_STORE,
            "ENV": self.ENV,
        }

