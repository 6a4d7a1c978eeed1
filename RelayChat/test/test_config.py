"""
Tests for environment-driven configuration.
"""

import importlib.util
import logging

import pytest

import RelayChat.config as config_module
from RelayChat.config import DEFAULT_SESSION_SECRET, Config


def test_defaults():
    cfg = Config({})

    assert cfg.DATABASE_URI == "sqlite:///relaychat.db"
    assert cfg.HOST == "0.0.0.0"
    assert cfg.PORT == 3000
    assert cfg.SESSION_MAX_AGE == 14 * 24 * 60 * 60
    assert cfg.SESSION_COOKIE_NAME == "relaychat.sid"
    assert cfg.BCRYPT_ROUNDS == 10
    assert cfg.SESSION_STORE == "sqlite"
    assert cfg.ENV == "development"


def test_environment_overrides():
    cfg = Config({
        "DATABASE_URI": "sqlite:////var/lib/relaychat/chat.db",
        "SESSION_SECRET": "s3cret",
        "PORT": "8080",
        "HOST": "127.0.0.1",
        "SESSION_MAX_AGE": "3600",
        "SESSION_COOKIE_NAME": "sid",
        "BCRYPT_ROUNDS": "12",
        "RELAYCHAT_ENV": "Production",
    })

    assert cfg.SESSION_SECRET == "s3cret"
    assert cfg.PORT == 8080
    assert cfg.HOST == "127.0.0.1"
    assert cfg.SESSION_MAX_AGE == 3600
    assert cfg.SESSION_COOKIE_NAME == "sid"
    assert cfg.BCRYPT_ROUNDS == 12
    assert cfg.ENV == "production"
    assert cfg.database_path == "/var/lib/relaychat/chat.db"


def test_missing_secret_warns(caplog):
    with caplog.at_level(logging.WARNING, logger="RelayChat.config"):
        cfg = Config({})

    assert cfg.SESSION_SECRET == DEFAULT_SESSION_SECRET
    assert "SESSION_SECRET" in caplog.text


def test_invalid_port():
    with pytest.raises(ValueError):
        Config({"PORT": "not-a-port"})


def test_session_store_choice():
    assert Config({"SESSION_STORE": "Memory"}).SESSION_STORE == "memory"

    with pytest.raises(ValueError):
        Config({"SESSION_STORE": "redis"})


@pytest.mark.parametrize("uri,path", [
    ("sqlite:///relaychat.db", "relaychat.db"),
    ("sqlite:///", ":memory:"),
    ("sqlite://", ":memory:"),
    ("data/chat.db", "data/chat.db"),
])
def test_database_path(uri, path):
    assert Config({"DATABASE_URI": uri}).database_path == path


def test_get_config_masks_secret():
    values = Config({"SESSION_SECRET": "s3cret"}).get_config()

    assert values["SESSION_SECRET"] == "***"
    assert "s3cret" not in values.values()


def test_import_reads_nothing(caplog, monkeypatch):
    monkeypatch.delenv("SESSION_SECRET", raising=False)
    spec = importlib.util.spec_from_file_location("relaychat_config_fresh", config_module.__file__)
    module = importlib.util.module_from_spec(spec)

    with caplog.at_level(logging.WARNING):
        spec.loader.exec_module(module)

    assert caplog.records == []
    assert not hasattr(module, "config")
