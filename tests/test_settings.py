from __future__ import annotations

import logging
import os

import pytest

from settings import LOG_HANDLER_NAME, Settings, configure_logging, load_dotenv, required_env


def test_load_dotenv_sets_missing_keys_only(tmp_path, monkeypatch):
    env_file = tmp_path / ".env"
    env_file.write_text(
        "# comment\n"
        "DATABASE_URL='postgresql://db/tracker'\n"
        "AUTH_URL = \"https://auth.example.test\"\n"
        "malformed line\n"
        "\n"
        "LOG_LEVEL=debug\n",
        encoding="utf-8",
    )
    # set-then-delete so monkeypatch restores whatever load_dotenv writes
    for name in ("DATABASE_URL", "AUTH_URL"):
        monkeypatch.setenv(name, "placeholder")
        monkeypatch.delenv(name)
    monkeypatch.setenv("LOG_LEVEL", "WARNING")

    load_dotenv(str(env_file))

    assert os.environ["DATABASE_URL"] == "postgresql://db/tracker"
    assert os.environ["AUTH_URL"] == "https://auth.example.test"
    assert os.environ["LOG_LEVEL"] == "WARNING"


def test_load_dotenv_missing_file_is_a_noop(tmp_path):
    load_dotenv(str(tmp_path / "absent.env"))


def test_required_env():
    assert required_env("DATABASE_URL", {"DATABASE_URL": "x"}) == "x"
    with pytest.raises(RuntimeError, match="DATABASE_URL is not configured"):
        required_env("DATABASE_URL", {"DATABASE_URL": ""})


def test_settings_defaults():
    settings = Settings.from_env({})
    assert settings.auth_cookie == "access_token"
    assert settings.login_url == "/login"
    assert settings.calendar_marker_cap == 6
    assert settings.port == 5001
    assert settings.run_db_init is False
    assert settings.debug is False


def test_settings_parse_and_fall_back_on_malformed_numbers():
    settings = Settings.from_env({
        "AUTH_URL": "https://auth.example.test/auth/v1/",
        "AUTH_TIMEOUT_SECONDS": "soon",
        "PORT": "8080",
        "DB_POOL_MAX": "0",
        "RUN_DB_INIT": "1",
        "LOG_LEVEL": "debug",
    })
    assert settings.auth_url == "https://auth.example.test/auth/v1"
    assert settings.auth_timeout_seconds == 5.0
    assert settings.port == 8080
    assert settings.db_pool_max == 1
    assert settings.run_db_init is True
    assert settings.log_level == "DEBUG"


@pytest.mark.parametrize("raw, expected", [("0", 1), ("7", 7), ("20", 8)])
def test_calendar_marker_cap_is_clamped(raw, expected):
    assert Settings.from_env({"CALENDAR_MARKER_CAP": raw}).calendar_marker_cap == expected


def test_database_url_is_required_when_asked_for():
    assert Settings.from_env({"DATABASE_URL": "postgresql://db/tracker"}).require_database_url() == (
        "postgresql://db/tracker"
    )
    with pytest.raises(RuntimeError, match="DATABASE_URL is not configured"):
        Settings.from_env({}).require_database_url()


def test_configure_logging_adds_a_single_handler(monkeypatch):
    root = logging.getLogger()
    previous_level = root.level
    monkeypatch.setattr(root, "handlers", list(root.handlers))
    try:
        configure_logging("debug")
        configure_logging("INFO")
        named = [h for h in root.handlers if h.get_name() == LOG_HANDLER_NAME]
        assert len(named) == 1
        assert root.level == logging.INFO
    finally:
        root.setLevel(previous_level)
