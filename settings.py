from __future__ import annotations

import logging
import os
import sys
from dataclasses import dataclass
from typing import Mapping

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
LOG_DATEFMT = "%Y-%m-%d %H:%M:%S"
LOG_HANDLER_NAME = "workstream-tracker"

MARKER_CAP_MIN = 1
MARKER_CAP_MAX = 8


def load_dotenv(path: str = ".env") -> None:
    if not os.path.exists(path):
        return

    try:
        with open(path, "r", encoding="utf-8") as env_file:
            for raw_line in env_file:
                line = raw_line.strip()
                if not line or line.startswith("#") or "=" not in line:
                    continue
                key, value = line.split("=", 1)
                key = key.strip()
                value = value.strip().strip("'").strip('"')
                if key:
                    os.environ.setdefault(key, value)
    except OSError:
        logger.exception("Failed to read %s", path)


def required_env(name: str, environ: Mapping[str, str] | None = None) -> str:
    source = os.environ if environ is None else environ
    value = source.get(name)
    if not value:
        raise RuntimeError(f"{name} is not configured")
    return value


def _env_int(environ: Mapping[str, str], name: str, default: int) -> int:
    try:
        return int(environ.get(name, default))
    except (TypeError, ValueError):
        logger.warning("Ignoring malformed %s=%r", name, environ.get(name))
        return default


def _env_float(environ: Mapping[str, str], name: str, default: float) -> float:
    try:
        return float(environ.get(name, default))
    except (TypeError, ValueError):
        logger.warning("Ignoring malformed %s=%r", name, environ.get(name))
        return default


@dataclass(frozen=True)
class Settings:
    """Runtime configuration read from the process environment."""

    database_url: str = ""
    auth_url: str = ""
    auth_api_key: str = ""
    auth_cookie: str = "access_token"
    login_url: str = "/login"
    auth_timeout_seconds: float = 5.0
    db_pool_max: int = 10
    calendar_marker_cap: int = 6
    run_db_init: bool = False
    log_level: str = "INFO"
    port: int = 5001
    debug: bool = False

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "Settings":
        env = os.environ if environ is None else environ
        marker_cap = _env_int(env, "CALENDAR_MARKER_CAP", 6)
        return cls(
            database_url=env.get("DATABASE_URL", ""),
            auth_url=env.get("AUTH_URL", "").rstrip("/"),
            auth_api_key=env.get("AUTH_API_KEY", ""),
            auth_cookie=env.get("AUTH_COOKIE", "") or "access_token",
            login_url=env.get("LOGIN_URL", "") or "/login",
            auth_timeout_seconds=_env_float(env, "AUTH_TIMEOUT_SECONDS", 5.0),
            db_pool_max=max(1, _env_int(env, "DB_POOL_MAX", 10)),
            calendar_marker_cap=max(MARKER_CAP_MIN, min(MARKER_CAP_MAX, marker_cap)),
            run_db_init=env.get("RUN_DB_INIT", "0") == "1",
            log_level=(env.get("LOG_LEVEL", "") or "INFO").upper(),
            port=_env_int(env, "PORT", 5001),
            debug=env.get("FLASK_DEBUG", "0") == "1",
        )

    def require_database_url(self) -> str:
        return required_env("DATABASE_URL", {"DATABASE_URL": self.database_url})


def configure_logging(level_name: str = "INFO") -> None:
    """Attach one stdout handler to the root logger; safe to call repeatedly."""
    level = getattr(logging, level_name.upper(), logging.INFO)
    root = logging.getLogger()
    root.setLevel(level)
    if any(h.get_name() == LOG_HANDLER_NAME for h in root.handlers):
        return
    handler = logging.StreamHandler(sys.stdout)
    handler.set_name(LOG_HANDLER_NAME)
    handler.setFormatter(logging.Formatter(LOG_FORMAT, LOG_DATEFMT))
    root.addHandler(handler)
    logging.getLogger(__name__).info("Logging initialized at %s", logging.getLevelName(level))
