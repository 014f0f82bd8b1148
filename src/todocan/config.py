# src/todocan/config.py

"""Centralized settings loaded from environment variables (+ optional .env).

Design goals:
- One Settings object for the whole app.
- No secrets required at import time (the Gemini key is only needed for generation).
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Dict, List, Optional

ENV_PREFIX = "TODOCAN"


class ConfigurationError(RuntimeError):
    """Required configuration (e.g. a service credential) is missing."""


def _k(suffix: str) -> str:
    """Build env var name with the project prefix."""
    return f"{ENV_PREFIX}_{suffix}"


def _load_dotenv_if_available() -> None:
    """Load .env locally if python-dotenv is installed. Safe no-op otherwise."""
    try:
        from dotenv import load_dotenv  # type: ignore
    except ImportError:
        return
    load_dotenv(override=False)


_load_dotenv_if_available()


def _env(name: str, default: str = "") -> str:
    v = os.getenv(name)
    return default if v is None else v


def _first_env(*names: str, default: str | None = None) -> str | None:
    for n in names:
        v = os.getenv(n)
        if v is not None and v.strip() != "":
            return v
    return default


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _env_list(name: str, default: List[str]) -> List[str]:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return list(default)
    return [p.strip() for p in raw.replace(",", " ").split() if p.strip()]


def _env_path(name: str, default: Path) -> Path:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return Path(raw).expanduser()


def _parse_tokens(items: List[str]) -> Dict[str, str]:
    """Parse "token:user_id" pairs; malformed entries are skipped."""
    out: Dict[str, str] = {}
    for item in items:
        token, sep, user_id = item.partition(":")
        if not sep or not token.strip() or not user_id.strip():
            continue
        out[token.strip()] = user_id.strip()
    return out


@dataclass(frozen=True, slots=True)
class Settings:
    # ---- App / logging ----
    app_name: str
    log_level: str

    # ---- Local data paths (ignored by git) ----
    data_dir: Path
    tasks_db_path: Path

    # ---- Gemini ----
    gemini_api_key: Optional[str]
    gemini_base_url: str
    gemini_fallback_models: List[str]
    gemini_connect_timeout: float
    gemini_read_timeout: float

    # ---- Auth ----
    api_tokens: Dict[str, str]
    admin_users: List[str]

    # ---- HTTP ----
    http_host: str
    http_port: int

    @staticmethod
    def from_env() -> "Settings":
        app_name = _env(_k("APP_NAME"), "todocan") or "todocan"
        log_level = _env(_k("LOG_LEVEL"), "INFO")

        data_dir = _env_path(_k("DATA_DIR"), Path(".local/todocan"))
        tasks_db_path = _env_path(_k("TASKS_DB_PATH"), data_dir / "tasks.sqlite3")

        # Accept the bare GEMINI_API_KEY used by most Gemini tooling.
        gemini_api_key = _first_env(_k("GEMINI_API_KEY"), "GEMINI_API_KEY", default=None)
        gemini_base_url = _env(
            _k("GEMINI_BASE_URL"), "https://generativelanguage.googleapis.com/v1beta"
        ).rstrip("/")
        gemini_fallback_models = _env_list(
            _k("GEMINI_FALLBACK_MODELS"),
            ["models/gemini-2.0-flash", "models/gemini-1.5-flash"],
        )
        connect_timeout = _env_float(_k("GEMINI_CONNECT_TIMEOUT_SECONDS"), 5.0)
        read_timeout = _env_float(_k("GEMINI_READ_TIMEOUT_SECONDS"), 30.0)

        api_tokens = _parse_tokens(_env_list(_k("API_TOKENS"), []))
        admin_users = _env_list(_k("ADMIN_USERS"), [])

        http_host = _env(_k("HTTP_HOST"), "127.0.0.1")
        http_port = _env_int(_k("HTTP_PORT"), 8000)

        return Settings(
            app_name=app_name,
            log_level=log_level,
            data_dir=data_dir,
            tasks_db_path=tasks_db_path,
            gemini_api_key=gemini_api_key,
            gemini_base_url=gemini_base_url,
            gemini_fallback_models=gemini_fallback_models,
            gemini_connect_timeout=connect_timeout,
            gemini_read_timeout=max(read_timeout, connect_timeout),
            api_tokens=api_tokens,
            admin_users=admin_users,
            http_host=http_host,
            http_port=http_port,
        )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings.from_env()


def require_gemini_api_key(settings: Settings) -> str:
    """Return the Gemini key or fail fast; only generation needs it."""
    key = (settings.gemini_api_key or "").strip()
    if not key:
        raise ConfigurationError("Missing GEMINI_API_KEY")
    return key
