# src/punchlist/config.py

"""Centralized settings loaded from environment variables (+ optional .env).

Design goals:
- One Settings object for the whole app.
- No secrets required at import time.
- Modules that need settings take them as a parameter; get_settings() is only
  called by the composition root.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Optional

from dotenv import load_dotenv

ENV_PREFIX = "PUNCHLIST"

load_dotenv(override=False)


def _k(suffix: str) -> str:
    """Build env var name with the project prefix."""
    return f"{ENV_PREFIX}_{suffix}"


def _env(name: str, default: str = "") -> str:
    v = os.getenv(name)
    return default if v is None else v


def _first_env(*names: str, default: str | None = None) -> str | None:
    for n in names:
        v = os.getenv(n)
        if v is not None and v.strip() != "":
            return v
    return default


def _env_float_opt(name: str) -> Optional[float]:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return None
    try:
        return float(raw)
    except ValueError:
        return None


def _env_path(name: str, default: Path) -> Path:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return Path(raw).expanduser()


@dataclass(frozen=True, slots=True)
class Settings:
    # ---- App / logging ----
    app_name: str
    log_level: str

    # ---- Document store ----
    app_id: str
    store_backend: str
    data_dir: Path
    store_db_path: Path
    store_poll_seconds: float

    # ---- Identity ----
    auth_token: Optional[str]

    # ---- Task suggestions ----
    suggest_provider: str
    suggest_timeout_seconds: Optional[float]

    gemini_api_key: Optional[str]
    gemini_base_url: str
    gemini_model: str

    openrouter_api_key: Optional[str]
    openrouter_base_url: str
    openrouter_model: str
    extra_headers: Dict[str, str]

    # ---- Shareable links ----
    public_url: str

    @property
    def units_collection(self) -> str:
        return units_collection_path(self.app_id)

    @staticmethod
    def from_env() -> "Settings":
        app_name = _env(_k("APP_NAME"), "punchlist")
        log_level = _env(_k("LOG_LEVEL"), "INFO")

        app_id = _env(_k("APP_ID"), "default-app-id").strip() or "default-app-id"
        store_backend = _env(_k("STORE_BACKEND"), "sqlite").strip().lower()

        data_dir = _env_path(_k("DATA_DIR"), Path(".local/punchlist"))
        store_db_path = _env_path(_k("STORE_DB_PATH"), data_dir / "documents.sqlite3")
        store_poll_seconds = _env_float_opt(_k("STORE_POLL_SECONDS")) or 0.5

        auth_token = _first_env(_k("AUTH_TOKEN"), default=None)

        suggest_provider = _env(_k("SUGGEST_PROVIDER"), "gemini").strip().lower()
        suggest_timeout_seconds = _env_float_opt(_k("SUGGEST_TIMEOUT_SECONDS"))

        gemini_api_key = _first_env(_k("GEMINI_API_KEY"), "GEMINI_API_KEY", default=None)
        gemini_base_url = _env(
            _k("GEMINI_BASE_URL"), "https://generativelanguage.googleapis.com/v1beta"
        )
        gemini_model = _env(_k("GEMINI_MODEL"), "gemini-2.0-flash")

        openrouter_api_key = _first_env(_k("OPENROUTER_API_KEY"), "OPENROUTER_API_KEY", default=None)
        openrouter_base_url = _env(_k("OPENROUTER_BASE_URL"), "https://openrouter.ai/api/v1")
        openrouter_model = _env(_k("OPENROUTER_MODEL"), "qwen/qwen-2.5-72b-instruct:free")

        http_referer = _env(_k("HTTP_REFERER"), "https://example.com")
        extra_headers = {
            "HTTP-Referer": http_referer,
            "X-Title": app_name,
        }

        public_url = _env(_k("PUBLIC_URL"), "http://localhost:8000/")

        return Settings(
            app_name=app_name,
            log_level=log_level,
            app_id=app_id,
            store_backend=store_backend,
            data_dir=data_dir,
            store_db_path=store_db_path,
            store_poll_seconds=store_poll_seconds,
            auth_token=auth_token,
            suggest_provider=suggest_provider,
            suggest_timeout_seconds=suggest_timeout_seconds,
            gemini_api_key=gemini_api_key,
            gemini_base_url=gemini_base_url,
            gemini_model=gemini_model,
            openrouter_api_key=openrouter_api_key,
            openrouter_base_url=openrouter_base_url,
            openrouter_model=openrouter_model,
            extra_headers=extra_headers,
            public_url=public_url,
        )


def units_collection_path(app_id: str) -> str:
    """Collection holding unit documents, scoped by the deployment namespace."""
    return f"artifacts/{app_id}/public/data/units"


_SETTINGS: Settings | None = None


def get_settings() -> Settings:
    global _SETTINGS
    if _SETTINGS is None:
        _SETTINGS = Settings.from_env()
    return _SETTINGS
