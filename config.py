# config.py

"""Settings loaded from environment variables.

One Settings object for the whole app. Every value has a local default so
nothing is required at import time.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Optional

ENV_PREFIX = "TASKTRAIL"


def _k(suffix: str) -> str:
    """Build env var name with the project prefix."""
    return f"{ENV_PREFIX}_{suffix}"


def _first_env(*names: str, default: Optional[str] = None) -> Optional[str]:
    for n in names:
        v = os.getenv(n)
        if v is not None and v.strip() != "":
            return v
    return default


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "y", "on"}


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_path(name: str, default: Path) -> Path:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return Path(raw).expanduser()


@dataclass(frozen=True)
class Settings:
    # ---- Database ----
    database_url: str
    sql_echo: bool

    # ---- Attachments ----
    upload_dir: Path
    max_upload_bytes: int

    # ---- Logging ----
    log_dir: Path
    log_level: str


def load_settings() -> Settings:
    return Settings(
        database_url=_first_env(_k("DATABASE_URL"), "DATABASE_URL",
                                default="sqlite:///tasktrail.db"),
        sql_echo=_env_bool(_k("SQL_ECHO"), False),
        upload_dir=_env_path(_k("UPLOAD_DIR"), Path("uploads")),
        max_upload_bytes=_env_int(_k("MAX_UPLOAD_BYTES"), 10 * 1024 * 1024),
        log_dir=_env_path(_k("LOG_DIR"), Path(".local/tasktrail")),
        log_level=(_first_env(_k("LOG_LEVEL"), default="INFO") or "INFO").upper(),
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return load_settings()
