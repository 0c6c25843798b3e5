# src/taskline/config.py

"""Centralized settings loaded from environment variables (+ optional .env).

Design goals:
- One Settings object for the whole app.
- Nothing touches the filesystem at import time.
- The storage directory is resolved here, never inside the task core.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

ENV_PREFIX = "TASKLINE"
DEFAULT_NAMESPACE = "default"


def _k(suffix: str) -> str:
    """Build env var name with the project prefix."""
    return f"{ENV_PREFIX}_{suffix}"


def _env(name: str, default: str = "") -> str:
    v = os.getenv(name)
    return default if v is None else v


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


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        return default


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
    log_dir: Path

    # ---- Storage ----
    data_dir: Path
    namespace: str
    create_dir: bool
    lock_timeout: float
    rotate: int

    # ---- Task behaviour ----
    autorelease: bool
    starttag: bool
    stopondone: bool
    clearspecialtags: bool

    @property
    def namespace_dir(self) -> Path:
        return self.data_dir / self.namespace

    @property
    def tasks_dir(self) -> Path:
        return self.namespace_dir / "tasks"

    @staticmethod
    def from_env(*, dotenv: bool = True) -> "Settings":
        if dotenv:
            load_dotenv(override=False)

        app_name = _env(_k("APP_NAME"), "taskline") or "taskline"
        log_level = _env(_k("LOG_LEVEL"), "WARNING")

        data_dir = _env_path(_k("DATA_DIR"), Path("~/.local/share/taskline").expanduser())
        log_dir = _env_path(_k("LOG_DIR"), data_dir)
        namespace = _env(_k("NAMESPACE"), DEFAULT_NAMESPACE).strip() or DEFAULT_NAMESPACE

        return Settings(
            app_name=app_name,
            log_level=log_level,
            log_dir=log_dir,
            data_dir=data_dir,
            namespace=namespace,
            create_dir=_env_bool(_k("CREATE_DIR"), True),
            lock_timeout=max(0.0, _env_float(_k("LOCK_TIMEOUT"), 10.0)),
            rotate=max(0, _env_int(_k("ROTATE"), 3)),
            autorelease=_env_bool(_k("AUTORELEASE"), True),
            starttag=_env_bool(_k("STARTTAG"), True),
            stopondone=_env_bool(_k("STOPONDONE"), True),
            clearspecialtags=_env_bool(_k("CLEARSPECIALTAGS"), True),
        )


_SETTINGS: Settings | None = None


def get_settings() -> Settings:
    global _SETTINGS
    if _SETTINGS is None:
        _SETTINGS = Settings.from_env()
    return _SETTINGS
