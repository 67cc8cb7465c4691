# src/ontrack/config.py

"""Centralized settings loaded from environment variables (+ optional .env).

Design goals:
- One Settings object for the whole app (normal "settings layer").
- Nothing required at import time; every value has a default.
- Weekly capacity is injected into the board from here, never owned by it.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

ENV_PREFIX = "ONTRACK"

DEFAULT_WEEKLY_CAPACITY = 40.0


def _k(suffix: str) -> str:
    """Build env var name with the project prefix."""
    return f"{ENV_PREFIX}_{suffix}"


load_dotenv(override=False)


def _env(name: str, default: str = "") -> str:
    v = os.getenv(name)
    return default if v is None else v


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "y", "on"}


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

    # ---- Connector flags ----
    console_enabled: bool

    # ---- Board ----
    weekly_capacity: float

    # ---- Local data paths (ignored by git) ----
    data_dir: Path
    plan_db_path: Path

    @property
    def daily_capacity(self) -> float:
        return self.weekly_capacity / 5

    @staticmethod
    def from_env() -> "Settings":
        app_name = _env(_k("APP_NAME"), "ontrack").strip() or "ontrack"
        log_level = _env(_k("LOG_LEVEL"), "INFO")

        console_enabled = _env_bool(_k("CONSOLE_ENABLED"), True)

        weekly_capacity = _env_float(_k("WEEKLY_CAPACITY"), DEFAULT_WEEKLY_CAPACITY)
        if not weekly_capacity > 0:
            weekly_capacity = DEFAULT_WEEKLY_CAPACITY

        data_dir = _env_path(_k("DATA_DIR"), Path(".local/ontrack"))
        plan_db_path = _env_path(_k("PLAN_DB_PATH"), data_dir / "plan.sqlite3")

        return Settings(
            app_name=app_name,
            log_level=log_level,
            console_enabled=console_enabled,
            weekly_capacity=weekly_capacity,
            data_dir=data_dir,
            plan_db_path=plan_db_path,
        )


SETTINGS = Settings.from_env()


def get_settings() -> Settings:
    return SETTINGS
