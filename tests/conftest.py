# tests/conftest.py

from __future__ import annotations

from pathlib import Path
from types import SimpleNamespace

import pytest

from ontrack.cli.bootstrap import create_initial_state
from ontrack.core.state import AppState
from ontrack.plan.plan_store import PlanItemStore

from .fakes import FlakyPlanStore

WEEK = "2025-01-06"  # a Monday


@pytest.fixture()
def settings(tmp_path: Path) -> SimpleNamespace:
    """
    Minimal settings object compatible with bootstrap and the board.

    A SimpleNamespace instead of config.Settings: no env or .env reads in tests.
    """
    return SimpleNamespace(
        app_name="ontrack-test",
        log_level="DEBUG",
        console_enabled=False,
        weekly_capacity=40.0,
        data_dir=tmp_path,
        plan_db_path=tmp_path / "plan.sqlite3",
    )


@pytest.fixture()
def store(settings: SimpleNamespace) -> PlanItemStore:
    return PlanItemStore(settings.plan_db_path)


@pytest.fixture()
def flaky_store(settings: SimpleNamespace) -> FlakyPlanStore:
    return FlakyPlanStore(settings.plan_db_path)


@pytest.fixture()
def state(settings: SimpleNamespace) -> AppState:
    """
    AppState wired through the real composition root.

    Real SQLite store under tmp_path.
    """
    return create_initial_state(settings=settings)
