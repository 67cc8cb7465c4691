# src/ontrack/cli/bootstrap.py

"""
CLI bootstrap helpers.

This module is the "composition root":
- loads settings once,
- ensures local (gitignored) directories exist,
- wires the SQLite plan store and the board service into AppState.
"""

from __future__ import annotations

import logging

from ..config import get_settings
from ..core.state import AppState
from ..plan.plan_api import WeeklyPlanBoard
from ..plan.plan_store import PlanItemStore

logger = logging.getLogger(__name__)


def _ensure_local_dirs(settings) -> None:
    settings.data_dir.mkdir(parents=True, exist_ok=True)
    settings.plan_db_path.parent.mkdir(parents=True, exist_ok=True)


def create_initial_state(*, settings=None) -> AppState:
    """
    Create AppState from the provided settings.

    Keeping settings injectable makes the app easier to test and avoids hidden global config reads.
    If settings is None, falls back to get_settings().
    """
    if settings is None:
        settings = get_settings()

    _ensure_local_dirs(settings)

    store = PlanItemStore(settings.plan_db_path)
    board = WeeklyPlanBoard(store, weekly_capacity=settings.weekly_capacity)
    logger.debug("Board wired db=%s weekly_capacity=%s", settings.plan_db_path, settings.weekly_capacity)

    return AppState(settings=settings, plan_store=store, board=board)
