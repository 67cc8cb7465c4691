# src/ontrack/core/state.py

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from ..plan.plan_api import WeeklyPlanBoard
from .ports import PlanItemRepo


@dataclass
class AppState:
    # Store Settings on the state for easy access in other modules later.
    settings: Any

    plan_store: PlanItemRepo
    board: WeeklyPlanBoard
