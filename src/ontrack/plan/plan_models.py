# src/ontrack/plan/plan_models.py

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any

from ..core.errors import InvalidPlanItemError

DAYS_PER_WEEK = 5
DAY_LABELS: tuple[str, ...] = ("Mon", "Tue", "Wed", "Thu", "Fri")


@dataclass(slots=True)
class PlanItem:
    """
    A task placed on the weekly board.

    Notes:
    - week_start is the ISO date (YYYY-MM-DD) of the week's Monday.
    - order is the position inside the (week_start, day_index) column and is kept
      contiguous from 0 by the store after every mutation.
    - planned_hours is the visual duration only; it is not checked against the
      task's remaining estimate.
    """

    id: int
    task_id: int
    week_start: str
    day_index: int
    order: int
    planned_hours: float
    created_at: float

    @property
    def column(self) -> tuple[str, int]:
        return (self.week_start, self.day_index)


@dataclass(slots=True, frozen=True)
class ColumnSlot:
    """Rendering projection of one PlanItem inside its day column (never persisted)."""

    item: PlanItem
    start_offset: float
    clipped_hours: float
    overflow_hours: float

    @property
    def end_offset(self) -> float:
        return self.start_offset + self.item.planned_hours

    @property
    def overflows(self) -> bool:
        return self.overflow_hours > 0


def is_valid_day_index(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and 0 <= value < DAYS_PER_WEEK


def validate_day_index(value: Any) -> int:
    if not is_valid_day_index(value):
        raise InvalidPlanItemError(f"day_index must be an integer 0..{DAYS_PER_WEEK - 1}, got {value!r}")
    return int(value)


def validate_planned_hours(value: Any) -> float:
    if isinstance(value, bool):
        raise InvalidPlanItemError(f"planned_hours must be a number, got {value!r}")
    try:
        hours = float(value)
    except (TypeError, ValueError):
        raise InvalidPlanItemError(f"planned_hours must be a number, got {value!r}") from None
    if not math.isfinite(hours) or hours <= 0:
        raise InvalidPlanItemError(f"planned_hours must be > 0, got {value!r}")
    return hours


def validate_order(value: Any) -> int:
    if not isinstance(value, int) or isinstance(value, bool) or value < 0:
        raise InvalidPlanItemError(f"order must be a non-negative integer, got {value!r}")
    return int(value)
