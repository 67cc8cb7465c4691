# src/ontrack/core/ports.py

from __future__ import annotations

"""
Ports (interfaces) used by the core.

The board service and the move protocol depend on this Protocol instead of the
concrete SQLite store, so storage stays swappable and tests can use fakes.
"""

from collections.abc import Iterable, Sequence
from typing import Protocol

from ..plan.plan_models import PlanItem


class PlanItemRepo(Protocol):
    # Reads
    def get_item(self, item_id: int) -> PlanItem | None: ...
    def fetch_by_week(self, week_start: str) -> list[PlanItem]: ...
    def fetch_by_week_starts(self, week_starts: Iterable[str]) -> list[PlanItem]: ...

    # Mutations (each one atomic)
    def create(
            self,
            *,
            task_id: int,
            week_start: str,
            day_index: int,
            planned_hours: float,
    ) -> int: ...

    def delete(self, item_id: int) -> bool: ...
    def update_hours(self, item_id: int, planned_hours: float) -> None: ...

    def update_assignment(
            self,
            item_id: int,
            *,
            day_index: int | None = None,
            order: int | None = None,
    ) -> bool: ...

    def move_item(self, item_id: int, *, to_day_index: int, new_order: int) -> bool: ...

    def reorder_column(self, week_start: str, day_index: int, ordered_ids: Sequence[int]) -> None: ...
