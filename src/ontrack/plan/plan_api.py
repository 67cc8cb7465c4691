# src/ontrack/plan/plan_api.py

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Sequence
from datetime import date
from typing import Any, TypeVar

from ..core.errors import InvalidPlanItemError, PlanItemNotFoundError
from ..core.ports import PlanItemRepo
from .layout import WeekLayout, build_week_layout
from .month import MonthPlan, aggregate_month
from .moves import DropTarget, MovePlan, apply_move, compute_target_assignment
from .plan_models import PlanItem, validate_planned_hours
from .weeks import to_week_start, week_starts_for_month

logger = logging.getLogger(__name__)

R = TypeVar("R")

DEFAULT_WEEKLY_CAPACITY = 40.0


class WeeklyPlanBoard:
    """
    Async facade over a PlanItemRepo for one board view.

    - store calls run in a worker thread (the SQLite store is blocking)
    - mutations are serialized with a lock (single writer)
    - every successful mutation re-fetches the affected week, so layout is
      always computed from authoritative rows
    - on failure the error is logged and re-raised; `items` keeps the last
      consistent state
    """

    def __init__(self, store: PlanItemRepo, *, weekly_capacity: float = DEFAULT_WEEKLY_CAPACITY) -> None:
        self._store = store
        self._lock = asyncio.Lock()
        self.weekly_capacity = float(weekly_capacity)

        self.week_start: str | None = None
        self.items: list[PlanItem] = []
        self.month_items: list[PlanItem] = []
        self.is_loading = False

    # ---- helpers ----

    async def _call(self, fn: Callable[..., R], *args: Any, **kwargs: Any) -> R:
        return await asyncio.to_thread(fn, *args, **kwargs)

    async def _mutate(self, label: str, week_start: str, fn: Callable[..., R], /, *args: Any, **kwargs: Any) -> R:
        async with self._lock:
            try:
                result = await self._call(fn, *args, **kwargs)
            except (InvalidPlanItemError, PlanItemNotFoundError):
                raise
            except Exception:
                logger.exception("Failed to %s (week=%s)", label, week_start)
                raise
            await self.fetch_week(week_start)
            return result

    async def _require_item(self, item_id: int) -> PlanItem:
        item = await self._call(self._store.get_item, item_id)
        if item is None:
            raise PlanItemNotFoundError(item_id)
        return item

    def _current_week(self, week_start: str | date | None) -> str:
        if week_start is not None:
            return to_week_start(week_start)
        if self.week_start is None:
            raise InvalidPlanItemError("no week loaded; call fetch_week() first")
        return self.week_start

    # ---- reads ----

    async def fetch_week(self, week_start: str | date) -> list[PlanItem]:
        ws = to_week_start(week_start)
        self.is_loading = True
        try:
            items = await self._call(self._store.fetch_by_week, ws)
        except Exception:
            logger.exception("Failed to load plan week=%s", ws)
            raise
        finally:
            self.is_loading = False
        self.week_start = ws
        self.items = items
        return items

    async def fetch_month(self, year: int, month: int) -> list[PlanItem]:
        week_starts = week_starts_for_month(year, month)
        self.is_loading = True
        try:
            items = await self._call(self._store.fetch_by_week_starts, week_starts)
        except Exception:
            logger.exception("Failed to load plan month=%04d-%02d", year, month)
            raise
        finally:
            self.is_loading = False
        self.month_items = items
        return items

    def week_layout(self, weekly_capacity: float | None = None) -> WeekLayout:
        cap = self.weekly_capacity if weekly_capacity is None else weekly_capacity
        return build_week_layout(self.items, cap, week_start=self.week_start)

    async def month_plan(self, year: int, month: int, weekly_capacity: float | None = None) -> MonthPlan:
        items = await self.fetch_month(year, month)
        cap = self.weekly_capacity if weekly_capacity is None else weekly_capacity
        return aggregate_month(items, year, month, cap)

    # ---- mutations ----

    async def add_item(
            self,
            task_id: int,
            day_index: int,
            planned_hours: float,
            *,
            week_start: str | date | None = None,
    ) -> int:
        ws = self._current_week(week_start)
        item_id = await self._mutate(
            "add task to plan",
            ws,
            self._store.create,
            task_id=task_id,
            week_start=ws,
            day_index=day_index,
            planned_hours=planned_hours,
        )
        logger.info("Planned task=%s on week=%s day=%s (%sh) as item=%s", task_id, ws, day_index, planned_hours, item_id)
        return item_id

    async def remove_item(self, item_id: int) -> bool:
        item = await self._call(self._store.get_item, item_id)
        if item is None:
            return False
        removed = await self._mutate("remove task from plan", item.week_start, self._store.delete, item_id)
        logger.info("Removed plan item=%s (task=%s)", item_id, item.task_id)
        return removed

    async def update_planned_hours(self, item_id: int, hours: float) -> None:
        validate_planned_hours(hours)
        item = await self._require_item(item_id)
        await self._mutate("update hours", item.week_start, self._store.update_hours, item_id, hours)

    async def move_item(self, item_id: int, to_day_index: int, new_order: int) -> bool:
        item = await self._require_item(item_id)
        return await self._mutate(
            "move task",
            item.week_start,
            self._store.move_item,
            item_id,
            to_day_index=to_day_index,
            new_order=new_order,
        )

    async def reorder_day(
            self,
            day_index: int,
            ordered_ids: Sequence[int],
            *,
            week_start: str | date | None = None,
    ) -> None:
        ws = self._current_week(week_start)
        await self._mutate("reorder plan", ws, self._store.reorder_column, ws, day_index, list(ordered_ids))

    async def apply(self, plan: MovePlan) -> bool:
        return await self._mutate(f"{plan.kind.value} task", plan.week_start, apply_move, self._store, plan)

    async def handle_drop(self, dragged_id: int, target: DropTarget | None) -> bool:
        """
        Commit a finished drag against the currently loaded week.

        Returns False when the drop resolves to nothing (released outside any
        droppable, onto itself, or onto its current position).
        """
        plan = compute_target_assignment(self.items, dragged_id, target)
        if plan is None:
            return False
        changed = await self.apply(plan)
        if changed:
            logger.info(
                "Drop %s: item=%s -> day=%s order=%s",
                plan.kind.value,
                plan.item_id,
                plan.day_index,
                plan.order,
            )
        return changed
