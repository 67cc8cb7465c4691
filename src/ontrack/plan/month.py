# src/ontrack/plan/month.py

"""
Month (Gantt-style) aggregation.

Two read-only reductions over the plan:
- aggregate_month(): per-task per-week planned totals and per-week totals
  versus weekly capacity, built from PlanItems.
- pack_tasks() / week_overlap(): lay tasks end-to-end by remaining hours and
  read how much of each falls into a given week of the month.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field

from .plan_models import PlanItem
from .weeks import week_starts_for_month


@dataclass(slots=True, frozen=True)
class WeekTotal:
    week_start: str
    planned_hours: float
    capacity: float

    @property
    def is_over_capacity(self) -> bool:
        return self.planned_hours > self.capacity

    @property
    def free_hours(self) -> float:
        return max(self.capacity - self.planned_hours, 0.0)


@dataclass(slots=True)
class MonthPlan:
    year: int
    month: int
    weekly_capacity: float
    week_starts: list[str]
    task_ids: list[int] = field(default_factory=list)
    # task_id -> week_start -> planned hours
    hours: dict[int, dict[str, float]] = field(default_factory=dict)
    week_totals: list[WeekTotal] = field(default_factory=list)

    @property
    def month_capacity(self) -> float:
        return len(self.week_starts) * self.weekly_capacity

    @property
    def total_planned(self) -> float:
        return sum(w.planned_hours for w in self.week_totals)

    def hours_for(self, task_id: int, week_start: str) -> float:
        return self.hours.get(task_id, {}).get(week_start, 0.0)

    def task_row(self, task_id: int) -> list[float]:
        return [self.hours_for(task_id, ws) for ws in self.week_starts]


def aggregate_month(
        items: Iterable[PlanItem],
        year: int,
        month: int,
        weekly_capacity: float,
) -> MonthPlan:
    week_starts = week_starts_for_month(year, month)
    wanted = set(week_starts)

    plan = MonthPlan(
        year=year,
        month=month,
        weekly_capacity=float(weekly_capacity),
        week_starts=week_starts,
    )
    per_week = dict.fromkeys(week_starts, 0.0)

    ordered = sorted(items, key=lambda it: (it.week_start, it.day_index, it.order, it.id))
    for item in ordered:
        if item.week_start not in wanted:
            continue
        if item.task_id not in plan.hours:
            plan.task_ids.append(item.task_id)
            plan.hours[item.task_id] = {}
        row = plan.hours[item.task_id]
        row[item.week_start] = row.get(item.week_start, 0.0) + item.planned_hours
        per_week[item.week_start] += item.planned_hours

    plan.week_totals = [
        WeekTotal(week_start=ws, planned_hours=per_week[ws], capacity=plan.weekly_capacity)
        for ws in week_starts
    ]
    return plan


@dataclass(slots=True, frozen=True)
class PackedTask:
    task_id: int
    remaining_hours: float
    # cumulative hours before / after this task in the packed sequence
    start_hour: float
    end_hour: float


def pack_tasks(task_ids: Iterable[int], remaining_by_task: Mapping[int, float]) -> list[PackedTask]:
    """Tasks without a known remaining estimate are skipped."""
    cumulative = 0.0
    out: list[PackedTask] = []
    for task_id in task_ids:
        if task_id not in remaining_by_task:
            continue
        remaining = max(0.0, float(remaining_by_task[task_id]))
        out.append(
            PackedTask(
                task_id=task_id,
                remaining_hours=remaining,
                start_hour=cumulative,
                end_hour=cumulative + remaining,
            )
        )
        cumulative += remaining
    return out


def week_overlap(packed: PackedTask, week_index: int, weekly_capacity: float) -> float:
    week_offset = week_index * weekly_capacity
    start = max(packed.start_hour - week_offset, 0.0)
    end = min(packed.end_hour - week_offset, weekly_capacity)
    return max(end - start, 0.0)


def week_load(packed: Iterable[PackedTask], week_index: int, weekly_capacity: float) -> float:
    return sum(week_overlap(p, week_index, weekly_capacity) for p in packed)
