# src/ontrack/plan/layout.py

from __future__ import annotations

"""
Column layout engine.

Turns the flat item set of one week into five ordered slot lists (Mon..Fri):
- items are bucketed by day_index (out-of-range indices are dropped),
- each bucket is sorted by order only,
- a running cursor stacks items by their FULL planned hours, so once a day is
  full every later item in that column is entirely overflow.

Only the last overflowing slot of a column is surfaced as a read-only
continuation at the top of the next column. Overflow is never chained further.
"""

import logging
from collections.abc import Iterable
from dataclasses import dataclass

from .plan_models import DAY_LABELS, DAYS_PER_WEEK, ColumnSlot, PlanItem, is_valid_day_index

logger = logging.getLogger(__name__)

ColumnLayout = list[list[ColumnSlot]]


def daily_capacity(weekly_capacity: float) -> float:
    return float(weekly_capacity) / DAYS_PER_WEEK


def format_hours(hours: float) -> str:
    """'5h' for whole hours, '2.5h' otherwise."""
    if float(hours).is_integer():
        return f"{int(hours)}h"
    return f"{hours:.1f}h"


def layout_column(items: Iterable[PlanItem], capacity: float) -> list[ColumnSlot]:
    """Stack one day's items. `items` must already belong to a single column."""
    cursor = 0.0
    slots: list[ColumnSlot] = []
    for item in sorted(items, key=lambda it: it.order):
        remaining = max(capacity - cursor, 0.0)
        clipped = min(item.planned_hours, remaining)
        overflow = max(item.planned_hours - clipped, 0.0)
        slots.append(
            ColumnSlot(
                item=item,
                start_offset=cursor,
                clipped_hours=clipped,
                overflow_hours=overflow,
            )
        )
        cursor += item.planned_hours
    return slots


def build_column_layout(items: Iterable[PlanItem], capacity: float) -> ColumnLayout:
    if capacity <= 0:
        raise ValueError(f"daily capacity must be > 0, got {capacity!r}")

    buckets: list[list[PlanItem]] = [[] for _ in range(DAYS_PER_WEEK)]
    for item in items:
        if not is_valid_day_index(item.day_index):
            logger.debug("Skipping plan item id=%s with day_index=%r", item.id, item.day_index)
            continue
        buckets[item.day_index].append(item)

    return [layout_column(bucket, capacity) for bucket in buckets]


def overflow_from_prev(layout: ColumnLayout, day_index: int) -> ColumnSlot | None:
    """The continuation block shown at the top of `day_index`, if any."""
    if day_index <= 0 or day_index >= len(layout):
        return None
    for slot in reversed(layout[day_index - 1]):
        if slot.overflow_hours > 0:
            return slot
    return None


@dataclass(slots=True, frozen=True)
class DayColumn:
    day_index: int
    slots: list[ColumnSlot]
    continuation: ColumnSlot | None
    total_planned: float
    capacity: float

    @property
    def label(self) -> str:
        return DAY_LABELS[self.day_index]

    @property
    def is_over_capacity(self) -> bool:
        return self.total_planned > self.capacity

    @property
    def free_hours(self) -> float:
        return max(self.capacity - self.total_planned, 0.0)

    @property
    def is_empty(self) -> bool:
        return not self.slots and self.continuation is None


@dataclass(slots=True, frozen=True)
class WeekLayout:
    week_start: str | None
    weekly_capacity: float
    daily_capacity: float
    days: list[DayColumn]

    @property
    def total_planned(self) -> float:
        return sum(d.total_planned for d in self.days)

    @property
    def is_over_capacity(self) -> bool:
        return self.total_planned > self.weekly_capacity

    def slot_for(self, item_id: int) -> ColumnSlot | None:
        for day in self.days:
            for slot in day.slots:
                if slot.item.id == item_id:
                    return slot
        return None


def build_week_layout(
    items: Iterable[PlanItem],
    weekly_capacity: float,
    *,
    week_start: str | None = None,
) -> WeekLayout:
    """Layout plus per-day totals and continuations for one week."""
    capacity = daily_capacity(weekly_capacity)
    layout = build_column_layout(items, capacity)
    days = [
        DayColumn(
            day_index=i,
            slots=slots,
            continuation=overflow_from_prev(layout, i),
            total_planned=sum(s.item.planned_hours for s in slots),
            capacity=capacity,
        )
        for i, slots in enumerate(layout)
    ]
    return WeekLayout(
        week_start=week_start,
        weekly_capacity=float(weekly_capacity),
        daily_capacity=capacity,
        days=days,
    )
