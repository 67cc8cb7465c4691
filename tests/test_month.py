# tests/test_month.py

from __future__ import annotations

import pytest

from ontrack.plan.month import aggregate_month, pack_tasks, week_load, week_overlap

from .fakes import make_item


def test_aggregate_month_sums_per_task_and_week() -> None:
    items = [
        make_item(1, day=0, order=0, hours=4, task_id=7, week_start="2025-01-06"),
        make_item(2, day=3, order=0, hours=2, task_id=7, week_start="2025-01-06"),
        make_item(3, day=1, order=0, hours=30, task_id=8, week_start="2025-01-06"),
        make_item(4, day=2, order=0, hours=6, task_id=8, week_start="2025-01-13"),
        make_item(5, day=0, order=0, hours=45, task_id=9, week_start="2025-01-27"),
        # February-only week, not part of January's board
        make_item(6, day=0, order=0, hours=3, task_id=10, week_start="2025-02-03"),
    ]

    plan = aggregate_month(items, 2025, 1, 40)

    assert plan.week_starts[0] == "2024-12-30"
    assert plan.task_ids == [7, 8, 9]
    assert plan.hours_for(7, "2025-01-06") == 6
    assert plan.task_row(8) == [0, 30, 6, 0, 0]
    assert plan.hours_for(10, "2025-02-03") == 0

    totals = {w.week_start: w for w in plan.week_totals}
    assert totals["2025-01-06"].planned_hours == 36
    assert totals["2025-01-06"].free_hours == 4
    assert totals["2025-01-27"].is_over_capacity
    assert totals["2024-12-30"].planned_hours == 0

    assert plan.month_capacity == 5 * 40
    assert plan.total_planned == 87


def test_aggregate_empty_month() -> None:
    plan = aggregate_month([], 2024, 9, 40)
    assert plan.task_ids == []
    assert len(plan.week_totals) == 6
    assert plan.total_planned == 0


def test_pack_tasks_lays_tasks_end_to_end() -> None:
    packed = pack_tasks([1, 2, 3, 4], {1: 30, 2: 20, 3: 50, 5: 8})

    assert [p.task_id for p in packed] == [1, 2, 3]
    assert [(p.start_hour, p.end_hour) for p in packed] == [(0, 30), (30, 50), (50, 100)]

    first, second, third = packed
    assert week_overlap(first, 0, 40) == 30
    assert week_overlap(second, 0, 40) == 10
    assert week_overlap(second, 1, 40) == 10
    assert week_overlap(third, 1, 40) == 30
    assert week_overlap(third, 2, 40) == 20
    assert week_overlap(first, 1, 40) == 0

    assert week_load(packed, 0, 40) == 40
    assert week_load(packed, 1, 40) == 40
    assert week_load(packed, 2, 40) == 20
    assert week_load(packed, 3, 40) == 0


def test_pack_tasks_clamps_negative_remaining() -> None:
    packed = pack_tasks([1, 2], {1: -5, 2: 3})
    assert packed[0].remaining_hours == 0
    assert (packed[1].start_hour, packed[1].end_hour) == (0, 3)
    assert week_overlap(packed[1], 0, 40) == pytest.approx(3)
