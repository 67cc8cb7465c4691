# tests/test_plan_store.py

from __future__ import annotations

import math
import sqlite3
from pathlib import Path

import pytest

from ontrack.core.errors import InvalidPlanItemError, PlanItemNotFoundError, PlanStoreError
from ontrack.plan.layout import build_column_layout
from ontrack.plan.plan_store import PlanItemStore

from .conftest import WEEK
from .fakes import assert_contiguous, column_ids


def _fill(store: PlanItemStore, day: int, count: int, *, hours: float = 1.0, week: str = WEEK) -> list[int]:
    return [
        store.create(task_id=100 + i, week_start=week, day_index=day, planned_hours=hours)
        for i in range(count)
    ]


def test_create_appends_to_end_of_column(store: PlanItemStore) -> None:
    ids = _fill(store, 1, 3)
    other = store.create(task_id=7, week_start=WEEK, day_index=3, planned_hours=2.5)

    items = store.fetch_by_week(WEEK)
    assert column_ids(items, 1) == ids
    assert [it.order for it in items if it.day_index == 1] == [0, 1, 2]

    item = store.get_item(other)
    assert item is not None
    assert (item.task_id, item.day_index, item.order, item.planned_hours) == (7, 3, 0, 2.5)
    assert item.created_at > 0
    assert store.count_items() == 4


@pytest.mark.parametrize("hours", [0, -1, -0.5, math.nan, math.inf, "abc", None])
def test_create_rejects_non_positive_hours(store: PlanItemStore, hours) -> None:
    with pytest.raises(InvalidPlanItemError):
        store.create(task_id=1, week_start=WEEK, day_index=0, planned_hours=hours)
    assert store.count_items() == 0


@pytest.mark.parametrize("day", [-1, 5, 2.0, True, "1"])
def test_create_rejects_out_of_range_day(store: PlanItemStore, day) -> None:
    with pytest.raises(InvalidPlanItemError):
        store.create(task_id=1, week_start=WEEK, day_index=day, planned_hours=1)


@pytest.mark.parametrize("week", ["2025-01-07", "2025-13-01", "next week"])
def test_create_rejects_week_start_that_is_not_a_monday(store: PlanItemStore, week) -> None:
    with pytest.raises(InvalidPlanItemError):
        store.create(task_id=1, week_start=week, day_index=0, planned_hours=1)


def test_update_hours_validates_and_keeps_position(store: PlanItemStore) -> None:
    a, b = _fill(store, 0, 2)

    store.update_hours(a, 6.5)
    item = store.get_item(a)
    assert item is not None and item.planned_hours == 6.5 and item.order == 0

    for bad in (0, -3):
        with pytest.raises(InvalidPlanItemError):
            store.update_hours(b, bad)
    assert store.get_item(b).planned_hours == 1.0

    with pytest.raises(PlanItemNotFoundError):
        store.update_hours(999, 2)


def test_cross_column_move_shifts_target_and_compacts_source(store: PlanItemStore) -> None:
    d0 = _fill(store, 0, 3)
    d2 = _fill(store, 2, 3)
    x = d2[0]

    assert store.move_item(x, to_day_index=0, new_order=1) is True

    items = store.fetch_by_week(WEEK)
    assert column_ids(items, 0) == [d0[0], x, d0[1], d0[2]]
    assert column_ids(items, 2) == d2[1:]
    moved = store.get_item(x)
    assert (moved.day_index, moved.order) == (0, 1)
    assert_contiguous(items)


def test_cross_column_move_past_the_end_appends(store: PlanItemStore) -> None:
    d0 = _fill(store, 0, 2)
    (x,) = _fill(store, 4, 1)

    store.move_item(x, to_day_index=0, new_order=10)

    items = store.fetch_by_week(WEEK)
    assert column_ids(items, 0) == [*d0, x]
    assert_contiguous(items)


def test_same_column_move_item_reorders(store: PlanItemStore) -> None:
    ids = _fill(store, 3, 4)

    assert store.move_item(ids[3], to_day_index=3, new_order=1) is True
    assert column_ids(store.fetch_by_week(WEEK), 3) == [ids[0], ids[3], ids[1], ids[2]]


def test_move_to_current_assignment_is_noop(store: PlanItemStore) -> None:
    ids = _fill(store, 1, 2)
    assert store.move_item(ids[1], to_day_index=1, new_order=1) is False
    assert column_ids(store.fetch_by_week(WEEK), 1) == ids


def test_move_validates_input(store: PlanItemStore) -> None:
    (a,) = _fill(store, 0, 1)
    with pytest.raises(InvalidPlanItemError):
        store.move_item(a, to_day_index=7, new_order=0)
    with pytest.raises(InvalidPlanItemError):
        store.move_item(a, to_day_index=1, new_order=-1)
    with pytest.raises(PlanItemNotFoundError):
        store.move_item(999, to_day_index=1, new_order=0)


def test_update_assignment_partial_updates(store: PlanItemStore) -> None:
    d0 = _fill(store, 0, 3)
    d1 = _fill(store, 1, 2)

    # day only: appended to the new column
    assert store.update_assignment(d0[0], day_index=1) is True
    items = store.fetch_by_week(WEEK)
    assert column_ids(items, 1) == [*d1, d0[0]]
    assert column_ids(items, 0) == d0[1:]

    # order only: repositioned inside its column
    assert store.update_assignment(d0[0], order=0) is True
    assert column_ids(store.fetch_by_week(WEEK), 1) == [d0[0], *d1]

    # nothing requested
    assert store.update_assignment(d0[0]) is False
    assert_contiguous(store.fetch_by_week(WEEK))

    with pytest.raises(PlanItemNotFoundError):
        store.update_assignment(999, day_index=2)


def test_reorder_column_round_trip(store: PlanItemStore) -> None:
    ids = _fill(store, 2, 4, hours=3)

    layout = build_column_layout(store.fetch_by_week(WEEK), 8)
    wanted = [s.item.id for s in layout[2]][::-1]
    store.reorder_column(WEEK, 2, wanted)

    refetched = store.fetch_by_week(WEEK)
    assert column_ids(refetched, 2) == wanted == ids[::-1]
    assert [s.item.id for s in build_column_layout(refetched, 8)[2]] == wanted
    assert_contiguous(refetched)


@pytest.mark.parametrize("bad", ["missing", "extra", "duplicate"])
def test_reorder_column_requires_the_exact_column(store: PlanItemStore, bad: str) -> None:
    ids = _fill(store, 2, 3)
    (elsewhere,) = _fill(store, 4, 1)
    orders = {
        "missing": ids[:2],
        "extra": [*ids, elsewhere],
        "duplicate": [ids[0], ids[0], ids[1], ids[2]],
    }[bad]

    with pytest.raises(InvalidPlanItemError):
        store.reorder_column(WEEK, 2, orders)
    assert column_ids(store.fetch_by_week(WEEK), 2) == ids


def test_delete_compacts_column(store: PlanItemStore) -> None:
    ids = _fill(store, 0, 4)

    assert store.delete(ids[1]) is True
    assert store.delete(ids[1]) is False

    items = store.fetch_by_week(WEEK)
    assert column_ids(items, 0) == [ids[0], ids[2], ids[3]]
    assert_contiguous(items)


def test_fetch_by_week_starts(store: PlanItemStore) -> None:
    _fill(store, 0, 2, week="2025-01-06")
    _fill(store, 1, 1, week="2025-01-13")
    _fill(store, 1, 1, week="2025-02-03")

    items = store.fetch_by_week_starts(["2025-01-13", "2025-01-06"])
    assert {it.week_start for it in items} == {"2025-01-06", "2025-01-13"}
    assert len(items) == 3
    assert store.fetch_by_week_starts([]) == []
    assert store.fetch_by_week("2025-01-20") == []

    with pytest.raises(InvalidPlanItemError):
        store.fetch_by_week_starts(["2025-01-08"])


def test_failed_move_rolls_back_sibling_shift(store: PlanItemStore) -> None:
    d0 = _fill(store, 0, 3)
    (x,) = _fill(store, 2, 1)

    conn = sqlite3.connect(str(store.db_path))
    try:
        conn.execute(
            f"""
            CREATE TRIGGER fail_assign BEFORE UPDATE OF day_index ON plan_items
            WHEN NEW.id = {x}
            BEGIN
                SELECT RAISE(ABORT, 'injected failure');
            END
            """
        )
        conn.commit()
    finally:
        conn.close()

    with pytest.raises(PlanStoreError):
        store.move_item(x, to_day_index=0, new_order=0)

    items = store.fetch_by_week(WEEK)
    assert column_ids(items, 0) == d0
    assert [it.order for it in items if it.day_index == 0] == [0, 1, 2]
    assert store.get_item(x).day_index == 2


def test_schema_migration_adds_missing_columns(tmp_path: Path) -> None:
    db = tmp_path / "legacy.sqlite3"
    conn = sqlite3.connect(str(db))
    try:
        conn.execute(
            """
            CREATE TABLE plan_items (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                task_id INTEGER NOT NULL,
                week_start TEXT NOT NULL,
                day_index INTEGER NOT NULL,
                item_order INTEGER NOT NULL DEFAULT 0,
                planned_hours REAL NOT NULL
            )
            """
        )
        conn.execute(
            "INSERT INTO plan_items(task_id, week_start, day_index, item_order, planned_hours) "
            "VALUES (3, ?, 1, 0, 4)",
            (WEEK,),
        )
        conn.commit()
    finally:
        conn.close()

    store = PlanItemStore(db)
    (item,) = store.fetch_by_week(WEEK)
    assert (item.task_id, item.planned_hours, item.created_at) == (3, 4.0, 0.0)

    new_id = store.create(task_id=4, week_start=WEEK, day_index=1, planned_hours=1)
    assert store.get_item(new_id).order == 1
