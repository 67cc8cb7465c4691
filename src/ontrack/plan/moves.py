# src/ontrack/plan/moves.py

from __future__ import annotations

"""
Move/reorder protocol.

Maps a finished drag gesture onto a new (day_index, order) for the dragged item:
- drop on a column background -> append to the end of that column
- drop on an item in another column -> insert before that item
- drop on an item in the same column -> array-move, whole column renumbered

The dragged id is always passed in by the caller. Drag state lives in the UI
and only the final drop produces a MovePlan.
"""

import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from enum import StrEnum
from typing import TypeVar

from ..core.ports import PlanItemRepo
from .plan_models import PlanItem, is_valid_day_index

logger = logging.getLogger(__name__)

T = TypeVar("T")

DAY_DROPPABLE_PREFIX = "day-"


@dataclass(slots=True, frozen=True)
class DropTarget:
    """Either a day column (day_index) or a specific item (item_id)."""

    day_index: int | None = None
    item_id: int | None = None

    @classmethod
    def column(cls, day_index: int) -> DropTarget:
        return cls(day_index=day_index)

    @classmethod
    def on_item(cls, item_id: int) -> DropTarget:
        return cls(item_id=item_id)

    @classmethod
    def from_droppable_id(cls, raw: object) -> DropTarget | None:
        """
        Parse a droppable id as emitted by the board UI.

        "day-3" is a column, an int (or digit string) is an item id.
        Anything else means the drag ended outside every droppable.
        """
        if isinstance(raw, bool) or raw is None:
            return None
        if isinstance(raw, int):
            return cls.on_item(raw)
        text = str(raw).strip()
        if text.startswith(DAY_DROPPABLE_PREFIX):
            suffix = text[len(DAY_DROPPABLE_PREFIX):]
            return cls.column(int(suffix)) if suffix.isdigit() else None
        if text.isdigit():
            return cls.on_item(int(text))
        return None


class MoveKind(StrEnum):
    MOVE = "move"  # cross-column insert (or append)
    REORDER = "reorder"  # same column, full renumber


@dataclass(slots=True, frozen=True)
class MovePlan:
    kind: MoveKind
    item_id: int
    week_start: str
    day_index: int
    order: int
    ordered_ids: tuple[int, ...] = ()


def array_move(seq: Sequence[T], old_index: int, new_index: int) -> list[T]:
    out = list(seq)
    out.insert(new_index, out.pop(old_index))
    return out


def _column(items: Iterable[PlanItem], week_start: str, day_index: int) -> list[PlanItem]:
    col = [it for it in items if it.week_start == week_start and it.day_index == day_index]
    col.sort(key=lambda it: (it.order, it.id))
    return col


def _reorder_plan(dragged: PlanItem, column: list[PlanItem], new_index: int) -> MovePlan | None:
    ids = [it.id for it in column]
    old_index = ids.index(dragged.id)
    if old_index == new_index:
        return None
    return MovePlan(
        kind=MoveKind.REORDER,
        item_id=dragged.id,
        week_start=dragged.week_start,
        day_index=dragged.day_index,
        order=new_index,
        ordered_ids=tuple(array_move(ids, old_index, new_index)),
    )


def compute_target_assignment(
        items: Sequence[PlanItem],
        dragged_id: int,
        target: DropTarget | None,
) -> MovePlan | None:
    """
    Resolve a drop against the current item set of the week.

    Returns None for every no-op: unresolved target, unknown dragged item,
    drop onto itself, or a target equal to the current assignment.
    """
    if target is None:
        return None

    by_id = {it.id: it for it in items}
    dragged = by_id.get(dragged_id)
    if dragged is None:
        logger.debug("Drop ignored: dragged item %s not in current week", dragged_id)
        return None

    if target.item_id is not None:
        over = by_id.get(target.item_id)
        if over is None or over.week_start != dragged.week_start or not is_valid_day_index(over.day_index):
            logger.debug("Drop ignored: unknown target item %s", target.item_id)
            return None
        if over.id == dragged.id:
            return None

        column = _column(items, dragged.week_start, over.day_index)
        if over.day_index == dragged.day_index:
            return _reorder_plan(dragged, column, [it.id for it in column].index(over.id))

        return MovePlan(
            kind=MoveKind.MOVE,
            item_id=dragged.id,
            week_start=dragged.week_start,
            day_index=over.day_index,
            order=over.order,
        )

    if target.day_index is not None:
        if not is_valid_day_index(target.day_index):
            logger.debug("Drop ignored: invalid day column %r", target.day_index)
            return None

        column = _column(items, dragged.week_start, target.day_index)
        if target.day_index == dragged.day_index:
            # Background of its own column: append == move to the last position.
            return _reorder_plan(dragged, column, len(column) - 1)

        return MovePlan(
            kind=MoveKind.MOVE,
            item_id=dragged.id,
            week_start=dragged.week_start,
            day_index=target.day_index,
            order=max(it.order for it in column) + 1 if column else 0,
        )

    return None


def apply_move(repo: PlanItemRepo, plan: MovePlan) -> bool:
    """Commit a MovePlan through the store (one atomic store call)."""
    if plan.kind == MoveKind.REORDER:
        repo.reorder_column(plan.week_start, plan.day_index, plan.ordered_ids)
        return True
    return repo.move_item(plan.item_id, to_day_index=plan.day_index, new_order=plan.order)
