# src/ontrack/cli/commands.py

from __future__ import annotations

import contextlib
import inspect
import logging
from collections.abc import Awaitable, Callable
from datetime import date
from typing import cast

from ..core.errors import InvalidPlanItemError, PlanItemNotFoundError, PlanStoreError
from ..core.state import AppState
from ..plan.layout import WeekLayout, format_hours
from ..plan.month import MonthPlan
from ..plan.moves import DropTarget
from ..plan.plan_models import DAY_LABELS
from ..plan.weeks import add_weeks, format_month_label, format_week_label, to_week_start, week_days

CommandEmitter = Callable[[str], None]
CommandHandler2 = Callable[[AppState, list[str]], Awaitable[str]]
CommandHandler3 = Callable[[AppState, list[str], CommandEmitter | None], Awaitable[str]]
CommandHandler = CommandHandler2 | CommandHandler3

logger = logging.getLogger(__name__)


class CommandRegistry:
    """Simple slash-command registry used by the console board (/help, /week, ...)."""

    def __init__(self) -> None:
        self._handlers: dict[str, CommandHandler] = {}
        self._help: dict[str, str] = {}

    def register(
        self,
        name: str,
        handler: CommandHandler,
        help_text: str,
        aliases: list[str] | None = None,
    ) -> None:
        aliases = aliases or []
        key = name.lower()
        self._handlers[key] = handler
        self._help[key] = help_text
        for alias in aliases:
            self._handlers[alias.lower()] = handler

    async def handle(
        self,
        state: AppState,
        line: str,
        emit: CommandEmitter | None = None,
    ) -> str | None:
        """
        Handle a string like "/command args".
        Returns a reply string or None if not a command.
        """
        if not line.startswith("/"):
            return None

        parts = line[1:].split()
        if not parts:
            return "Empty command. Use /help to list available commands."

        name = parts[0].lower()
        args = parts[1:]

        handler = self._handlers.get(name)
        if not handler:
            return f"Unknown command: /{name}. Use /help to list available commands."

        try:
            nparams = len(inspect.signature(handler).parameters)
        except (TypeError, ValueError):
            nparams = 3

        try:
            if nparams >= 3:
                h3 = cast(CommandHandler3, handler)
                return await h3(state, args, emit)
            h2 = cast(CommandHandler2, handler)
            return await h2(state, args)
        except (InvalidPlanItemError, PlanItemNotFoundError) as e:
            return f"Error: {e}"
        except PlanStoreError as e:
            return f"Store error, nothing was changed: {e}"

    def build_help(self) -> str:
        lines = ["Available commands:"]
        for name, help_text in self._help.items():
            lines.append(f"  /{name} - {help_text}")
        return "\n".join(lines)


registry = CommandRegistry()


# ---- parsing ----


DAY_NAMES = ("monday", "tuesday", "wednesday", "thursday", "friday")


def parse_day(token: str) -> int | None:
    """Day column from "0".."4", "mon" or "monday"."""
    t = token.strip().lower()
    if t.isdigit():
        return int(t)
    for i, name in enumerate(DAY_NAMES):
        if t in (name, name[:3]):
            return i
    return None


def parse_drop_target(token: str) -> DropTarget | None:
    t = token.strip()
    if not t.isdigit():
        day = parse_day(t)
        if day is not None:
            return DropTarget.column(day)
    return DropTarget.from_droppable_id(t)


def _parse_int(token: str) -> int:
    try:
        return int(token)
    except ValueError:
        raise InvalidPlanItemError(f"not an integer: {token!r}") from None


def _parse_hours(token: str) -> float:
    try:
        return float(token.rstrip("hH"))
    except ValueError:
        raise InvalidPlanItemError(f"not a number of hours: {token!r}") from None


# ---- rendering ----


def render_week(layout: WeekLayout) -> str:
    if layout.week_start is None:
        return "No week loaded. Use /week."

    dates = week_days(layout.week_start)
    lines = [
        f"Week {format_week_label(layout.week_start, work_week=True)}: "
        f"{format_hours(layout.total_planned)} planned / {format_hours(layout.weekly_capacity)} capacity"
    ]
    for day in layout.days:
        mark = " !" if day.is_over_capacity else ""
        lines.append(
            f"{day.label} {dates[day.day_index].day:>2} {dates[day.day_index]:%b}  "
            f"{format_hours(day.total_planned)}/{format_hours(day.capacity)}{mark}"
        )
        if day.continuation is not None:
            cont = day.continuation
            lines.append(
                f"    ~ task {cont.item.task_id} +{format_hours(cont.overflow_hours)} "
                f"(from {DAY_LABELS[day.day_index - 1]})"
            )
        for slot in day.slots:
            spill = f"  +{format_hours(slot.overflow_hours)} ->" if slot.overflows else ""
            lines.append(
                f"  [{slot.item.id}] task {slot.item.task_id}  {format_hours(slot.item.planned_hours)}"
                f"  @{format_hours(slot.start_offset)}{spill}"
            )
        if day.is_empty:
            lines.append("    (drop here)")
    return "\n".join(lines)


def render_month(plan: MonthPlan) -> str:
    header = "task    " + " ".join(f"{ws[5:]:>7}" for ws in plan.week_starts)
    lines = [
        f"{format_month_label(date(plan.year, plan.month, 1))}: "
        f"{format_hours(plan.total_planned)} planned / {format_hours(plan.month_capacity)} capacity",
        header,
    ]
    for task_id in plan.task_ids:
        cells = " ".join(f"{format_hours(h) if h else '-':>7}" for h in plan.task_row(task_id))
        lines.append(f"{task_id:<7} {cells}")
    totals = " ".join(
        f"{format_hours(w.planned_hours) + ('!' if w.is_over_capacity else ''):>7}" for w in plan.week_totals
    )
    lines.append(f"{'total':<7} {totals}")
    return "\n".join(lines)


# ---- commands ----


async def cmd_help(state: AppState, args: list[str]) -> str:
    return registry.build_help()


async def cmd_status(state: AppState, args: list[str]) -> str:
    board = state.board
    db_path = getattr(state.settings, "plan_db_path", "?")
    return (
        "Status:\n"
        f"  Plan DB: {db_path}\n"
        f"  Weekly capacity: {format_hours(board.weekly_capacity)}\n"
        f"  Week: {board.week_start or '(none)'}\n"
        f"  Items this week: {len(board.items)}"
    )


async def cmd_week(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    """
    /week             -> current week
    /week next|prev   -> navigate relative to the loaded week
    /week YYYY-MM-DD  -> the week containing that date
    """
    board = state.board
    arg = args[0].lower() if args else "this"

    if arg in ("this", "now", "today"):
        target = to_week_start(date.today())
    elif arg in ("next", "prev"):
        base = board.week_start or to_week_start(date.today())
        target = add_weeks(base, 1 if arg == "next" else -1).isoformat()
    else:
        target = to_week_start(arg)

    if emit:
        with contextlib.suppress(Exception):
            emit(f"[PLAN] Loading week {target}...")

    await board.fetch_week(target)
    return render_week(board.week_layout())


async def cmd_board(state: AppState, args: list[str]) -> str:
    return render_week(state.board.week_layout())


async def cmd_add(state: AppState, args: list[str]) -> str:
    """/add <task_id> <day> <hours>"""
    if len(args) < 3:
        return "Usage: /add <task_id> <day 0-4|mon..fri> <hours>"
    day = parse_day(args[1])
    if day is None:
        return f"Unknown day: {args[1]}"
    item_id = await state.board.add_item(_parse_int(args[0]), day, _parse_hours(args[2]))
    return f"Added item {item_id}.\n" + render_week(state.board.week_layout())


async def cmd_rm(state: AppState, args: list[str]) -> str:
    if not args:
        return "Usage: /rm <item_id>"
    item_id = _parse_int(args[0])
    if not await state.board.remove_item(item_id):
        return f"No plan item {item_id}."
    return f"Removed item {item_id}.\n" + render_week(state.board.week_layout())


async def cmd_hours(state: AppState, args: list[str]) -> str:
    if len(args) < 2:
        return "Usage: /hours <item_id> <hours>"
    await state.board.update_planned_hours(_parse_int(args[0]), _parse_hours(args[1]))
    return render_week(state.board.week_layout())


async def cmd_drop(state: AppState, args: list[str]) -> str:
    """
    /drop <item_id> mon|day-0   -> append to that column
    /drop <item_id> <item_id>   -> insert before / reorder onto that item
    """
    if len(args) < 2:
        return "Usage: /drop <item_id> <day|day-N|target_item_id>"
    target = parse_drop_target(args[1])
    changed = await state.board.handle_drop(_parse_int(args[0]), target)
    if not changed:
        return "Nothing to move."
    return render_week(state.board.week_layout())


async def cmd_month(state: AppState, args: list[str]) -> str:
    """/month [YYYY-MM]"""
    if args:
        try:
            year_s, month_s = args[0].split("-", 1)
            year, month = int(year_s), int(month_s)
        except ValueError:
            return "Usage: /month [YYYY-MM]"
        if not 1 <= month <= 12:
            return "Usage: /month [YYYY-MM]"
    else:
        today = date.today()
        year, month = today.year, today.month
    plan = await state.board.month_plan(year, month)
    return render_month(plan)


registry.register("help", cmd_help, help_text="Show available commands.", aliases=["h", "?"])
registry.register("status", cmd_status, help_text="Show store path, capacity and loaded week.")
registry.register("week", cmd_week, help_text="Load a week: /week [this|next|prev|YYYY-MM-DD].", aliases=["w"])
registry.register("board", cmd_board, help_text="Show the loaded week.", aliases=["b"])
registry.register("add", cmd_add, help_text="Plan a task: /add <task_id> <day> <hours>.")
registry.register("rm", cmd_rm, help_text="Remove a plan item: /rm <item_id>.")
registry.register("hours", cmd_hours, help_text="Change planned hours: /hours <item_id> <hours>.")
registry.register("drop", cmd_drop, help_text="Move an item: /drop <item_id> <day|day-N|item_id>.", aliases=["mv"])
registry.register("month", cmd_month, help_text="Per-task weekly totals: /month [YYYY-MM].")
