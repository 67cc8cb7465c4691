# src/ontrack/plan/weeks.py

"""
Calendar helpers for the plan board.

Weeks are Monday-anchored and identified by the ISO date of their Monday.
Months are 1-based (January == 1) as in the datetime module.
"""

from __future__ import annotations

import calendar
from datetime import date, datetime, timedelta

from ..core.errors import InvalidPlanItemError
from .plan_models import DAYS_PER_WEEK

DateLike = date | datetime | str


def _as_date(value: DateLike) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value).strip())
    except ValueError:
        raise InvalidPlanItemError(f"not an ISO date: {value!r}") from None


def start_of_week(value: DateLike) -> date:
    d = _as_date(value)
    return d - timedelta(days=d.weekday())


def to_week_start(value: DateLike) -> str:
    """Normalize any date inside a week to the ISO string of that week's Monday."""
    return start_of_week(value).isoformat()


def parse_week_start(value: DateLike) -> str:
    """
    Validate a stored week key.

    Unlike to_week_start() this never normalizes: a date that is not a Monday is
    rejected, so a bad key cannot silently land in a neighbouring week.
    """
    d = _as_date(value)
    if d.weekday() != 0:
        raise InvalidPlanItemError(f"week_start must be a Monday, got {d.isoformat()}")
    return d.isoformat()


def add_weeks(week_start: DateLike, n: int) -> date:
    return _as_date(week_start) + timedelta(weeks=n)


def week_days(week_start: DateLike) -> list[date]:
    """Dates of the board columns (Monday..Friday)."""
    monday = start_of_week(week_start)
    return [monday + timedelta(days=i) for i in range(DAYS_PER_WEEK)]


def is_same_week(value: DateLike, week_start: DateLike) -> bool:
    return start_of_week(value) == start_of_week(week_start)


def weeks_in_month(year: int, month: int) -> list[date]:
    """Mondays of every week that overlaps the given month."""
    if not 1 <= month <= 12:
        raise ValueError(f"month must be 1..12, got {month}")
    first = date(year, month, 1)
    last = date(year, month, calendar.monthrange(year, month)[1])
    out: list[date] = []
    cur = start_of_week(first)
    while cur <= last:
        out.append(cur)
        cur += timedelta(weeks=1)
    return out


def week_starts_for_month(year: int, month: int) -> list[str]:
    return [d.isoformat() for d in weeks_in_month(year, month)]


def week_index_from_now(week_start: DateLike, *, today: date | None = None) -> int:
    """0 for the current week, negative for past weeks."""
    ref = start_of_week(today or date.today())
    return (start_of_week(week_start) - ref).days // 7


def _day_month(d: date) -> str:
    return f"{d.day} {d:%b}"


def format_week_label(week_start: DateLike, *, work_week: bool = False) -> str:
    """'6 Jan – 12 Jan 2025' (or Monday..Friday when work_week=True)."""
    monday = start_of_week(week_start)
    end = monday + timedelta(days=(DAYS_PER_WEEK - 1) if work_week else 6)
    return f"{_day_month(monday)} – {_day_month(end)} {end.year}"


def format_month_label(value: DateLike) -> str:
    return f"{_as_date(value):%B %Y}"
