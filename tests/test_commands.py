# tests/test_commands.py

from __future__ import annotations

import pytest

from ontrack.cli.commands import CommandRegistry, parse_day, parse_drop_target, registry
from ontrack.plan.moves import DropTarget

from .conftest import WEEK
from .fakes import column_ids


@pytest.mark.asyncio
async def test_command_registry_routes_2_and_3_params(state) -> None:
    reg = CommandRegistry()
    called = {"h2": 0, "h3": 0}
    notes: list[str] = []

    async def h2(state, args):
        called["h2"] += 1
        return "h2:" + ",".join(args)

    async def h3(state, args, emit):
        called["h3"] += 1
        if emit is not None:
            emit("note")
        return "h3"

    reg.register("a", h2, "a", aliases=["aa"])
    reg.register("b", h3, "b")

    assert await reg.handle(state, "/a x y") == "h2:x,y"
    assert await reg.handle(state, "/AA") == "h2:"
    assert await reg.handle(state, "/b", emit=notes.append) == "h3"
    assert called == {"h2": 2, "h3": 1}
    assert notes == ["note"]
    assert "/a - a" in reg.build_help()


@pytest.mark.asyncio
async def test_command_registry_unknown_and_non_command(state) -> None:
    reg = CommandRegistry()
    assert await reg.handle(state, "hello") is None
    assert "Unknown command" in (await reg.handle(state, "/nope") or "")
    assert "Empty command" in (await reg.handle(state, "/") or "")


@pytest.mark.parametrize(
    "token, expected",
    [("0", 0), ("4", 4), ("mon", 0), ("Tuesday", 1), ("FRI", 4), ("sat", None), ("x", None)],
)
def test_parse_day(token: str, expected) -> None:
    assert parse_day(token) == expected


def test_parse_drop_target() -> None:
    assert parse_drop_target("wed") == DropTarget.column(2)
    assert parse_drop_target("day-4") == DropTarget.column(4)
    assert parse_drop_target("3") == DropTarget.on_item(3)
    assert parse_drop_target("nowhere") is None


@pytest.mark.asyncio
async def test_week_add_and_board_flow(state) -> None:
    notes: list[str] = []

    out = await registry.handle(state, "/week 2025-01-08", emit=notes.append)
    assert notes == [f"[PLAN] Loading week {WEEK}..."]
    assert out is not None
    assert out.startswith("Week 6 Jan – 10 Jan 2025: 0h planned / 40h capacity")
    assert out.count("(drop here)") == 5

    await registry.handle(state, "/add 7 mon 5")
    out = await registry.handle(state, "/add 8 0 4h")
    assert out is not None and out.startswith("Added item")
    assert "Mon  6 Jan  9h/8h !" in out
    assert "~ task 8 +1h (from Mon)" in out
    assert "+1h ->" in out

    board_out = await registry.handle(state, "/b")
    assert board_out == out.split("\n", 1)[1]


@pytest.mark.asyncio
async def test_drop_and_remove_commands(state) -> None:
    await registry.handle(state, f"/week {WEEK}")
    await registry.handle(state, "/add 1 mon 2")
    await registry.handle(state, "/add 2 mon 2")
    await registry.handle(state, "/add 3 wed 2")
    a, b, x = (it.id for it in state.board.items)

    out = await registry.handle(state, f"/drop {x} {b}")
    assert out is not None and not out.startswith("Error")
    assert column_ids(state.board.items, 0) == [a, x, b]

    assert await registry.handle(state, f"/mv {a} {a}") == "Nothing to move."

    out = await registry.handle(state, f"/rm {x}")
    assert out is not None and out.startswith(f"Removed item {x}.")
    assert await registry.handle(state, f"/rm {x}") == f"No plan item {x}."


@pytest.mark.asyncio
async def test_errors_are_reported_not_raised(state) -> None:
    assert (await registry.handle(state, "/add 1 mon 2")).startswith("Error: no week loaded")

    await registry.handle(state, f"/week {WEEK}")
    assert (await registry.handle(state, "/add 1 mon 0")).startswith("Error:")
    assert (await registry.handle(state, "/add 1 mon lots")).startswith("Error:")
    assert (await registry.handle(state, "/add x mon 2")).startswith("Error:")
    assert await registry.handle(state, "/add 1 sunday 2") == "Unknown day: sunday"
    assert (await registry.handle(state, "/hours 999 3")).startswith("Error:")
    assert (await registry.handle(state, "/week someday")).startswith("Error:")
    assert await registry.handle(state, "/month 2025-13") == "Usage: /month [YYYY-MM]"
    assert state.board.items == []


@pytest.mark.asyncio
async def test_month_and_status(state) -> None:
    await registry.handle(state, "/week 2025-01-27")
    await registry.handle(state, "/add 5 fri 45")

    out = await registry.handle(state, "/month 2025-01")
    assert out is not None
    assert out.startswith("January 2025: 45h planned / 200h capacity")
    assert "45h!" in out

    status = await registry.handle(state, "/status")
    assert "Week: 2025-01-27" in status
    assert "Items this week: 1" in status
