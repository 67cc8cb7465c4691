# src/ontrack/connectors/console_connector.py

from __future__ import annotations

import asyncio
import logging
from datetime import date, datetime

from ..cli.commands import registry as command_registry
from ..core.state import AppState

logger = logging.getLogger(__name__)


def _ts_local() -> str:
    return datetime.now().astimezone().strftime("%Y-%m-%d %H:%M:%S")


def _print_ts(text: str) -> None:
    print(f"[{_ts_local()}] {text}")


async def run_console_loop(state: AppState) -> None:
    """
    Interactive board REPL.

    input() runs in a worker thread so the event loop stays free for the
    board's store calls.
    """
    logger.info("Console board started (weekly_capacity=%s).", state.board.weekly_capacity)
    _print_ts("[CONSOLE] Plan board. Use /help for commands. Use /exit to quit.\n")

    def emit(text: str) -> None:
        # Immediate user-visible feedback for slower operations.
        print(f"[{_ts_local()}] {text}", flush=True)

    # Open on the current week.
    reply = await command_registry.handle(state, f"/week {date.today().isoformat()}")
    if reply:
        print(reply)

    while True:
        try:
            user_input = (await asyncio.to_thread(input, "plan> ")).strip()
        except EOFError:
            logger.info("Console EOF received, exiting.")
            break
        except KeyboardInterrupt:
            logger.info("Console KeyboardInterrupt, exiting.")
            print()
            break

        if not user_input:
            continue

        if user_input.lower() in ("/exit", "/quit"):
            logger.info("Console exit command received.")
            break

        if not user_input.startswith("/"):
            _print_ts("Commands start with '/'. Use /help.")
            continue

        try:
            cmd_response = await command_registry.handle(state, user_input, emit=emit)
        except Exception:
            logger.exception("Command handler crashed.")
            cmd_response = "Internal error while handling a command."

        if cmd_response is not None:
            print(cmd_response)

    logger.info("Console board finished.")
