# src/todocan/connectors/console_connector.py

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from datetime import datetime

from ..cli.commands import ConsoleContext, format_tasks
from ..cli.commands import registry as command_registry
from ..core.state import AppState
from ..tasks.session import TaskListSession

logger = logging.getLogger(__name__)

LineReader = Callable[[], Awaitable[str]]
LineWriter = Callable[[str], None]


def _ts_local() -> str:
    return datetime.now().astimezone().strftime("%Y-%m-%d %H:%M:%S")


async def _read_stdin() -> str:
    # input() blocks; run it off the loop so background writes keep going.
    return await asyncio.to_thread(input, "todo> ")


def _print_ts(text: str) -> None:
    print(f"[{_ts_local()}] {text}", flush=True)


async def run_console_loop(
    state: AppState,
    user_id: str,
    *,
    read_line: LineReader | None = None,
    write: LineWriter | None = None,
) -> TaskListSession:
    """
    Interactive task list for one user.

    Plain lines add a task; slash commands go through the command registry.
    Pending flag/order writes are awaited before returning.
    """
    read_line = read_line or _read_stdin
    write = write or _print_ts

    session = TaskListSession(state.task_store, user_id)
    await session.load()
    ctx = ConsoleContext(state=state, session=session)

    logger.info("Console connector started user=%s tasks=%d.", user_id, len(session.tasks))
    write("[CONSOLE] Type a task to add it. Use /help for commands. Use /exit to quit.")
    write(format_tasks(session.tasks))

    while True:
        try:
            line = (await read_line()).strip()
        except EOFError:
            logger.info("Console EOF received, exiting.")
            break
        except KeyboardInterrupt:
            logger.info("Console KeyboardInterrupt, exiting.")
            break

        if not line:
            continue

        if line.lower() in ("/exit", "/quit"):
            logger.info("Console exit command received.")
            break

        try:
            reply = await command_registry.handle(ctx, line)
            if reply is None:
                reply = await command_registry.handle(ctx, "/add " + line)
        except Exception:
            logger.exception("Console command crashed.")
            reply = "Internal error while handling a command."

        if reply:
            write(reply)

    await session.settle()
    logger.info("Console connector finished user=%s.", user_id)
    return session
