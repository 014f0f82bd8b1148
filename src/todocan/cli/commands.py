# src/todocan/cli/commands.py

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from ..config import ConfigurationError
from ..core.state import AppState
from ..generation.orchestrator import BatchInsertError
from ..tasks.session import TaskListSession
from ..tasks.task_models import Task

logger = logging.getLogger(__name__)


@dataclass
class ConsoleContext:
    """What a console command operates on: app wiring plus one user's session."""

    state: AppState
    session: TaskListSession


CommandHandler = Callable[[ConsoleContext, list[str]], Awaitable[str]]


class CommandRegistry:
    """Simple slash-command registry used by the console connector (/help, /add, ...)."""

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

    async def handle(self, ctx: ConsoleContext, line: str) -> str | None:
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
        return await handler(ctx, args)

    def build_help(self) -> str:
        lines = ["Available commands:"]
        for name, help_text in self._help.items():
            lines.append(f"  /{name} - {help_text}")
        return "\n".join(lines)


registry = CommandRegistry()


def format_task(t: Task) -> str:
    done = "x" if t.completed else " "
    flag = "!" if t.flagged else " "
    return f"#{t.id} [{done}] {flag} {t.title}"


def format_tasks(tasks: list[Task]) -> str:
    if not tasks:
        return "No tasks."
    return "\n".join(format_task(t) for t in tasks)


def _task_id(args: list[str], index: int = 0) -> int | None:
    try:
        return int(args[index].lstrip("#"))
    except (IndexError, ValueError):
        return None


async def cmd_help(ctx: ConsoleContext, args: list[str]) -> str:
    return registry.build_help()


async def cmd_list(ctx: ConsoleContext, args: list[str]) -> str:
    return format_tasks(ctx.session.tasks)


async def cmd_reload(ctx: ConsoleContext, args: list[str]) -> str:
    await ctx.session.settle()
    return format_tasks(await ctx.session.load())


async def cmd_add(ctx: ConsoleContext, args: list[str]) -> str:
    title = " ".join(args).strip()
    if not title:
        return "Usage: /add <title>"
    task = await ctx.session.add_task(title)
    if task is None:
        return "Could not save the task (see log)."
    return f"Added {format_task(task)}"


async def cmd_done(ctx: ConsoleContext, args: list[str]) -> str:
    task_id = _task_id(args)
    if task_id is None:
        return "Usage: /done <id>"
    if not await ctx.session.toggle_completed(task_id):
        return f"Task #{task_id} was not updated."
    return format_tasks(ctx.session.tasks)


async def cmd_delete(ctx: ConsoleContext, args: list[str]) -> str:
    task_id = _task_id(args)
    if task_id is None:
        return "Usage: /del <id>"
    if not await ctx.session.delete_task(task_id):
        return f"Task #{task_id} was not deleted."
    return f"Deleted #{task_id}."


async def cmd_flag(ctx: ConsoleContext, args: list[str]) -> str:
    task_id = _task_id(args)
    if task_id is None:
        return "Usage: /flag <id>"
    if not ctx.session.toggle_flag(task_id):
        return f"Unknown task #{task_id}."
    return format_tasks(ctx.session.tasks)


async def cmd_move(ctx: ConsoleContext, args: list[str]) -> str:
    active_id = _task_id(args, 0)
    over_id = _task_id(args, 1)
    if active_id is None or over_id is None:
        return "Usage: /move <id> <onto-id>"
    if not ctx.session.drag(active_id, over_id):
        return "Move rejected (unknown ids or across the flagged/unflagged groups)."
    return format_tasks(ctx.session.tasks)


async def cmd_generate(ctx: ConsoleContext, args: list[str]) -> str:
    text = " ".join(args).strip()
    if not text:
        return "Usage: /gen <text>"
    try:
        generator = ctx.state.require_generator()
    except ConfigurationError as e:
        return f"Generation unavailable: {e}"

    try:
        result = await generator.generate(
            text, user_id=ctx.session.user_id, flagged=ctx.session.new_task_flagged
        )
    except BatchInsertError as e:
        logger.info("Console generation insert failed: %s", e.detail)
        return f"Could not save generated tasks: {e.detail}"

    if not result.created:
        return "No tasks could be generated from that input."
    ctx.session.merge_generated(result.created)
    lines = [f"Generated {len(result.created)} task(s) with {result.model}:"]
    lines.extend(format_task(t) for t in result.created)
    return "\n".join(lines)


async def cmd_flagnew(ctx: ConsoleContext, args: list[str]) -> str:
    if args:
        arg = args[0].lower()
        if arg not in ("on", "off"):
            return "Usage: /flagnew [on|off]"
        ctx.session.new_task_flagged = arg == "on"
    state = "ON" if ctx.session.new_task_flagged else "OFF"
    return f"New tasks flagged: {state}"


async def cmd_sync(ctx: ConsoleContext, args: list[str]) -> str:
    await ctx.session.settle()
    failed = ctx.session.reconciler.writes_failed
    if failed:
        return f"Synced. {failed} write(s) failed so far (see log)."
    return "Synced."


registry.register("help", cmd_help, "show this help", aliases=["h", "?"])
registry.register("list", cmd_list, "show the task list", aliases=["ls"])
registry.register("reload", cmd_reload, "wait for pending writes, then reload from the store")
registry.register("add", cmd_add, "add a task (plain text lines work too)")
registry.register("done", cmd_done, "toggle completion: /done <id>")
registry.register("del", cmd_delete, "delete a task: /del <id>", aliases=["rm"])
registry.register("flag", cmd_flag, "toggle the flag: /flag <id>")
registry.register("move", cmd_move, "move a task onto another one's place: /move <id> <onto-id>")
registry.register("gen", cmd_generate, "generate tasks from free text: /gen <text>")
registry.register("flagnew", cmd_flagnew, "flag new and generated tasks: /flagnew [on|off]")
registry.register("sync", cmd_sync, "wait until flag/order changes are saved")
