# tests/test_console.py

from __future__ import annotations

import pytest

from todocan.cli.commands import ConsoleContext, registry
from todocan.connectors.console_connector import run_console_loop
from todocan.core.state import AppState
from todocan.tasks.session import TaskListSession
from todocan.tasks.task_store import TaskStore


def _script(*lines: str):
    queue = list(lines)

    async def read_line() -> str:
        if not queue:
            raise EOFError
        return queue.pop(0)

    return read_line


@pytest.mark.asyncio
async def test_console_adds_plain_lines_and_generated_tasks(state: AppState, task_store: TaskStore) -> None:
    out: list[str] = []

    session = await run_console_loop(
        state,
        "alice",
        read_line=_script("Pay rent", "", "/gen groceries and family", "/exit", "Never read"),
        write=out.append,
    )

    titles = sorted(t.title for t in task_store.list_tasks_for_user("alice"))
    assert titles == ["Buy milk", "Call mom", "Pay rent"]
    assert sorted(t.title for t in session.tasks) == titles
    assert any(line.startswith("Generated 2 task(s) with models/gemini-2.0-flash") for line in out)


@pytest.mark.asyncio
async def test_console_flag_and_move_persist_through_the_session(state: AppState, task_store: TaskStore) -> None:
    a = task_store.add_task(user_id="alice", title="Water plants")
    task_store.add_task(user_id="alice", title="Pay rent")
    task_store.add_task(user_id="alice", title="Call mom")

    session = TaskListSession(task_store, "alice")
    await session.load()
    ctx = ConsoleContext(state=state, session=session)

    await registry.handle(ctx, f"/flag {a.id}")
    # Visible at once, before any write completed.
    assert session.tasks[0].id == a.id and session.tasks[0].flagged is True

    first, second = [t.id for t in session.tasks if not t.flagged]
    reply = await registry.handle(ctx, f"/move {second} {first}")
    assert reply is not None and reply.splitlines()[1].startswith(f"#{second} ")

    rejected = await registry.handle(ctx, f"/move {a.id} {first}")
    assert rejected is not None and rejected.startswith("Move rejected")

    assert await registry.handle(ctx, "/sync") == "Synced."
    assert task_store.get_task(a.id).flagged is True
    assert task_store.get_task(second).position == 0
    assert task_store.get_task(first).position == 1


@pytest.mark.asyncio
async def test_console_done_and_delete(state: AppState, task_store: TaskStore) -> None:
    task = task_store.add_task(user_id="alice", title="Book dentist")
    session = TaskListSession(task_store, "alice")
    await session.load()
    ctx = ConsoleContext(state=state, session=session)

    await registry.handle(ctx, f"/done #{task.id}")
    assert task_store.get_task(task.id).completed is True

    assert await registry.handle(ctx, f"/del {task.id}") == f"Deleted #{task.id}."
    assert task_store.get_task(task.id) is None
    assert session.tasks == []


@pytest.mark.asyncio
async def test_console_reports_usage_and_missing_generator(state: AppState) -> None:
    session = TaskListSession(state.task_store, "alice")
    ctx = ConsoleContext(state=state, session=session)

    assert await registry.handle(ctx, "hello") is None
    assert await registry.handle(ctx, "/done x") == "Usage: /done <id>"
    assert (await registry.handle(ctx, "/nope")).startswith("Unknown command: /nope")
    assert "/gen" in await registry.handle(ctx, "/help")

    state.generator = None
    reply = await registry.handle(ctx, "/gen groceries")
    assert reply == "Generation unavailable: Missing GEMINI_API_KEY"


@pytest.mark.asyncio
async def test_console_flagnew_applies_to_generated_tasks(state: AppState, task_store: TaskStore) -> None:
    session = await run_console_loop(
        state,
        "bob",
        read_line=_script("/flagnew on", "/gen groceries"),
        write=lambda _line: None,
    )

    assert session.new_task_flagged is True
    assert all(t.flagged for t in task_store.list_tasks_for_user("bob"))
    assert len(task_store.list_tasks_for_user("bob")) == 2
