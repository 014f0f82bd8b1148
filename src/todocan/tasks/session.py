# src/todocan/tasks/session.py

from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterable
from typing import Any

from ..core.ports import TaskRepo
from .ordering import apply_drag, changed_positions, sort_visible
from .reconcile import FieldReconciler
from .task_models import RECONCILED_FIELDS, Task

logger = logging.getLogger(__name__)


class TaskListSession:
    """
    One user's visible task list.

    Flag and position changes are optimistic: the visible list changes at once
    and a FieldReconciler persists the latest value in the background.
    Completion, add and delete are awaited; on store failure they log and
    leave the visible list unchanged.
    """

    def __init__(self, task_store: TaskRepo, user_id: str, *, new_task_flagged: bool = False) -> None:
        if not user_id:
            raise ValueError("user_id is required")
        self._store = task_store
        self.user_id = user_id
        self.new_task_flagged = new_task_flagged
        self.tasks: list[Task] = []
        self.reconciler = FieldReconciler(self._write_field)

    async def _write_field(self, task_id: int, field: str, value: Any) -> bool:
        if field not in RECONCILED_FIELDS:
            raise ValueError(f"field is not reconcilable: {field}")
        return await asyncio.to_thread(self._store.update_task_fields, task_id, **{field: value})

    def _find(self, task_id: int) -> Task | None:
        for t in self.tasks:
            if t.id == task_id:
                return t
        return None

    def _resort(self) -> None:
        self.tasks = sort_visible(self.tasks)

    async def load(self) -> list[Task]:
        self.tasks = sort_visible(await asyncio.to_thread(self._store.list_tasks_for_user, self.user_id))
        logger.debug("Session loaded user=%s n=%d", self.user_id, len(self.tasks))
        return self.tasks

    def merge_generated(self, created: Iterable[Task]) -> None:
        known = {t.id for t in self.tasks}
        self.tasks.extend(t for t in created if t.id not in known)
        self._resort()

    async def add_task(self, title: str) -> Task | None:
        clean = (title or "").strip()
        if not clean:
            raise ValueError("title is required")
        try:
            task = await asyncio.to_thread(
                self._store.add_task, user_id=self.user_id, title=clean, flagged=self.new_task_flagged
            )
        except Exception:
            logger.exception("add_task failed user=%s", self.user_id)
            return None
        self.tasks.append(task)
        self._resort()
        return task

    async def toggle_completed(self, task_id: int) -> bool:
        task = self._find(task_id)
        if task is None:
            return False
        target = not task.completed
        try:
            ok = await asyncio.to_thread(self._store.update_task_fields, task_id, completed=target)
        except Exception:
            logger.exception("toggle_completed failed task_id=%s", task_id)
            return False
        if ok:
            task.completed = target
        return ok

    async def delete_task(self, task_id: int) -> bool:
        try:
            await asyncio.to_thread(self._store.delete_task, task_id)
        except Exception:
            logger.exception("delete_task failed task_id=%s", task_id)
            return False
        self.tasks = [t for t in self.tasks if t.id != task_id]
        self.reconciler.forget(task_id)
        return True

    def request_flag(self, task_id: int, flagged: bool) -> bool:
        """Show the new flag immediately and let the reconciler persist it."""
        task = self._find(task_id)
        if task is None:
            return False
        task.flagged = bool(flagged)
        self._resort()
        self.reconciler.request(task_id, "flagged", task.flagged)
        return True

    def toggle_flag(self, task_id: int) -> bool:
        task = self._find(task_id)
        if task is None:
            return False
        return self.request_flag(task_id, not task.flagged)

    def drag(self, active_id: int, over_id: int) -> bool:
        """Reorder within a group; returns False for rejected (no-op) drags."""
        new_tasks = apply_drag(self.tasks, active_id, over_id)
        if new_tasks is None:
            return False
        moved = changed_positions(self.tasks, new_tasks)
        self.tasks = new_tasks
        for task_id, position in moved.items():
            self.reconciler.request(task_id, "position", position)
        return True

    async def settle(self) -> None:
        await self.reconciler.wait_idle()
