# src/todocan/tasks/ordering.py

from __future__ import annotations

"""
Visible ordering and drag reordering.

Two groups: flagged tasks first, unflagged after. Drag moves a task only
inside its own group; dropping onto the other group is rejected.
"""

from collections.abc import Sequence
from dataclasses import replace

from .task_models import Task


def _sort_key(t: Task) -> tuple[int, int, float, int]:
    return (0 if t.flagged else 1, t.position, -t.created_at, t.id)


def sort_visible(tasks: Sequence[Task]) -> list[Task]:
    """Flagged first; each group by position, then newest first."""
    return sorted(tasks, key=_sort_key)


def split_groups(tasks: Sequence[Task]) -> tuple[list[Task], list[Task]]:
    flagged = [t for t in tasks if t.flagged]
    unflagged = [t for t in tasks if not t.flagged]
    return flagged, unflagged


def move_item(items: list[Task], old_index: int, new_index: int) -> list[Task]:
    out = list(items)
    out.insert(new_index, out.pop(old_index))
    return out


def apply_drag(tasks: Sequence[Task], active_id: int, over_id: int) -> list[Task] | None:
    """
    Move active_id to over_id's index within their shared group.

    Returns the new visible list, or None when the drag is a no-op
    (unknown ids, same id, or a drop across the flagged/unflagged boundary).
    The input list and its tasks are left untouched.
    """
    if active_id == over_id:
        return None

    by_id = {t.id: t for t in tasks}
    active = by_id.get(active_id)
    over = by_id.get(over_id)
    if active is None or over is None:
        return None
    if active.flagged != over.flagged:
        return None

    flagged, unflagged = split_groups(tasks)
    group = flagged if active.flagged else unflagged
    ids = [t.id for t in group]

    moved = move_item(group, ids.index(active_id), ids.index(over_id))
    renumbered = [t if t.position == i else replace(t, position=i) for i, t in enumerate(moved)]

    if active.flagged:
        return renumbered + unflagged
    return flagged + renumbered


def changed_positions(before: Sequence[Task], after: Sequence[Task]) -> dict[int, int]:
    """task_id -> new position for tasks whose position differs."""
    old = {t.id: t.position for t in before}
    return {t.id: t.position for t in after if old.get(t.id) != t.position}
