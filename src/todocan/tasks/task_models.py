# src/todocan/tasks/task_models.py

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

# Fields the reconciler may drive toward a desired value.
RECONCILED_FIELDS = ("flagged", "position")


@dataclass(slots=True)
class Task:
    """
    One row of a user's task list.

    Notes:
    - position is an intra-group hint: it is only compared between tasks of the
      same owner that share the same flagged value (lower = earlier).
    - positions need not be unique or contiguous.
    """

    id: int
    title: str
    completed: bool
    flagged: bool
    position: int
    user_id: str
    created_at: float

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "completed": self.completed,
            "flagged": self.flagged,
            "position": self.position,
            "user_id": self.user_id,
            "created_at": self.created_at,
        }
