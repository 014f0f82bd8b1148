# src/todocan/tasks/reconcile.py

from __future__ import annotations

"""
Desired-state tracker + reconciliation worker.

The user may toggle a flag or drag tasks around faster than the store can
confirm writes. For every (task_id, field) key we keep:
- the desired value: the last value the user asked for,
- a small state machine: IDLE -> WRITING -> {IDLE | WRITING(newer value)}.

Invariants:
- at most one write per key is outstanding at any time,
- once requests stop and a write succeeds after the last request, the store
  holds the last desired value (intermediate values may be coalesced away),
- a failed write is logged and abandoned; the next request re-arms the key.
"""

import asyncio
import logging
from enum import Enum
from typing import Any

from ..core.ports import FieldWriter

logger = logging.getLogger(__name__)

Key = tuple[int, str]

_MISSING = object()


class WriteState(str, Enum):
    IDLE = "idle"
    WRITING = "writing"


class FieldReconciler:
    """
    Drives stored field values toward the latest desired values.

    Scoped to one session; must be used from inside a running event loop.
    """

    def __init__(self, write: FieldWriter) -> None:
        self._write = write
        self._desired: dict[Key, Any] = {}
        self._state: dict[Key, WriteState] = {}
        self._runs: dict[Key, asyncio.Task[None]] = {}

        self.writes_sent = 0
        self.writes_failed = 0

    # ---- introspection ----

    def desired(self, task_id: int, field: str, default: Any = None) -> Any:
        return self._desired.get((task_id, field), default)

    def state(self, task_id: int, field: str) -> WriteState:
        return self._state.get((task_id, field), WriteState.IDLE)

    def is_writing(self, task_id: int, field: str) -> bool:
        return self.state(task_id, field) is WriteState.WRITING

    def pending_keys(self) -> list[Key]:
        return [k for k, s in self._state.items() if s is WriteState.WRITING]

    # ---- intent ----

    def request(self, task_id: int, field: str, value: Any) -> None:
        """
        Record a new desired value and make sure a run will persist it.

        Synchronous: the desired value is updated before anything suspends.
        """
        key = (task_id, field)
        self._desired[key] = value

        if self._state.get(key) is WriteState.WRITING:
            # The active run re-reads the desired value after its write.
            return

        self._state[key] = WriteState.WRITING
        self._runs[key] = asyncio.get_running_loop().create_task(
            self._run(key), name=f"reconcile:{task_id}:{field}"
        )

    def forget(self, task_id: int) -> None:
        """Drop all desired values of a deleted task; running loops stop after their write."""
        for key in [k for k in self._desired if k[0] == task_id]:
            del self._desired[key]

    async def wait_idle(self) -> None:
        """Wait until no key is WRITING (runs started meanwhile are awaited too)."""
        while self._runs:
            await asyncio.gather(*list(self._runs.values()), return_exceptions=True)

    # ---- worker ----

    async def _run(self, key: Key) -> None:
        task_id, field = key
        try:
            while True:
                value = self._desired.get(key, _MISSING)
                if value is _MISSING:
                    logger.debug("Reconcile: task=%s field=%s forgotten, stopping", task_id, field)
                    return

                self.writes_sent += 1
                try:
                    exists = await self._write(task_id, field, value)
                except Exception:
                    self.writes_failed += 1
                    logger.exception(
                        "Reconcile: write failed task=%s field=%s value=%r", task_id, field, value
                    )
                    return

                if not exists:
                    logger.info("Reconcile: task=%s no longer exists, dropping %s", task_id, field)
                    self._desired.pop(key, None)
                    return

                latest = self._desired.get(key, _MISSING)
                if latest is _MISSING or latest == value:
                    logger.debug("Reconcile: task=%s %s settled at %r", task_id, field, value)
                    return
        finally:
            self._state[key] = WriteState.IDLE
            self._runs.pop(key, None)
