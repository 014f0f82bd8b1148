# src/todocan/tasks/task_store.py

from __future__ import annotations

import contextlib
import logging
import sqlite3
import time
from collections.abc import Iterable
from pathlib import Path
from typing import Any

from .task_models import Task

logger = logging.getLogger(__name__)


class TaskStore:
    """
    SQLite task store.

    The schema is intentionally simple and migration-safe:
    - create table if missing
    - use PRAGMA table_info to detect missing columns
    - add columns with ALTER TABLE only when needed

    Thread-safety:
    - each method opens its own SQLite connection, so calls may be pushed to
      worker threads with asyncio.to_thread
    """

    def __init__(self, db_path: str | Path = "tasks.sqlite3") -> None:
        self._db_path = Path(db_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._ensure_schema()
        logger.info("TaskStore ready db=%s total=%s", self._db_path, self.count_tasks())

    # ---- low-level helpers ----

    def _get_conn(self) -> sqlite3.Connection:
        conn = sqlite3.connect(str(self._db_path), timeout=30.0)
        conn.row_factory = sqlite3.Row
        with contextlib.suppress(sqlite3.DatabaseError):
            conn.execute("PRAGMA journal_mode=WAL")
        return conn

    def _ensure_schema(self) -> None:
        conn = self._get_conn()
        try:
            cur = conn.cursor()

            cur.execute(
                """
                CREATE TABLE IF NOT EXISTS tasks (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    user_id TEXT NOT NULL,
                    title TEXT NOT NULL,
                    completed INTEGER NOT NULL DEFAULT 0,
                    flagged INTEGER NOT NULL DEFAULT 0,
                    position INTEGER NOT NULL DEFAULT 0,
                    created_at REAL NOT NULL
                )
                """
            )

            cur.execute("PRAGMA table_info(tasks)")
            cols = {row["name"] for row in cur.fetchall()}

            def add_col(name: str, decl: str) -> None:
                if name in cols:
                    return
                cur.execute(f"ALTER TABLE tasks ADD COLUMN {name} {decl}")
                logger.info("TaskStore migration: added column %s", name)

            # Older databases predate flagging and manual ordering.
            add_col("completed", "INTEGER NOT NULL DEFAULT 0")
            add_col("flagged", "INTEGER NOT NULL DEFAULT 0")
            add_col("position", "INTEGER NOT NULL DEFAULT 0")
            add_col("created_at", "REAL NOT NULL DEFAULT 0")

            cur.execute(
                "CREATE INDEX IF NOT EXISTS idx_tasks_owner_order "
                "ON tasks(user_id, flagged, position)"
            )

            cur.execute(
                """
                CREATE TABLE IF NOT EXISTS profiles (
                    user_id TEXT PRIMARY KEY,
                    role TEXT NOT NULL DEFAULT 'user'
                )
                """
            )

            conn.commit()
        finally:
            conn.close()

    @staticmethod
    def _row_to_task(row: sqlite3.Row) -> Task:
        return Task(
            id=int(row["id"]),
            title=str(row["title"] or ""),
            completed=bool(row["completed"]),
            flagged=bool(row["flagged"]),
            position=int(row["position"] or 0),
            user_id=str(row["user_id"]),
            created_at=float(row["created_at"] or 0.0),
        )

    # ---- tasks ----

    def count_tasks(self) -> int:
        conn = self._get_conn()
        try:
            (n,) = conn.execute("SELECT COUNT(*) FROM tasks").fetchone()
            return int(n)
        finally:
            conn.close()

    def add_task(
        self,
        *,
        user_id: str,
        title: str,
        flagged: bool = False,
        completed: bool = False,
        position: int = 0,
    ) -> Task:
        if not user_id:
            raise ValueError("user_id is required")
        if not title or not title.strip():
            raise ValueError("title is required")

        now = time.time()
        conn = self._get_conn()
        try:
            cur = conn.execute(
                """
                INSERT INTO tasks(user_id, title, completed, flagged, position, created_at)
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                (user_id, title.strip(), int(completed), int(flagged), int(position), now),
            )
            conn.commit()
            rowid = cur.lastrowid
            if rowid is None:
                raise RuntimeError("SQLite did not return lastrowid for tasks insert")
            task_id = int(rowid)
            logger.debug("Task added id=%s user=%s flagged=%s", task_id, user_id, flagged)
            return Task(
                id=task_id,
                title=title.strip(),
                completed=completed,
                flagged=flagged,
                position=int(position),
                user_id=user_id,
                created_at=now,
            )
        finally:
            conn.close()

    def add_tasks_batch(self, *, user_id: str, titles: Iterable[str], flagged: bool = False) -> list[Task]:
        """
        Insert several tasks in one transaction.

        All-or-nothing: any failure rolls back the whole batch and re-raises.
        """
        clean = [t.strip() for t in titles if t and t.strip()]
        if not user_id:
            raise ValueError("user_id is required")
        if not clean:
            return []

        now = time.time()
        conn = self._get_conn()
        try:
            created: list[Task] = []
            with conn:
                for title in clean:
                    cur = conn.execute(
                        """
                        INSERT INTO tasks(user_id, title, completed, flagged, position, created_at)
                        VALUES (?, ?, 0, ?, 0, ?)
                        """,
                        (user_id, title, int(flagged), now),
                    )
                    if cur.lastrowid is None:
                        raise RuntimeError("SQLite did not return lastrowid for tasks insert")
                    created.append(
                        Task(
                            id=int(cur.lastrowid),
                            title=title,
                            completed=False,
                            flagged=flagged,
                            position=0,
                            user_id=user_id,
                            created_at=now,
                        )
                    )
            logger.debug("Task batch added user=%s n=%s flagged=%s", user_id, len(created), flagged)
            return created
        finally:
            conn.close()

    def get_task(self, task_id: int) -> Task | None:
        conn = self._get_conn()
        try:
            row = conn.execute("SELECT * FROM tasks WHERE id = ?", (int(task_id),)).fetchone()
            return self._row_to_task(row) if row else None
        finally:
            conn.close()

    def list_tasks_for_user(self, user_id: str) -> list[Task]:
        """Owner's tasks: flagged first, then position, newest first, then id."""
        if not user_id:
            return []

        conn = self._get_conn()
        try:
            cur = conn.execute(
                """
                SELECT *
                FROM tasks
                WHERE user_id = ?
                ORDER BY flagged DESC, position ASC, created_at DESC, id ASC
                """,
                (user_id,),
            )
            return [self._row_to_task(r) for r in cur.fetchall()]
        finally:
            conn.close()

    def list_latest_tasks(self, limit: int = 200) -> list[Task]:
        """Newest tasks across all owners (admin overview)."""
        limit = max(0, int(limit))
        conn = self._get_conn()
        try:
            cur = conn.execute(
                "SELECT * FROM tasks ORDER BY created_at DESC, id DESC LIMIT ?",
                (limit,),
            )
            return [self._row_to_task(r) for r in cur.fetchall()]
        finally:
            conn.close()

    def update_task_fields(
        self,
        task_id: int,
        *,
        title: str | None = None,
        completed: bool | None = None,
        flagged: bool | None = None,
        position: int | None = None,
    ) -> bool:
        """
        Unconditional "set field to value" update.

        Returns False when no row with task_id exists (e.g. deleted meanwhile);
        an update on a missing id never creates a row.
        """
        fields: list[str] = []
        params: list[Any] = []

        if title is not None:
            if not title.strip():
                raise ValueError("title must not be empty")
            fields.append("title = ?")
            params.append(title.strip())

        if completed is not None:
            fields.append("completed = ?")
            params.append(int(bool(completed)))

        if flagged is not None:
            fields.append("flagged = ?")
            params.append(int(bool(flagged)))

        if position is not None:
            fields.append("position = ?")
            params.append(int(position))

        if not fields:
            return self.get_task(task_id) is not None

        params.append(int(task_id))
        sql = f"UPDATE tasks SET {', '.join(fields)} WHERE id = ?"

        conn = self._get_conn()
        try:
            cur = conn.execute(sql, params)
            conn.commit()
            return cur.rowcount == 1
        finally:
            conn.close()

    def delete_task(self, task_id: int) -> bool:
        conn = self._get_conn()
        try:
            cur = conn.execute("DELETE FROM tasks WHERE id = ?", (int(task_id),))
            conn.commit()
            return cur.rowcount == 1
        finally:
            conn.close()

    # ---- profiles ----

    def get_role(self, user_id: str) -> str | None:
        if not user_id:
            return None
        conn = self._get_conn()
        try:
            row = conn.execute("SELECT role FROM profiles WHERE user_id = ?", (user_id,)).fetchone()
            return str(row["role"]) if row else None
        finally:
            conn.close()

    def set_role(self, user_id: str, role: str) -> None:
        conn = self._get_conn()
        try:
            conn.execute(
                """
                INSERT INTO profiles(user_id, role) VALUES (?, ?)
                ON CONFLICT(user_id) DO UPDATE SET role = excluded.role
                """,
                (user_id, role),
            )
            conn.commit()
        finally:
            conn.close()
