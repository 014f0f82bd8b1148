# src/todocan/core/ports.py

from __future__ import annotations

"""
Ports (interfaces) used by the core.

The core depends on Protocols instead of concrete implementations.
This keeps the task store and the generative text backend swappable and makes
testing easier.
"""

from typing import Any, Awaitable, Callable, Iterable, Protocol

from ..llm.gemini import CatalogResponse, GenerationAttempt

FieldWriter = Callable[[int, str, Any], Awaitable[bool]]
# Async "set field to value" write: (task_id, field, value) -> row still exists.


class TaskRepo(Protocol):
    # CRUD used by the session and the HTTP layer
    def add_task(
            self,
            *,
            user_id: str,
            title: str,
            flagged: bool = False,
            completed: bool = False,
            position: int = 0,
    ) -> Any: ...

    def get_task(self, task_id: int) -> Any | None: ...
    def list_tasks_for_user(self, user_id: str) -> list[Any]: ...
    def delete_task(self, task_id: int) -> bool: ...

    def update_task_fields(
            self,
            task_id: int,
            *,
            title: str | None = None,
            completed: bool | None = None,
            flagged: bool | None = None,
            position: int | None = None,
    ) -> bool: ...

    # Generation batch (all-or-nothing)
    def add_tasks_batch(self, *, user_id: str, titles: Iterable[str], flagged: bool = False) -> list[Any]: ...

    # Privilege check
    def get_role(self, user_id: str) -> str | None: ...


class GenerativeTextService(Protocol):
    """Remote text generation (Gemini-compatible REST)."""

    async def list_models(self) -> CatalogResponse: ...

    async def generate_content(
            self,
            *,
            model: str,
            system_instruction: str,
            user_prompt: str,
            temperature: float,
            max_output_tokens: int,
    ) -> GenerationAttempt: ...
