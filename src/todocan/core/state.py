# src/todocan/core/state.py

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from ..config import ConfigurationError
from ..generation.orchestrator import TaskGenerator
from ..llm.gemini import GeminiClient
from ..tasks.task_store import TaskStore
from .ports import GenerativeTextService


@dataclass
class AppState:
    # Store Settings on the state for easy access in other modules later.
    settings: Any

    task_store: TaskStore
    api_tokens: dict[str, str]

    # None when no Gemini key is configured: CRUD still works, generation does not.
    llm: GenerativeTextService | None = None
    generator: TaskGenerator | None = None

    def require_generator(self) -> TaskGenerator:
        if self.generator is None:
            raise ConfigurationError("Missing GEMINI_API_KEY")
        return self.generator

    def require_llm(self) -> GenerativeTextService:
        if self.llm is None:
            raise ConfigurationError("Missing GEMINI_API_KEY")
        return self.llm

    async def aclose(self) -> None:
        if isinstance(self.llm, GeminiClient):
            await self.llm.aclose()
