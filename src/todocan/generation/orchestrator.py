# src/todocan/generation/orchestrator.py

"""
Prompt -> tasks generation.

Drives ranked (model x sampling config) attempts against the generative text
service until one yields at least one usable title, then persists the titles
as one all-or-nothing batch.

Behavior:
- Attempts are strictly sequential, one network call outstanding at a time.
- Transport errors, non-2xx, unparsable bodies and empty title lists are all
  attempt failures -> try the next (model, config).
- If nothing works, the result is empty and carries the last attempt.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from typing import Any

from ..core.ports import GenerativeTextService, TaskRepo
from ..llm.catalog import DEFAULT_FALLBACK_MODELS, ModelPreference, list_generation_capable_models, rank_candidates
from ..llm.gemini import GenerationAttempt
from ..llm.parsing import extract_string_list
from ..tasks.task_models import Task

logger = logging.getLogger(__name__)

MAX_TITLES = 10

SYSTEM_INSTRUCTION = "\n".join(
    [
        "You generate realistic, concrete todos from user input.",
        "Infer implied actions when the input is a statement.",
        "Todos must be real-world actions a human can do.",
        'Avoid meta tasks like "clarify", "define success", "list steps", "plan", "schedule time".',
        "Do NOT repeat or paraphrase the input.",
        "Return ONLY a JSON array of strings. No markdown, no explanations.",
        "Each string must start with a verb.",
        "Choose an appropriate number of items based on the input (could be 1 to 7).",
        "If the input yields only one sensible action, output only one item.",
        "CRITICAL: Output the todos in the SAME LANGUAGE as the user input. If mixed, use the dominant language.",
    ]
)

_FEW_SHOT = "\n".join(
    [
        "Examples:",
        "Input: \"Tomorrow is my dad's birthday\"",
        'Output: ["Buy a present for dad","Call dad to congratulate"]',
        'Input: "Read a book"',
        'Output: ["Choose a book to read","Read 20 pages"]',
    ]
)


def build_user_prompt(prompt_text: str) -> str:
    return f'{_FEW_SHOT}\n\nNow generate todos for this input: """{prompt_text}"""'


@dataclass(frozen=True, slots=True)
class SamplingConfig:
    temperature: float
    max_output_tokens: int


# Deterministic and concise first, slightly more creative second.
DEFAULT_SAMPLING: tuple[SamplingConfig, ...] = (
    SamplingConfig(temperature=0.2, max_output_tokens=256),
    SamplingConfig(temperature=0.35, max_output_tokens=256),
)


class BatchInsertError(RuntimeError):
    """The accepted titles could not be persisted; nothing was inserted."""

    def __init__(self, rows: list[dict[str, Any]], detail: str) -> None:
        super().__init__(f"DB insert failed: {detail}")
        self.rows = rows
        self.detail = detail


@dataclass(slots=True)
class GenerationResult:
    created: list[Task] = field(default_factory=list)
    model: str | None = None
    attempt: GenerationAttempt | None = None
    attempts: int = 0

    def to_payload(self, *, include_debug: bool, flagged: bool) -> dict[str, Any]:
        """HTTP response body; debug only for privileged callers."""
        payload: dict[str, Any] = {
            "created": [t.to_dict() for t in self.created],
            "model": self.model,
        }
        if include_debug:
            a = self.attempt
            debug: dict[str, Any] = {
                "geminiText": a.model_text if a else "",
                "candidatesCount": a.candidates_count if a else 0,
                "blockReason": a.block_reason if a else None,
                "finishReason": a.finish_reason if a else None,
                "status": a.status if a else None,
                "attempts": self.attempts,
                "flaggedUsed": flagged,
            }
            if not self.created:
                debug["note"] = "No valid todo array produced after retries"
            payload["debug"] = debug
        return payload


def usable_titles(raw_titles: Iterable[str], limit: int = MAX_TITLES) -> list[str]:
    return [t for t in (x.strip() for x in raw_titles) if t][:limit]


class TaskGenerator:
    """Turns one freeform prompt into a validated batch of stored tasks."""

    def __init__(
        self,
        client: GenerativeTextService,
        task_store: TaskRepo,
        *,
        preference: ModelPreference | None = None,
        fallback_models: Sequence[str] = DEFAULT_FALLBACK_MODELS,
        sampling: Sequence[SamplingConfig] = DEFAULT_SAMPLING,
    ) -> None:
        self._client = client
        self._store = task_store
        self._preference = preference or ModelPreference.from_fragments()
        self._fallbacks = tuple(fallback_models)
        self._sampling = tuple(sampling)

    async def candidate_models(self) -> list[str]:
        catalog = await list_generation_capable_models(self._client)
        return rank_candidates(catalog, self._preference, self._fallbacks)

    async def generate(self, prompt_text: str, *, user_id: str, flagged: bool = False) -> GenerationResult:
        text = (prompt_text or "").strip()
        if not text:
            raise ValueError("Missing text")

        user_prompt = build_user_prompt(text)
        models = await self.candidate_models()
        result = GenerationResult()

        for model in models:
            for cfg in self._sampling:
                logger.info(
                    "Generation: trying model=%s temperature=%.2f max_tokens=%d",
                    model,
                    cfg.temperature,
                    cfg.max_output_tokens,
                )
                attempt = await self._client.generate_content(
                    model=model,
                    system_instruction=SYSTEM_INSTRUCTION,
                    user_prompt=user_prompt,
                    temperature=cfg.temperature,
                    max_output_tokens=cfg.max_output_tokens,
                )
                result.attempts += 1
                result.attempt = attempt
                result.model = model

                if not attempt.ok:
                    continue

                attempt.titles = usable_titles(extract_string_list(attempt.model_text))
                if not attempt.titles:
                    logger.info("Generation: no usable titles from model=%s", model)
                    continue

                result.created = await self._persist(user_id, attempt.titles, flagged)
                logger.info(
                    "Generation: model=%s produced %d tasks for user=%s",
                    model,
                    len(result.created),
                    user_id,
                )
                return result

        logger.info("Generation: no usable titles after %d attempts", result.attempts)
        return result

    async def _persist(self, user_id: str, titles: list[str], flagged: bool) -> list[Task]:
        try:
            return await asyncio.to_thread(
                self._store.add_tasks_batch, user_id=user_id, titles=titles, flagged=flagged
            )
        except Exception as e:
            logger.exception("Generation: batch insert failed user=%s n=%d", user_id, len(titles))
            rows = [
                {"title": t, "user_id": user_id, "completed": False, "flagged": flagged}
                for t in titles
            ]
            raise BatchInsertError(rows, str(e)) from e
