# src/todocan/llm/catalog.py

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass
from typing import Any

from .gemini import GENERATE_METHOD, CatalogResponse

logger = logging.getLogger(__name__)

ModelMatcher = Callable[[str], bool]

DEFAULT_PREFERRED_FRAGMENTS = (
    "gemini-2.5-pro",
    "gemini-2.0-pro",
    "gemini-2.5-flash",
    "gemini-2.0-flash",
    "gemini-1.5-flash",
)

DEFAULT_FALLBACK_MODELS = ("models/gemini-2.0-flash", "models/gemini-1.5-flash")


def name_contains(fragment: str) -> ModelMatcher:
    def _match(name: str) -> bool:
        return fragment in name

    _match.__name__ = f"name_contains({fragment!r})"
    return _match


@dataclass(frozen=True, slots=True)
class ModelPreference:
    """
    Ordered match predicates, most preferred first.

    This is a best-effort preference: nothing guarantees a matching model is
    listed, which is why fallback identifiers are always appended.
    """

    matchers: tuple[ModelMatcher, ...]

    @classmethod
    def from_fragments(cls, fragments: Iterable[str] = DEFAULT_PREFERRED_FRAGMENTS) -> ModelPreference:
        return cls(tuple(name_contains(f) for f in fragments))

    def pick(self, catalog: Sequence[str]) -> str | None:
        """First catalog entry matching the first predicate that matches anything."""
        for matcher in self.matchers:
            for name in catalog:
                if matcher(name):
                    return name
        return None


def _supports_generation(model: dict[str, Any]) -> bool:
    methods = model.get("supportedGenerationMethods")
    return isinstance(methods, list) and GENERATE_METHOD in methods


def generation_capable(catalog: CatalogResponse) -> list[dict[str, Any]]:
    return [m for m in catalog.models if _supports_generation(m)]


async def list_generation_capable_models(client: Any) -> list[str]:
    """
    Names of models supporting free-form generation, in service order.

    Absence of models is a normal condition: any failure yields [].
    """
    try:
        catalog: CatalogResponse = await client.list_models()
    except Exception:
        logger.exception("Model catalog call failed")
        return []

    if not catalog.ok:
        logger.info("Model catalog unavailable status=%s", catalog.status)
        return []

    names = [str(m.get("name")) for m in generation_capable(catalog) if m.get("name")]
    logger.debug("Model catalog: %d generation-capable models", len(names))
    return names


async def describe_catalog(client: Any) -> dict[str, Any]:
    """Passthrough payload for the catalog debugging endpoint."""
    catalog: CatalogResponse = await client.list_models()
    if not catalog.parsed:
        return {
            "ok": False,
            "status": catalog.status,
            "contentType": catalog.content_type,
            "raw": catalog.raw,
        }

    return {
        "ok": catalog.ok,
        "status": catalog.status,
        "contentType": catalog.content_type,
        "generateContentModels": [
            {
                "name": m.get("name"),
                "baseModelId": m.get("baseModelId"),
                "supportedGenerationMethods": m.get("supportedGenerationMethods"),
            }
            for m in generation_capable(catalog)
        ],
    }


def rank_candidates(
    catalog: Sequence[str],
    preference: ModelPreference | None = None,
    fallbacks: Iterable[str] = DEFAULT_FALLBACK_MODELS,
) -> list[str]:
    """Preferred catalog pick (if any) followed by the fixed fallbacks, deduplicated."""
    pref = preference or ModelPreference.from_fragments()
    ordered = [pref.pick(catalog), *fallbacks]

    out: list[str] = []
    for name in ordered:
        if name and name not in out:
            out.append(name)
    return out
