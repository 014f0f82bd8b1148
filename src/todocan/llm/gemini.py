# src/todocan/llm/gemini.py

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Any

import httpx

logger = logging.getLogger(__name__)

GENERATE_METHOD = "generateContent"

# Synthetic statuses for attempts that never produced a usable HTTP response body.
STATUS_NO_RESPONSE = 0
STATUS_BAD_JSON = 502


@dataclass(slots=True)
class CatalogResponse:
    """Raw result of the model listing call."""

    ok: bool
    status: int
    content_type: str
    models: list[dict[str, Any]] = field(default_factory=list)
    raw: str = ""
    parsed: bool = True


@dataclass(slots=True)
class GenerationAttempt:
    """
    One (model, temperature, max_output_tokens) call against the service.

    Ephemeral: used to pick the result to report and for admin debugging.
    """

    model: str
    temperature: float
    max_output_tokens: int
    ok: bool = False
    status: int = STATUS_NO_RESPONSE
    content_type: str = ""
    raw_text: str = ""
    model_text: str = ""
    titles: list[str] = field(default_factory=list)
    candidates_count: int = 0
    block_reason: str | None = None
    finish_reason: str | None = None


def _make_timeout(connect_s: float, read_s: float) -> httpx.Timeout:
    return httpx.Timeout(connect=connect_s, read=read_s, write=10.0, pool=connect_s)


def _candidate_text(candidate: Any) -> str | None:
    """Joined text parts of one candidate; None when the shape is not the documented one."""
    if not isinstance(candidate, dict):
        return None
    content = candidate.get("content")
    if content is None:
        return ""
    if not isinstance(content, dict):
        return None
    parts = content.get("parts")
    if parts is None:
        return ""
    if not isinstance(parts, list):
        return None
    return "".join(str(p.get("text") or "") for p in parts if isinstance(p, dict)).strip()


class GeminiClient:
    """
    Thin async client for the Gemini REST API (v1beta).

    Never raises for transport or service failures: callers get a
    CatalogResponse / GenerationAttempt with ok=False and the diagnostics
    needed to decide on a fallback.
    """

    def __init__(
        self,
        api_key: str,
        *,
        base_url: str = "https://generativelanguage.googleapis.com/v1beta",
        connect_timeout: float = 5.0,
        read_timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        if not api_key or not api_key.strip():
            raise ValueError("api_key is required")
        self._api_key = api_key.strip()
        self._http = httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            timeout=_make_timeout(connect_timeout, read_timeout),
            transport=transport,
        )

    async def aclose(self) -> None:
        await self._http.aclose()

    async def __aenter__(self) -> GeminiClient:
        return self

    async def __aexit__(self, *exc: object) -> None:
        await self.aclose()

    async def list_models(self) -> CatalogResponse:
        try:
            res = await self._http.get("/models", params={"key": self._api_key})
        except httpx.HTTPError as e:
            logger.info("Gemini: model listing failed (%s)", e.__class__.__name__)
            return CatalogResponse(ok=False, status=STATUS_NO_RESPONSE, content_type="", parsed=False)

        raw = res.text
        content_type = res.headers.get("content-type", "")
        try:
            data = json.loads(raw) if raw else None
        except json.JSONDecodeError:
            return CatalogResponse(
                ok=False, status=res.status_code, content_type=content_type, raw=raw, parsed=False
            )

        models_raw = data.get("models") if isinstance(data, dict) else None
        if models_raw is not None and not isinstance(models_raw, list):
            logger.info("Gemini: unexpected model listing shape")
            return CatalogResponse(
                ok=False, status=res.status_code, content_type=content_type, raw=raw, parsed=False
            )
        models = [m for m in (models_raw or []) if isinstance(m, dict)]
        return CatalogResponse(
            ok=res.is_success,
            status=res.status_code,
            content_type=content_type,
            models=models,
            raw=raw,
        )

    async def generate_content(
        self,
        *,
        model: str,
        system_instruction: str,
        user_prompt: str,
        temperature: float,
        max_output_tokens: int,
    ) -> GenerationAttempt:
        attempt = GenerationAttempt(
            model=model,
            temperature=temperature,
            max_output_tokens=max_output_tokens,
        )
        body = {
            "systemInstruction": {"parts": [{"text": system_instruction}]},
            "contents": [{"role": "user", "parts": [{"text": user_prompt}]}],
            "generationConfig": {
                "temperature": temperature,
                "maxOutputTokens": max_output_tokens,
                "responseMimeType": "application/json",
            },
        }

        try:
            res = await self._http.post(
                f"/{model}:{GENERATE_METHOD}",
                params={"key": self._api_key},
                json=body,
            )
        except httpx.HTTPError as e:
            logger.info("Gemini: network/timeout error on model=%s (%s)", model, e.__class__.__name__)
            return attempt

        attempt.status = res.status_code
        attempt.content_type = res.headers.get("content-type", "")
        attempt.raw_text = res.text

        if not res.is_success:
            logger.info("Gemini: HTTP %s on model=%s", res.status_code, model)
            return attempt

        try:
            data = json.loads(attempt.raw_text) if attempt.raw_text else None
        except json.JSONDecodeError:
            logger.info("Gemini: unparsable response body on model=%s", model)
            attempt.status = STATUS_BAD_JSON
            return attempt

        if not isinstance(data, dict):
            logger.info("Gemini: unexpected response shape on model=%s", model)
            attempt.status = STATUS_BAD_JSON
            return attempt

        candidates = data.get("candidates") or []
        feedback = data.get("promptFeedback") or {}
        if isinstance(feedback, dict):
            attempt.block_reason = feedback.get("blockReason")
        if not isinstance(candidates, list):
            logger.info("Gemini: unexpected candidates shape on model=%s", model)
            attempt.status = STATUS_BAD_JSON
            return attempt

        attempt.candidates_count = len(candidates)
        if candidates:
            first = candidates[0]
            text = _candidate_text(first)
            if text is None:
                logger.info("Gemini: unexpected candidate shape on model=%s", model)
                attempt.status = STATUS_BAD_JSON
                return attempt
            attempt.finish_reason = first.get("finishReason")
            attempt.model_text = text

        attempt.ok = True
        return attempt
