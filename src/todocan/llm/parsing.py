# src/todocan/llm/parsing.py

"""
Lenient extraction of a string list from model output.

Models asked for "only a JSON array" still wrap it in markdown fences or
surround it with prose. Each strategy below is total: it returns a list or
None ("no match") and never raises. The first strategy that matches wins.
"""

from __future__ import annotations

import json
import re
from collections.abc import Callable
from typing import Any

ParseStrategy = Callable[[str], list[str] | None]

_FENCE_RE = re.compile(r"```(?:json)?\s*([\s\S]*?)\s*```", re.IGNORECASE)
_BRACKET_RE = re.compile(r"\[[\s\S]*\]")


def _clean_strings(value: Any) -> list[str] | None:
    """Keep only non-empty trimmed strings; non-lists are no match."""
    if not isinstance(value, list):
        return None
    return [s for s in (v.strip() for v in value if isinstance(v, str)) if s]


def _loads_list(text: str) -> list[str] | None:
    try:
        return _clean_strings(json.loads(text))
    except (ValueError, RecursionError):
        return None


def parse_whole(text: str) -> list[str] | None:
    return _loads_list(text)


def parse_fenced(text: str) -> list[str] | None:
    m = _FENCE_RE.search(text)
    if m is None or not m.group(1):
        return None
    return _loads_list(m.group(1))


def parse_bracketed(text: str) -> list[str] | None:
    # Greedy: first "[" through last "]", so nested arrays stay intact.
    m = _BRACKET_RE.search(text)
    if m is None:
        return None
    return _loads_list(m.group(0))


DEFAULT_STRATEGIES: tuple[ParseStrategy, ...] = (parse_whole, parse_fenced, parse_bracketed)


def extract_string_list(text: str | None, strategies: tuple[ParseStrategy, ...] = DEFAULT_STRATEGIES) -> list[str]:
    """Return the first strategy's match, or [] if none matches."""
    t = (text or "").strip()
    if not t:
        return []
    for strategy in strategies:
        result = strategy(t)
        if result is not None:
            return result
    return []
