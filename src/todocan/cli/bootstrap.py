# src/todocan/cli/bootstrap.py

"""
CLI bootstrap helpers.

This module is the "composition root":
- loads settings once,
- ensures local (gitignored) directories exist,
- wires concrete implementations into AppState (task store, Gemini client, generator),
- seeds admin profiles from settings.
"""

from __future__ import annotations

import logging

from ..config import ConfigurationError, get_settings, require_gemini_api_key
from ..core.state import AppState
from ..generation.orchestrator import TaskGenerator
from ..llm.gemini import GeminiClient
from ..tasks.task_store import TaskStore

logger = logging.getLogger(__name__)


def _ensure_local_dirs(settings) -> None:
    settings.data_dir.mkdir(parents=True, exist_ok=True)
    settings.tasks_db_path.parent.mkdir(parents=True, exist_ok=True)


def create_initial_state(*, settings=None) -> AppState:
    """
    Create AppState from the provided settings.

    Keeping settings injectable makes the app easier to test and avoids hidden global config reads.
    If settings is None, falls back to get_settings().
    """
    if settings is None:
        settings = get_settings()

    _ensure_local_dirs(settings)

    task_store = TaskStore(settings.tasks_db_path)
    for user_id in settings.admin_users:
        task_store.set_role(user_id, "admin")

    state = AppState(
        settings=settings,
        task_store=task_store,
        api_tokens=dict(settings.api_tokens),
    )

    try:
        api_key = require_gemini_api_key(settings)
    except ConfigurationError:
        # Generation is optional; CRUD endpoints keep working without a key.
        logger.warning("GEMINI_API_KEY is not set; task generation is disabled.")
        return state

    client = GeminiClient(
        api_key,
        base_url=settings.gemini_base_url,
        connect_timeout=settings.gemini_connect_timeout,
        read_timeout=settings.gemini_read_timeout,
    )
    state.llm = client
    state.generator = TaskGenerator(
        client,
        task_store,
        fallback_models=settings.gemini_fallback_models,
    )
    return state
