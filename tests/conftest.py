# tests/conftest.py

from __future__ import annotations

from pathlib import Path
from types import SimpleNamespace

import pytest

from todocan.core.state import AppState
from todocan.generation.orchestrator import TaskGenerator
from todocan.tasks.task_store import TaskStore

from .fakes import FakeGenerativeService, catalog_model


@pytest.fixture()
def settings(tmp_path: Path) -> SimpleNamespace:
    """
    Minimal settings object compatible with AppState and the API.

    We intentionally use a SimpleNamespace rather than importing real config,
    to keep unit tests isolated from the environment.
    """
    return SimpleNamespace(
        app_name="todocan-test",
        data_dir=tmp_path,
        tasks_db_path=tmp_path / "tasks.sqlite3",
        api_tokens={"tok-alice": "alice", "tok-bob": "bob", "tok-root": "root"},
        admin_users=["root"],
    )


@pytest.fixture()
def task_store(settings: SimpleNamespace) -> TaskStore:
    store = TaskStore(settings.tasks_db_path)
    for user_id in settings.admin_users:
        store.set_role(user_id, "admin")
    return store


@pytest.fixture()
def llm() -> FakeGenerativeService:
    return FakeGenerativeService(
        models=[catalog_model("models/gemini-2.0-flash")],
        replies={"models/gemini-2.0-flash": ['["Buy milk","Call mom"]']},
    )


@pytest.fixture()
def state(settings: SimpleNamespace, task_store: TaskStore, llm: FakeGenerativeService) -> AppState:
    """
    AppState wired with a fake generative service.

    NOTE: We keep the real SQLite TaskStore here because its behavior
    (ownership, batch atomicity) is part of what we want to test.
    """
    return AppState(
        settings=settings,
        task_store=task_store,
        api_tokens=dict(settings.api_tokens),
        llm=llm,
        generator=TaskGenerator(llm, task_store),
    )
