# src/todocan/api/app.py

"""FastAPI application: task CRUD, prompt generation, catalog and privilege endpoints."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any

from fastapi import APIRouter, Depends, FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse, Response
from pydantic import BaseModel

from ..config import ConfigurationError
from ..core.state import AppState
from ..generation.orchestrator import BatchInsertError
from ..llm.catalog import describe_catalog
from .auth import get_state, is_admin, optional_user, require_user

logger = logging.getLogger(__name__)

router = APIRouter()

ADMIN_TASK_LIMIT = 200


class TaskCreate(BaseModel):
    title: str
    flagged: bool = False


class TaskPatch(BaseModel):
    title: str | None = None
    completed: bool | None = None
    flagged: bool | None = None
    position: int | None = None


def _error(status: int, message: str, **extra: Any) -> JSONResponse:
    return JSONResponse({"error": message, **extra}, status_code=status)


async def _owned_task(state: AppState, task_id: int, user_id: str):
    task = await asyncio.to_thread(state.task_store.get_task, task_id)
    if task is None or task.user_id != user_id:
        raise HTTPException(status_code=404, detail="Task not found")
    return task


@router.get("/health")
async def health_check() -> dict[str, str]:
    return {"status": "healthy"}


@router.get("/api/me")
async def me(
    state: AppState = Depends(get_state),
    user_id: str | None = Depends(optional_user),
) -> dict[str, bool]:
    return {"isAdmin": await asyncio.to_thread(is_admin, state, user_id)}


@router.get("/api/todos")
async def list_todos(
    state: AppState = Depends(get_state),
    user_id: str = Depends(require_user),
) -> list[dict[str, Any]]:
    tasks = await asyncio.to_thread(state.task_store.list_tasks_for_user, user_id)
    return [t.to_dict() for t in tasks]


@router.post("/api/todos", status_code=201)
async def create_todo(
    body: TaskCreate,
    state: AppState = Depends(get_state),
    user_id: str = Depends(require_user),
) -> dict[str, Any]:
    title = body.title.strip()
    if not title:
        raise HTTPException(status_code=400, detail="Missing title")
    task = await asyncio.to_thread(
        state.task_store.add_task, user_id=user_id, title=title, flagged=body.flagged
    )
    return task.to_dict()


@router.patch("/api/todos/{task_id}")
async def update_todo(
    task_id: int,
    body: TaskPatch,
    state: AppState = Depends(get_state),
    user_id: str = Depends(require_user),
) -> dict[str, Any]:
    await _owned_task(state, task_id, user_id)
    if body.title is not None and not body.title.strip():
        raise HTTPException(status_code=400, detail="Title must not be empty")

    ok = await asyncio.to_thread(
        state.task_store.update_task_fields,
        task_id,
        title=body.title,
        completed=body.completed,
        flagged=body.flagged,
        position=body.position,
    )
    if not ok:
        raise HTTPException(status_code=404, detail="Task not found")
    task = await _owned_task(state, task_id, user_id)
    return task.to_dict()


@router.delete("/api/todos/{task_id}", status_code=204)
async def delete_todo(
    task_id: int,
    state: AppState = Depends(get_state),
    user_id: str = Depends(require_user),
) -> Response:
    await _owned_task(state, task_id, user_id)
    await asyncio.to_thread(state.task_store.delete_task, task_id)
    return Response(status_code=204)


@router.post("/api/todos/ai")
async def generate_todos(
    request: Request,
    state: AppState = Depends(get_state),
    user_id: str | None = Depends(optional_user),
) -> JSONResponse:
    try:
        body = await request.json()
    except ValueError:
        body = {}
    if not isinstance(body, dict):
        body = {}

    raw_text = body.get("text")
    text = raw_text.strip() if isinstance(raw_text, str) else ""
    if not text:
        return _error(400, "Missing text")

    flagged = bool(body.get("flagged"))

    try:
        generator = state.require_generator()
    except ConfigurationError as e:
        return _error(500, str(e))

    if user_id is None:
        return _error(401, "Unauthorized")

    admin = await asyncio.to_thread(is_admin, state, user_id)

    try:
        result = await generator.generate(text, user_id=user_id, flagged=flagged)
    except BatchInsertError as e:
        return _error(500, "DB insert failed", detail=e.detail, rows=e.rows)

    return JSONResponse(result.to_payload(include_debug=admin, flagged=flagged), status_code=200)


@router.get("/api/admin/todos")
async def admin_todos(
    state: AppState = Depends(get_state),
    user_id: str = Depends(require_user),
) -> list[dict[str, Any]]:
    if not await asyncio.to_thread(is_admin, state, user_id):
        raise HTTPException(status_code=403, detail="Forbidden")
    tasks = await asyncio.to_thread(state.task_store.list_latest_tasks, ADMIN_TASK_LIMIT)
    return [t.to_dict() for t in tasks]


@router.get("/api/gemini/models")
async def gemini_models(state: AppState = Depends(get_state)) -> JSONResponse:
    try:
        llm = state.require_llm()
    except ConfigurationError as e:
        return _error(500, str(e))
    return JSONResponse(await describe_catalog(llm), status_code=200)


def create_app(state: AppState | None = None) -> FastAPI:
    """
    Build the FastAPI app around an AppState.

    If state is None, the composition root builds one from settings.
    """
    if state is None:
        from ..cli.bootstrap import create_initial_state

        state = create_initial_state()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        logger.info("Starting %s API...", getattr(state.settings, "app_name", "todocan"))
        yield
        await state.aclose()
        logger.info("API stopped.")

    app = FastAPI(title="todocan", lifespan=lifespan)
    app.state.todocan = state
    app.include_router(router)

    @app.exception_handler(Exception)
    async def _unexpected(_request: Request, exc: Exception) -> JSONResponse:
        logger.exception("Unhandled error")
        return _error(500, str(exc) or "Unexpected error")

    return app
