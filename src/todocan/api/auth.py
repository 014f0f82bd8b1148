# src/todocan/api/auth.py

"""Bearer-token authentication and the admin privilege check."""

from __future__ import annotations

import logging

from fastapi import Depends, HTTPException, Request

from ..core.state import AppState

logger = logging.getLogger(__name__)

ADMIN_ROLE = "admin"


def get_state(request: Request) -> AppState:
    return request.app.state.todocan


def _bearer_token(request: Request) -> str | None:
    header = request.headers.get("authorization") or ""
    scheme, _, token = header.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


def optional_user(request: Request, state: AppState = Depends(get_state)) -> str | None:
    token = _bearer_token(request)
    if token is None:
        return None
    return state.api_tokens.get(token)


def require_user(user_id: str | None = Depends(optional_user)) -> str:
    if user_id is None:
        raise HTTPException(status_code=401, detail="Unauthorized")
    return user_id


def is_admin(state: AppState, user_id: str | None) -> bool:
    if not user_id:
        return False
    try:
        return state.task_store.get_role(user_id) == ADMIN_ROLE
    except Exception:
        logger.exception("Role lookup failed user=%s", user_id)
        return False
