"""Shared FastAPI dependencies for user-facing routes."""
from __future__ import annotations

from fastapi import Header, HTTPException, status

from easymode.core.context import bind_user_id

MAX_USER_ID_LENGTH = 128


async def require_user_id(x_user_id: str | None = Header(default=None, alias="X-User-Id")) -> str:
    """Reject unauthenticated calls before any work happens and tag logs with the caller."""
    user_id = (x_user_id or "").strip()
    if not user_id:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Must be authenticated (X-User-Id header)")
    if len(user_id) > MAX_USER_ID_LENGTH:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="X-User-Id is too long")
    bind_user_id(user_id)
    return user_id
