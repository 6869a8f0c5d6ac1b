from __future__ import annotations

from fastapi import Depends, Header, HTTPException, Request

from agenda.settings import get_settings
from agenda.workspace import Workspace


async def require_user_id(
    x_user_id: str | None = Header(default=None, alias="X-User-Id"),
    x_backend_token: str | None = Header(default=None, alias="X-Backend-Token"),
) -> str:
    settings = get_settings()
    if not x_backend_token or x_backend_token != settings.backend_session_secret:
        raise HTTPException(status_code=401, detail="Invalid backend token")
    if not x_user_id or not x_user_id.strip():
        raise HTTPException(status_code=401, detail="Missing user id")
    user_id = x_user_id.strip()
    if settings.allowed_users and user_id not in settings.allowed_users:
        raise HTTPException(status_code=403, detail="User not allowed")
    return user_id


async def current_workspace(request: Request, user_id: str = Depends(require_user_id)) -> Workspace:
    registry = getattr(request.app.state, "registry", None)
    if registry is None:
        raise HTTPException(status_code=503, detail="Service starting")
    return registry.get(user_id)
