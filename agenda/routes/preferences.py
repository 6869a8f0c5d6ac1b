from __future__ import annotations

import asyncio
import logging

from fastapi import APIRouter, Depends, HTTPException

from agenda.auth import current_workspace
from agenda.schemas import FocusText, PreferencesPatch
from agenda.workspace import Workspace

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/v1/preferences")
async def get_preferences(workspace: Workspace = Depends(current_workspace)):
    return {"preferences": await workspace.sync_preferences()}


@router.patch("/v1/preferences")
async def patch_preferences(payload: PreferencesPatch, workspace: Workspace = Depends(current_workspace)):
    await workspace.sync_preferences()
    changes = payload.model_dump(by_alias=True, exclude_none=True)
    return {"preferences": await workspace.preferences.update(**changes)}


@router.get("/v1/focus")
async def get_focus(workspace: Workspace = Depends(current_workspace)):
    return await asyncio.to_thread(workspace.focus.current)


@router.put("/v1/focus")
async def set_focus(payload: FocusText, workspace: Workspace = Depends(current_workspace)):
    try:
        return await asyncio.to_thread(workspace.focus.set_text, payload.text)
    except OSError as exc:
        logger.exception("Failed to save focus: %s", exc)
        raise HTTPException(status_code=500, detail="Internal error")


@router.post("/v1/focus/toggle")
async def toggle_focus(workspace: Workspace = Depends(current_workspace)):
    try:
        return await asyncio.to_thread(workspace.focus.toggle)
    except OSError as exc:
        logger.exception("Failed to save focus: %s", exc)
        raise HTTPException(status_code=500, detail="Internal error")
