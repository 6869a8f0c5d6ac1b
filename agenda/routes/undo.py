from __future__ import annotations

from fastapi import APIRouter, Depends

from agenda.auth import current_workspace
from agenda.schemas import pending_out
from agenda.workspace import Workspace

router = APIRouter()


@router.get("/v1/undo")
async def get_pending(workspace: Workspace = Depends(current_workspace)):
    return {"pending": pending_out(workspace.undo.pending)}


@router.post("/v1/undo")
async def undo_last_delete(workspace: Workspace = Depends(current_workspace)):
    return {"undone": workspace.undo.undo()}


@router.delete("/v1/undo")
async def dismiss_pending(workspace: Workspace = Depends(current_workspace)):
    return {"dismissed": workspace.undo.dismiss()}
