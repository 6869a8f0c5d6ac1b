from __future__ import annotations

import logging
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.encoders import jsonable_encoder

from agenda.auth import current_workspace
from agenda.schemas import JournalCreate, JournalPatch, entry_out, pending_out
from agenda.workspace import Workspace

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/v1/journal")
async def list_entries(day: Optional[date] = Query(None), workspace: Workspace = Depends(current_workspace)):
    feed = await workspace.journal(day)
    return {"items": [entry_out(entry) for entry in feed.items], "archive": feed.archive_mode}


@router.post("/v1/journal")
async def create_entry(
    payload: JournalCreate,
    day: Optional[date] = Query(None),
    workspace: Workspace = Depends(current_workspace),
):
    try:
        feed = await workspace.journal(day)
        entry = await feed.add_entry(payload.text, when=payload.when)
    except Exception as exc:
        logger.exception("Failed to create journal entry: %s", exc)
        raise HTTPException(status_code=500, detail="Internal error")
    if entry is None:
        raise HTTPException(status_code=500, detail="Internal error")
    return jsonable_encoder(entry_out(entry))


@router.patch("/v1/journal/{entry_id}")
async def patch_entry(
    entry_id: str,
    payload: JournalPatch,
    day: Optional[date] = Query(None),
    workspace: Workspace = Depends(current_workspace),
):
    feed = await workspace.journal(day)
    if feed.find(entry_id) is None:
        raise HTTPException(status_code=404, detail="Entry not found")
    await feed.update_entry(entry_id, payload.text)
    return {"ok": True, "item": entry_out(feed.find(entry_id))}


@router.delete("/v1/journal/{entry_id}")
async def delete_entry(entry_id: str, day: Optional[date] = Query(None), workspace: Workspace = Depends(current_workspace)):
    feed = await workspace.journal(day)
    if not feed.delete_entry(entry_id):
        raise HTTPException(status_code=404, detail="Entry not found")
    return {"ok": True, "undo": pending_out(workspace.undo.pending)}
