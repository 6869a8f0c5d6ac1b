from __future__ import annotations

import logging
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.encoders import jsonable_encoder

from agenda.auth import current_workspace
from agenda.hooks.habits import HabitTracker
from agenda.schemas import (
    HabitCreate,
    HabitLogValue,
    HabitManualAmount,
    HabitPatch,
    HabitPause,
    habit_day_out,
    habit_out,
)
from agenda.workspace import Workspace

logger = logging.getLogger(__name__)

router = APIRouter()


async def _tracker_with(workspace: Workspace, habit_id: str, day: Optional[date]) -> HabitTracker:
    tracker = await workspace.habits(day)
    if tracker.find(habit_id) is None:
        raise HTTPException(status_code=404, detail="Habit not found")
    return tracker


def _logged(value):
    if value is None:
        raise HTTPException(status_code=409, detail="Progress not recorded")
    return {"ok": True, "value": value}


@router.get("/v1/habits")
async def list_habits(
    day: Optional[date] = Query(None),
    start: Optional[date] = Query(None),
    end: Optional[date] = Query(None),
    workspace: Workspace = Depends(current_workspace),
):
    if (start is None) != (end is None):
        raise HTTPException(status_code=400, detail="start and end go together")
    if start is not None and end is not None and start > end:
        raise HTTPException(status_code=400, detail="start must not be after end")
    log_range = (start, end) if start is not None and end is not None else None
    tracker = await workspace.habits(day, log_range=log_range)
    payload = {
        "day": tracker.day.isoformat(),
        "items": [habit_day_out(row) for row in tracker.day_view()],
        "habits": [habit_out(habit) for habit in tracker.items],
    }
    if log_range is not None:
        payload["logs"] = tracker.range_logs
    return payload


@router.post("/v1/habits")
async def create_habit(payload: HabitCreate, workspace: Workspace = Depends(current_workspace)):
    try:
        tracker = await workspace.habits()
        habit = await tracker.add_habit(
            payload.name,
            habit_type=payload.type,
            target=payload.target,
            unit=payload.unit,
            frequency=payload.frequency,
            paused=payload.paused,
        )
    except Exception as exc:
        logger.exception("Failed to create habit: %s", exc)
        raise HTTPException(status_code=500, detail="Internal error")
    if habit is None:
        raise HTTPException(status_code=400, detail="Invalid habit")
    return jsonable_encoder(habit_out(habit))


@router.patch("/v1/habits/{habit_id}")
async def patch_habit(habit_id: str, payload: HabitPatch, workspace: Workspace = Depends(current_workspace)):
    tracker = await _tracker_with(workspace, habit_id, None)
    patch = payload.model_dump(exclude_unset=True)
    saved = await tracker.update_habit(
        habit_id,
        name=patch.get("name"),
        habit_type=patch.get("type"),
        target=patch.get("target"),
        unit=patch.get("unit"),
        frequency=patch.get("frequency"),
    )
    if not saved:
        raise HTTPException(status_code=400, detail="Invalid habit")
    return {"ok": True, "item": habit_out(tracker.find(habit_id))}


@router.post("/v1/habits/{habit_id}/pause")
async def pause_habit(habit_id: str, payload: HabitPause, workspace: Workspace = Depends(current_workspace)):
    tracker = await _tracker_with(workspace, habit_id, None)
    await tracker.set_paused(habit_id, payload.paused)
    return {"ok": True}


@router.delete("/v1/habits/{habit_id}")
async def delete_habit(habit_id: str, workspace: Workspace = Depends(current_workspace)):
    tracker = await _tracker_with(workspace, habit_id, None)
    await tracker.delete_habit(habit_id)
    return {"ok": True}


@router.post("/v1/habits/{habit_id}/log")
async def log_habit(
    habit_id: str,
    payload: HabitLogValue,
    day: Optional[date] = Query(None),
    workspace: Workspace = Depends(current_workspace),
):
    tracker = await _tracker_with(workspace, habit_id, day)
    return _logged(await tracker.log_progress(habit_id, payload.value))


@router.post("/v1/habits/{habit_id}/increment")
async def increment_habit(habit_id: str, day: Optional[date] = Query(None), workspace: Workspace = Depends(current_workspace)):
    tracker = await _tracker_with(workspace, habit_id, day)
    return _logged(await tracker.increment(habit_id))


@router.post("/v1/habits/{habit_id}/decrement")
async def decrement_habit(habit_id: str, day: Optional[date] = Query(None), workspace: Workspace = Depends(current_workspace)):
    tracker = await _tracker_with(workspace, habit_id, day)
    return _logged(await tracker.decrement(habit_id))


@router.post("/v1/habits/{habit_id}/manual")
async def add_manual_progress(
    habit_id: str,
    payload: HabitManualAmount,
    day: Optional[date] = Query(None),
    workspace: Workspace = Depends(current_workspace),
):
    tracker = await _tracker_with(workspace, habit_id, day)
    return _logged(await tracker.add_manual(habit_id, payload.amount))


@router.post("/v1/habits/{habit_id}/reset")
async def reset_habit(habit_id: str, day: Optional[date] = Query(None), workspace: Workspace = Depends(current_workspace)):
    tracker = await _tracker_with(workspace, habit_id, day)
    return _logged(await tracker.reset(habit_id))
