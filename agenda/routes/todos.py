from __future__ import annotations

import logging
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.encoders import jsonable_encoder

from agenda.auth import current_workspace
from agenda.hooks.todos import TodoRecords
from agenda.schemas import TodoCreate, TodoPatch, TodoReorder, TodoReschedule, pending_out, todo_out
from agenda.workspace import Workspace

logger = logging.getLogger(__name__)

router = APIRouter()


async def _locate(workspace: Workspace, todo_id: str, day: Optional[date]) -> TodoRecords:
    view = await workspace.todos(day)
    if view.find(todo_id) is not None:
        return view
    backlog = await workspace.incomplete_todos()
    if backlog.find(todo_id) is not None:
        return backlog
    raise HTTPException(status_code=404, detail="Todo not found")


@router.get("/v1/todos")
async def list_todos(day: Optional[date] = Query(None), workspace: Workspace = Depends(current_workspace)):
    view = await workspace.todos(day)
    return {"items": [todo_out(todo) for todo in view.items]}


@router.get("/v1/todos/incomplete")
async def list_incomplete_todos(workspace: Workspace = Depends(current_workspace)):
    view = await workspace.incomplete_todos()
    groups = [
        {"date": day.isoformat(), "items": [todo_out(todo) for todo in todos]}
        for day, todos in view.grouped().items()
    ]
    return {"groups": groups, "count": len(view.items)}


@router.post("/v1/todos/incomplete/{todo_id}/complete")
async def complete_incomplete_todo(todo_id: str, workspace: Workspace = Depends(current_workspace)):
    view = await workspace.incomplete_todos()
    if view.find(todo_id) is None:
        raise HTTPException(status_code=404, detail="Todo not found")
    await view.toggle_todo(todo_id)
    return {"ok": True}


@router.delete("/v1/todos/incomplete/{todo_id}")
async def delete_incomplete_todo(todo_id: str, workspace: Workspace = Depends(current_workspace)):
    view = await workspace.incomplete_todos()
    if view.find(todo_id) is None:
        raise HTTPException(status_code=404, detail="Todo not found")
    await view.delete_todo(todo_id)
    return {"ok": True}


@router.post("/v1/todos")
async def create_todo(payload: TodoCreate, workspace: Workspace = Depends(current_workspace)):
    try:
        view = await workspace.todos(payload.day)
        todo = await view.add_todo(payload.text, payload.category, day=payload.day)
    except Exception as exc:
        logger.exception("Failed to create todo: %s", exc)
        raise HTTPException(status_code=500, detail="Internal error")
    if todo is None:
        raise HTTPException(status_code=500, detail="Internal error")
    return jsonable_encoder(todo_out(todo))


@router.patch("/v1/todos/{todo_id}")
async def patch_todo(
    todo_id: str,
    payload: TodoPatch,
    day: Optional[date] = Query(None),
    workspace: Workspace = Depends(current_workspace),
):
    view = await workspace.todos(day)
    todo = view.find(todo_id)
    if todo is None:
        raise HTTPException(status_code=404, detail="Todo not found")
    patch = payload.model_dump(exclude_unset=True)
    if "text" in patch or "category" in patch:
        await view.update_todo(todo_id, text=patch.get("text"), category=patch.get("category"))
    completed = patch.get("completed")
    if completed is not None and completed != todo.completed:
        await view.toggle_todo(todo_id)
    updated = view.find(todo_id)
    return {"ok": True, "item": todo_out(updated) if updated else None}


@router.delete("/v1/todos/{todo_id}")
async def delete_todo(todo_id: str, day: Optional[date] = Query(None), workspace: Workspace = Depends(current_workspace)):
    view = await workspace.todos(day)
    if not view.delete_todo(todo_id):
        raise HTTPException(status_code=404, detail="Todo not found")
    return {"ok": True, "undo": pending_out(workspace.undo.pending)}


@router.post("/v1/todos/reorder")
async def reorder_todos(
    payload: TodoReorder,
    day: Optional[date] = Query(None),
    workspace: Workspace = Depends(current_workspace),
):
    view = await workspace.todos(day)
    by_id = {todo.id: todo for todo in view.items}
    missing = [todo_id for todo_id in payload.ids if todo_id not in by_id]
    if missing:
        raise HTTPException(status_code=404, detail=f"Unknown todos: {', '.join(missing)}")
    reordered = await view.reorder_todos([by_id[todo_id] for todo_id in payload.ids])
    return {"items": [todo_out(todo) for todo in reordered]}


@router.post("/v1/todos/{todo_id}/reschedule")
async def reschedule_todo(
    todo_id: str,
    payload: TodoReschedule,
    day: Optional[date] = Query(None),
    workspace: Workspace = Depends(current_workspace),
):
    view = await _locate(workspace, todo_id, day)
    await view.reschedule_todo(todo_id, payload.day)
    return {"ok": True}
