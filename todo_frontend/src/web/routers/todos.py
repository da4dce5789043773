from __future__ import annotations

from typing import Any, Dict

from fastapi import APIRouter, Depends, HTTPException, Response, status

from ..auth import require_scope
from ..models import Scope
from ..schemas import SyncStateOut, TodoCreate, TodoRename
from ..utils import state_envelope
from ..workspace import Workspace, get_workspace

router = APIRouter(
    prefix="/api/v1/todos",
    tags=["todos"],
)


async def _loaded_workspace(
    workspace: Workspace = Depends(get_workspace),
    scope: Scope = Depends(require_scope),
) -> Workspace:
    """
    Dependency making sure the collection was fetched for the current
    principal before a mutation looks records up in it.
    """
    await workspace.ensure_loaded()
    return workspace


def _envelope(workspace: Workspace, response: Response, ok: bool) -> Dict[str, Any]:
    if not ok and workspace.sync.error is not None:
        response.status_code = status.HTTP_502_BAD_GATEWAY
    return state_envelope(workspace.sync)


def _is_blank(title: str) -> bool:
    return not title.strip()


def _require_known(workspace: Workspace, todo_id: str) -> None:
    if workspace.sync.find(todo_id) is not None:
        return
    if not workspace.loaded:
        # Without a loaded collection the id cannot be resolved
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=workspace.sync.error or "Todo list could not be loaded",
        )
    raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Todo not found")


# PUBLIC_INTERFACE
@router.get(
    "/",
    response_model=SyncStateOut,
    summary="List Todos",
    description="Reload the collection from the remote store, newest first.",
    responses={
        200: {"description": "Collection reloaded"},
        401: {"description": "Not authenticated"},
        502: {"description": "Remote store failure; the previous collection is kept"},
    },
)
async def list_todos(
    response: Response,
    workspace: Workspace = Depends(get_workspace),
    scope: Scope = Depends(require_scope),
) -> Dict[str, Any]:
    """
    Reload all todos in scope.
    """
    ok = await workspace.reload(scope)
    return _envelope(workspace, response, ok)


# PUBLIC_INTERFACE
@router.post(
    "/",
    response_model=SyncStateOut,
    status_code=status.HTTP_201_CREATED,
    summary="Add Todo",
    description=(
        "Insert a todo and prepend the confirmed row. A blank title is ignored "
        "without contacting the remote store and answers 200 with the unchanged state."
    ),
    responses={
        201: {"description": "Todo added"},
        200: {"description": "Blank title ignored"},
        502: {"description": "Remote store failure; nothing was added"},
    },
)
async def add_todo(
    payload: TodoCreate,
    response: Response,
    workspace: Workspace = Depends(_loaded_workspace),
    scope: Scope = Depends(require_scope),
) -> Dict[str, Any]:
    """
    Add a new todo.
    """
    if _is_blank(payload.title):
        response.status_code = status.HTTP_200_OK
        return state_envelope(workspace.sync)
    created = await workspace.sync.add(payload.title, scope)
    return _envelope(workspace, response, created is not None)


# PUBLIC_INTERFACE
@router.post(
    "/{todo_id}/toggle",
    response_model=SyncStateOut,
    summary="Toggle Todo",
    description="Flip the completion flag of a todo.",
    responses={
        200: {"description": "Todo toggled"},
        404: {"description": "Todo not found"},
        502: {"description": "Remote store failure; the collection was reloaded"},
    },
)
async def toggle_todo(
    todo_id: str,
    response: Response,
    workspace: Workspace = Depends(_loaded_workspace),
    scope: Scope = Depends(require_scope),
) -> Dict[str, Any]:
    """
    Toggle a todo's is_done flag.
    """
    _require_known(workspace, todo_id)
    ok = await workspace.sync.toggle(todo_id, scope)
    return _envelope(workspace, response, ok)


# PUBLIC_INTERFACE
@router.patch(
    "/{todo_id}",
    response_model=SyncStateOut,
    summary="Rename Todo",
    description="Replace the title of a todo. A blank title leaves the todo untouched.",
    responses={
        200: {"description": "Todo renamed, or blank title ignored"},
        404: {"description": "Todo not found"},
        502: {"description": "Remote store failure; the collection was reloaded"},
    },
)
async def rename_todo(
    todo_id: str,
    payload: TodoRename,
    response: Response,
    workspace: Workspace = Depends(_loaded_workspace),
    scope: Scope = Depends(require_scope),
) -> Dict[str, Any]:
    """
    Rename a todo.
    """
    _require_known(workspace, todo_id)
    if _is_blank(payload.title):
        return state_envelope(workspace.sync)
    ok = await workspace.sync.rename(todo_id, payload.title, scope)
    return _envelope(workspace, response, ok)


# PUBLIC_INTERFACE
@router.delete(
    "/{todo_id}",
    response_model=SyncStateOut,
    summary="Delete Todo",
    description="Delete a todo remotely, then drop it from the collection.",
    responses={
        200: {"description": "Todo deleted"},
        404: {"description": "Todo not found"},
        502: {"description": "Remote store failure; the collection was reloaded"},
    },
)
async def delete_todo(
    todo_id: str,
    response: Response,
    workspace: Workspace = Depends(_loaded_workspace),
    scope: Scope = Depends(require_scope),
) -> Dict[str, Any]:
    """
    Delete a todo.
    """
    _require_known(workspace, todo_id)
    ok = await workspace.sync.delete(todo_id, scope)
    return _envelope(workspace, response, ok)
