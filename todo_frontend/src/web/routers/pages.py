from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Form, status
from fastapi.responses import HTMLResponse, RedirectResponse

from .. import auth
from ..presentation import (
    TodoItemEditor,
    TodoPage,
    render_checking_page,
    render_sign_in_page,
    render_todo_page,
)
from ..remote import AuthError
from ..session import GateStatus
from ..workspace import Workspace, get_workspace

logger = logging.getLogger(__name__)

router = APIRouter(tags=["pages"], include_in_schema=False)

MIN_PASSWORD_LENGTH = 6


def _toggle_url(todo_id) -> str:
    return f"/todos/{todo_id}/toggle"


def _delete_url(todo_id) -> str:
    return f"/todos/{todo_id}/delete"


def _rename_url(todo_id) -> str:
    return f"/todos/{todo_id}/rename"


def _home() -> RedirectResponse:
    return RedirectResponse("/", status_code=status.HTTP_303_SEE_OTHER)


def _todo_page(
    workspace: Workspace,
    draft: str = "",
    editor: Optional[TodoItemEditor] = None,
) -> HTMLResponse:
    sync = workspace.sync
    page = TodoPage(
        collection=sync.todos,
        loading=sync.loading,
        error=sync.error,
        principal=workspace.principal,
        auth_required=workspace.settings.require_auth,
        draft=draft,
        editor=editor,
    )
    return HTMLResponse(render_todo_page(page, _toggle_url, _delete_url, _rename_url))


# PUBLIC_INTERFACE
@router.get("/", response_class=HTMLResponse)
async def index(
    edit: Optional[str] = None,
    mode: Optional[str] = None,
    workspace: Workspace = Depends(get_workspace),
) -> HTMLResponse:
    """
    Session gate: the todo page when signed in (or in the open variant),
    the sign-in page otherwise, a placeholder while the session is checked.
    """
    if workspace.status is GateStatus.CHECKING:
        return HTMLResponse(render_checking_page())
    if workspace.status is GateStatus.UNAUTHENTICATED:
        return HTMLResponse(render_sign_in_page(sign_up=(mode == "sign-up")))

    await workspace.ensure_loaded()
    editor = None
    if edit is not None:
        todo = workspace.sync.find(edit)
        if todo is not None:
            editor = TodoItemEditor.for_record(todo)
            editor.begin()
    return _todo_page(workspace, editor=editor)


# PUBLIC_INTERFACE
@router.post("/todos")
async def add_todo(title: str = Form(""), workspace: Workspace = Depends(get_workspace)):
    """
    Add form. On failure the page is rendered again with the draft kept.
    """
    scope = workspace.scope()
    if scope is None or not title.strip():
        return _home()
    await workspace.ensure_loaded()
    created = await workspace.sync.add(title, scope)
    if created is None and workspace.sync.error is not None:
        return _todo_page(workspace, draft=title)
    return _home()


# PUBLIC_INTERFACE
@router.post("/todos/{todo_id}/toggle")
async def toggle_todo(todo_id: str, workspace: Workspace = Depends(get_workspace)):
    scope = workspace.scope()
    if scope is not None:
        await workspace.ensure_loaded()
        await workspace.sync.toggle(todo_id, scope)
    return _home()


# PUBLIC_INTERFACE
@router.post("/todos/{todo_id}/rename")
async def rename_todo(todo_id: str, title: str = Form(""), workspace: Workspace = Depends(get_workspace)):
    """
    Inline edit commit. A blank title keeps the row in edit mode and sends
    nothing to the remote store.
    """
    scope = workspace.scope()
    if scope is None:
        return _home()
    await workspace.ensure_loaded()
    todo = workspace.sync.find(todo_id)
    if todo is None:
        return _home()

    editor = TodoItemEditor.for_record(todo)
    editor.begin()
    editor.update(title)
    pending = editor.commit(lambda record_id, new_title: workspace.sync.rename(record_id, new_title, scope))
    if pending is None:
        return _todo_page(workspace, editor=editor)
    await pending
    return _home()


# PUBLIC_INTERFACE
@router.post("/todos/{todo_id}/delete")
async def delete_todo(todo_id: str, workspace: Workspace = Depends(get_workspace)):
    scope = workspace.scope()
    if scope is not None:
        await workspace.ensure_loaded()
        await workspace.sync.delete(todo_id, scope)
    return _home()


# PUBLIC_INTERFACE
@router.post("/auth/sign-in")
async def sign_in(
    email: str = Form(""),
    password: str = Form(""),
    workspace: Workspace = Depends(get_workspace),
):
    try:
        await auth.sign_in(workspace, email, password)
    except AuthError as exc:
        logger.warning("Sign-in failed: %s", exc.message)
        return HTMLResponse(
            render_sign_in_page(email=email, error=exc.message or "An error occurred during authentication"),
            status_code=status.HTTP_401_UNAUTHORIZED,
        )
    return _home()


# PUBLIC_INTERFACE
@router.post("/auth/sign-up")
async def sign_up(
    email: str = Form(""),
    password: str = Form(""),
    workspace: Workspace = Depends(get_workspace),
):
    if len(password) < MIN_PASSWORD_LENGTH:
        return HTMLResponse(
            render_sign_in_page(sign_up=True, email=email, error="Password must be at least 6 characters"),
            status_code=422,
        )
    try:
        outcome = await auth.sign_up(workspace, email, password)
    except AuthError as exc:
        logger.warning("Sign-up failed: %s", exc.message)
        return HTMLResponse(
            render_sign_in_page(sign_up=True, email=email, error=exc.message or "An error occurred during authentication"),
            status_code=status.HTTP_401_UNAUTHORIZED,
        )
    if outcome.message:
        return HTMLResponse(render_sign_in_page(sign_up=True, message=outcome.message))
    return _home()


# PUBLIC_INTERFACE
@router.post("/auth/sign-out")
async def sign_out(workspace: Workspace = Depends(get_workspace)):
    try:
        await auth.sign_out(workspace)
    except AuthError as exc:
        logger.error("Error signing out: %s", exc.message)
        return HTMLResponse(render_sign_in_page(error=exc.message))
    return _home()
