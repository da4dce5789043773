from __future__ import annotations

from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, HTTPException, status

from .. import auth
from ..schemas import CredentialsIn, SessionOut
from ..workspace import Workspace, get_workspace

router = APIRouter(
    prefix="/api/v1/session",
    tags=["session"],
)


def _session_body(workspace: Workspace, message: Optional[str] = None) -> Dict[str, Any]:
    principal = workspace.principal
    body: Dict[str, Any] = {
        "status": workspace.status,
        "principal": {"id": principal.id, "email": principal.email} if principal else None,
        "auth_required": workspace.settings.require_auth,
    }
    if message:
        body["message"] = message
    return body


def _require_auth_enabled(workspace: Workspace) -> None:
    if not workspace.settings.require_auth:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Authentication is disabled")


# PUBLIC_INTERFACE
@router.get("/", response_model=SessionOut, summary="Get Session", description="Current session gate state.")
async def get_session(workspace: Workspace = Depends(get_workspace)) -> Dict[str, Any]:
    """
    Report whether a principal is signed in.
    """
    return _session_body(workspace)


# PUBLIC_INTERFACE
@router.post(
    "/sign-in",
    response_model=SessionOut,
    summary="Sign In",
    responses={401: {"description": "Invalid credentials"}},
)
async def sign_in(payload: CredentialsIn, workspace: Workspace = Depends(get_workspace)) -> Dict[str, Any]:
    """
    Sign in with email and password.
    """
    _require_auth_enabled(workspace)
    await auth.sign_in(workspace, payload.email, payload.password)
    return _session_body(workspace)


# PUBLIC_INTERFACE
@router.post(
    "/sign-up",
    response_model=SessionOut,
    summary="Sign Up",
    description="Create an account. When email confirmation is pending, no session starts.",
    responses={401: {"description": "Sign-up rejected"}},
)
async def sign_up(payload: CredentialsIn, workspace: Workspace = Depends(get_workspace)) -> Dict[str, Any]:
    """
    Sign up with email and password.
    """
    _require_auth_enabled(workspace)
    outcome = await auth.sign_up(workspace, payload.email, payload.password)
    return _session_body(workspace, outcome.message)


# PUBLIC_INTERFACE
@router.post("/sign-out", response_model=SessionOut, summary="Sign Out")
async def sign_out(workspace: Workspace = Depends(get_workspace)) -> Dict[str, Any]:
    """
    End the current session.
    """
    _require_auth_enabled(workspace)
    await auth.sign_out(workspace)
    return _session_body(workspace)
