from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from fastapi import Depends, HTTPException, status

from .models import Principal, Scope
from .remote import Credentials
from .workspace import Workspace, get_workspace

logger = logging.getLogger(__name__)

CONFIRMATION_MESSAGE = "Please check your email to confirm your account!"


@dataclass(frozen=True)
class AuthOutcome:
    """Result of a sign-in or sign-up as shown to the user."""

    principal: Optional[Principal]
    message: Optional[str] = None


# PUBLIC_INTERFACE
async def require_scope(workspace: Workspace = Depends(get_workspace)) -> Scope:
    """
    FastAPI dependency resolving the scope of todo operations.

    Behavior:
    - Open variant (REQUIRE_AUTH=false): an empty scope, no owner filter.
    - Authenticated variant: the signed-in principal's owner filter.
      Without a principal, raises 401.
    """
    scope = workspace.scope()
    if scope is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
        )
    return scope


# PUBLIC_INTERFACE
async def sign_in(workspace: Workspace, email: str, password: str) -> AuthOutcome:
    """
    Start a session. The gate follows through the session notification.

    Raises:
        AuthError if the remote store rejects the credentials.
    """
    principal = await workspace.remote.sign_in(Credentials(email=email.strip(), password=password))
    return AuthOutcome(principal=principal)


# PUBLIC_INTERFACE
async def sign_up(workspace: Workspace, email: str, password: str) -> AuthOutcome:
    """
    Create an account. When the remote store wants the address confirmed
    first, no session starts and the outcome carries a message instead.
    """
    result = await workspace.remote.sign_up(Credentials(email=email.strip(), password=password))
    if result.pending_confirmation:
        logger.info("Sign-up for %s awaits email confirmation", email)
        return AuthOutcome(principal=None, message=CONFIRMATION_MESSAGE)
    return AuthOutcome(principal=result.principal)


# PUBLIC_INTERFACE
async def sign_out(workspace: Workspace) -> None:
    """End the session; the workspace drops the collection via the gate."""
    await workspace.remote.sign_out()
