from __future__ import annotations

import logging
from typing import Optional

from fastapi import Request

from .models import Principal, Scope
from .remote import RemoteStore
from .session import GateStatus, SessionGate
from .settings import Settings
from .sync import TodoSync

logger = logging.getLogger(__name__)

_NOT_LOADED = object()


class Workspace:
    """
    Everything one running front end owns for its lifetime: the remote store
    client, the session gate (authenticated variant only) and the todo state.
    """

    def __init__(self, settings: Settings, remote: RemoteStore) -> None:
        self.settings = settings
        self.remote = remote
        self.sync = TodoSync(remote, table=settings.todos_table)
        self.gate: Optional[SessionGate] = SessionGate(remote) if settings.require_auth else None
        self._loaded_for: object = _NOT_LOADED
        self._owner: Optional[str] = None
        if self.gate is not None:
            self.gate.add_listener(self._on_gate_change)

    @property
    def principal(self) -> Optional[Principal]:
        return self.gate.principal if self.gate is not None else None

    @property
    def status(self) -> GateStatus:
        """Gate status; the open variant is always treated as signed in."""
        if self.gate is None:
            return GateStatus.AUTHENTICATED
        return self.gate.status

    def scope(self) -> Optional[Scope]:
        """
        Return the scope for todo operations, or None when the authenticated
        variant has no principal yet.
        """
        if self.gate is None:
            return Scope()
        principal = self.gate.principal
        if principal is None:
            return None
        return Scope(owner_id=principal.id, owner_column=self.settings.owner_column)

    @property
    def loaded(self) -> bool:
        """Whether the collection holds a successful load for the current scope."""
        scope = self.scope()
        return scope is not None and self._loaded_for == scope.owner_id

    def _on_gate_change(self, status: GateStatus, principal: Optional[Principal]) -> None:
        owner = principal.id if principal is not None else None
        if owner != self._owner:
            self._owner = owner
            self.sync.reset()
            self._loaded_for = _NOT_LOADED

    async def start(self) -> None:
        if self.gate is not None and not self.gate.started:
            await self.gate.start()

    async def ensure_loaded(self) -> None:
        """Fetch the collection once per principal, like a view mounting."""
        scope = self.scope()
        if scope is None or self._loaded_for == scope.owner_id:
            return
        await self.reload(scope)

    async def reload(self, scope: Scope) -> bool:
        """User-initiated full reload of ``scope``."""
        ok = await self.sync.list(scope)
        self._loaded_for = scope.owner_id if ok else _NOT_LOADED
        return ok

    async def aclose(self) -> None:
        if self.gate is not None:
            self.gate.close()
        await self.remote.aclose()
        logger.info("Workspace closed")


# PUBLIC_INTERFACE
async def get_workspace(request: Request) -> Workspace:
    """FastAPI dependency returning the application's started workspace."""
    workspace: Workspace = request.app.state.workspace
    await workspace.start()
    return workspace
