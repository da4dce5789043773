from __future__ import annotations

import logging
from enum import Enum
from typing import Callable, List, Optional

from .models import Principal
from .remote import RemoteStore, RemoteStoreError, Unsubscribe

logger = logging.getLogger(__name__)


class GateStatus(str, Enum):
    CHECKING = "checking"
    AUTHENTICATED = "authenticated"
    UNAUTHENTICATED = "unauthenticated"


GateListener = Callable[[GateStatus, Optional[Principal]], None]


# PUBLIC_INTERFACE
class SessionGate:
    """
    Tracks the remote store's session and decides which view to show.

    The gate starts in ``checking``, leaves it on the first of the initial
    session query or the first change notification, and then follows every
    notification until it is closed. A notification that arrives while the
    initial query is still in flight supersedes that query's result.

    Usage:
        async with SessionGate(remote) as gate:
            if gate.status is GateStatus.AUTHENTICATED: ...
    """

    def __init__(self, remote: RemoteStore) -> None:
        self._remote = remote
        self._status = GateStatus.CHECKING
        self._principal: Optional[Principal] = None
        self._unsubscribe: Optional[Unsubscribe] = None
        self._notified = False
        self._started = False
        self._closed = False
        self._listeners: List[GateListener] = []

    @property
    def status(self) -> GateStatus:
        return self._status

    @property
    def principal(self) -> Optional[Principal]:
        return self._principal

    @property
    def started(self) -> bool:
        return self._started

    @property
    def closed(self) -> bool:
        return self._closed

    def add_listener(self, listener: GateListener) -> None:
        """Call ``listener(status, principal)`` on every transition."""
        self._listeners.append(listener)

    def _transition(self, principal: Optional[Principal]) -> None:
        previous = self._principal
        self._principal = principal
        self._status = GateStatus.AUTHENTICATED if principal is not None else GateStatus.UNAUTHENTICATED
        if previous != principal:
            logger.info("Session is now %s", self._status.value)
        for listener in list(self._listeners):
            listener(self._status, principal)

    def _on_session_change(self, principal: Optional[Principal]) -> None:
        if self._closed:
            return
        self._notified = True
        self._transition(principal)

    async def start(self) -> None:
        """Subscribe to session changes and resolve the current session once."""
        if self._started:
            return
        self._started = True
        self._unsubscribe = self._remote.subscribe(self._on_session_change)
        try:
            principal = await self._remote.get_current_session()
        except RemoteStoreError as exc:
            logger.error("Error reading current session: %s", exc.message)
            principal = None
        if not self._notified and not self._closed:
            self._transition(principal)

    def close(self) -> None:
        """Release the session subscription. Safe to call more than once."""
        if self._closed:
            return
        self._closed = True
        unsubscribe, self._unsubscribe = self._unsubscribe, None
        if unsubscribe is not None:
            unsubscribe()

    async def __aenter__(self) -> "SessionGate":
        await self.start()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        self.close()
