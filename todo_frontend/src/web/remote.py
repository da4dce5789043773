from __future__ import annotations

import logging
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timezone
from threading import RLock
from typing import Any, Callable, Dict, List, Mapping, Optional

from .models import Principal, SignUpResult, TodoRecord
from .settings import Settings, get_settings

logger = logging.getLogger(__name__)

SessionCallback = Callable[[Optional[Principal]], None]
Unsubscribe = Callable[[], None]


class RemoteStoreError(Exception):
    """A remote store request failed (network or backend-reported)."""

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class AuthError(RemoteStoreError):
    """The remote store rejected an authentication request."""


@dataclass(frozen=True)
class Credentials:
    email: str
    password: str


# PUBLIC_INTERFACE
class RemoteStore(ABC):
    """
    Async contract of the backend-as-a-service consumed by the front end.

    Table operations take equality filters (field -> value). Every failure is
    raised as RemoteStoreError; authentication failures as AuthError.
    """

    @abstractmethod
    async def list(
        self,
        table: str,
        filters: Mapping[str, Any],
        order_by: str = "created_at",
        descending: bool = True,
    ) -> List[TodoRecord]:
        """Return all rows of ``table`` matching ``filters`` in the requested order."""

    @abstractmethod
    async def insert(self, table: str, record: Mapping[str, Any]) -> TodoRecord:
        """Insert ``record`` and return it with its server-generated fields."""

    @abstractmethod
    async def update(self, table: str, filters: Mapping[str, Any], patch: Mapping[str, Any]) -> None:
        """Apply ``patch`` to every row matching ``filters``."""

    @abstractmethod
    async def delete(self, table: str, filters: Mapping[str, Any]) -> None:
        """Delete every row matching ``filters``."""

    @abstractmethod
    async def get_current_session(self) -> Optional[Principal]:
        """Return the principal of the current session, or None."""

    @abstractmethod
    def subscribe(self, callback: SessionCallback) -> Unsubscribe:
        """Register ``callback`` for session changes; return the handle that removes it."""

    @abstractmethod
    async def sign_in(self, credentials: Credentials) -> Principal:
        """Start a session with email and password."""

    @abstractmethod
    async def sign_up(self, credentials: Credentials) -> SignUpResult:
        """Create an account; may start a session or require confirmation."""

    @abstractmethod
    async def sign_out(self) -> None:
        """End the current session."""

    async def aclose(self) -> None:
        """Release transport resources. No-op by default."""


class SessionNotifier:
    """Holds session-change callbacks and fans notifications out to them."""

    def __init__(self) -> None:
        self._lock = RLock()
        self._callbacks: Dict[int, SessionCallback] = {}
        self._next_token = 0

    def subscribe(self, callback: SessionCallback) -> Unsubscribe:
        with self._lock:
            token = self._next_token
            self._next_token += 1
            self._callbacks[token] = callback

        def _unsubscribe() -> None:
            with self._lock:
                self._callbacks.pop(token, None)

        return _unsubscribe

    def notify(self, principal: Optional[Principal]) -> None:
        with self._lock:
            callbacks = list(self._callbacks.values())
        for callback in callbacks:
            callback(principal)

    def __len__(self) -> int:
        with self._lock:
            return len(self._callbacks)


class InMemoryRemoteStore(RemoteStore):
    """
    Process-local remote store suitable for development and tests.

    Rows get a monotonic integer id and a UTC created_at. Accounts are kept
    as email -> (principal, password); a single session is current at a time.
    """

    def __init__(self, signup_requires_confirmation: bool = False) -> None:
        self._lock = RLock()
        self._tables: Dict[str, Dict[int, Dict[str, Any]]] = {}
        self._next_id = 1
        self._accounts: Dict[str, tuple[Principal, str]] = {}
        self._session: Optional[Principal] = None
        self._notifier = SessionNotifier()
        self._signup_requires_confirmation = signup_requires_confirmation

    def _now(self) -> datetime:
        return datetime.now(timezone.utc)

    def _allocate_id(self) -> int:
        with self._lock:
            i = self._next_id
            self._next_id += 1
            return i

    def _rows(self, table: str) -> Dict[int, Dict[str, Any]]:
        return self._tables.setdefault(table, {})

    @staticmethod
    def _matches(row: Mapping[str, Any], filters: Mapping[str, Any]) -> bool:
        return all(row.get(k) == v for k, v in filters.items())

    async def list(
        self,
        table: str,
        filters: Mapping[str, Any],
        order_by: str = "created_at",
        descending: bool = True,
    ) -> List[TodoRecord]:
        with self._lock:
            items = [row for row in self._rows(table).values() if self._matches(row, filters)]
            items_sorted = sorted(items, key=lambda r: (r.get(order_by), r["id"]), reverse=descending)
            return [dict(r) for r in items_sorted]  # type: ignore[misc]

    async def insert(self, table: str, record: Mapping[str, Any]) -> TodoRecord:
        row: Dict[str, Any] = dict(record)
        row["id"] = self._allocate_id()
        row["created_at"] = self._now()
        with self._lock:
            self._rows(table)[row["id"]] = row
        return dict(row)  # type: ignore[return-value]

    async def update(self, table: str, filters: Mapping[str, Any], patch: Mapping[str, Any]) -> None:
        with self._lock:
            for row in self._rows(table).values():
                if self._matches(row, filters):
                    row.update(patch)

    async def delete(self, table: str, filters: Mapping[str, Any]) -> None:
        with self._lock:
            rows = self._rows(table)
            for row_id in [i for i, row in rows.items() if self._matches(row, filters)]:
                del rows[row_id]

    async def get_current_session(self) -> Optional[Principal]:
        with self._lock:
            return self._session

    def subscribe(self, callback: SessionCallback) -> Unsubscribe:
        return self._notifier.subscribe(callback)

    def _set_session(self, principal: Optional[Principal]) -> None:
        with self._lock:
            self._session = principal
        self._notifier.notify(principal)

    async def sign_in(self, credentials: Credentials) -> Principal:
        with self._lock:
            account = self._accounts.get(credentials.email.lower())
        if account is None or account[1] != credentials.password:
            raise AuthError("Invalid login credentials", status_code=400)
        self._set_session(account[0])
        return account[0]

    async def sign_up(self, credentials: Credentials) -> SignUpResult:
        email = credentials.email.lower()
        with self._lock:
            if email in self._accounts:
                raise AuthError("User already registered", status_code=422)
            principal = Principal(id=str(uuid.uuid4()), email=credentials.email)
            self._accounts[email] = (principal, credentials.password)
        if self._signup_requires_confirmation:
            return SignUpResult(principal=None, pending_confirmation=True)
        self._set_session(principal)
        return SignUpResult(principal=principal)

    async def sign_out(self) -> None:
        self._set_session(None)


# PUBLIC_INTERFACE
def get_remote_store(settings: Optional[Settings] = None) -> RemoteStore:
    """
    Factory to return the configured remote store based on settings.
    - memory: InMemoryRemoteStore
    - supabase: SupabaseRemoteStore (requires SUPABASE_URL and SUPABASE_ANON_KEY)
    """
    settings = settings or get_settings()
    if settings.remote_backend == "supabase":
        from .supabase_store import SupabaseRemoteStore

        if not settings.supabase_url or not settings.supabase_anon_key:
            raise RuntimeError("SUPABASE_URL and SUPABASE_ANON_KEY are required for the supabase backend")
        logger.info("Using Supabase remote store at %s", settings.supabase_url)
        return SupabaseRemoteStore(
            settings.supabase_url,
            settings.supabase_anon_key,
            timeout=settings.request_timeout,
        )
    logger.info("Using in-memory remote store")
    return InMemoryRemoteStore(signup_requires_confirmation=settings.signup_requires_confirmation)
