from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from threading import RLock
from typing import Any, Dict, List, Mapping, Optional

import httpx

from .models import Principal, SignUpResult, TodoRecord
from .remote import AuthError, Credentials, RemoteStore, RemoteStoreError, SessionCallback, SessionNotifier, Unsubscribe

logger = logging.getLogger(__name__)

# GoTrue access tokens last an hour unless the project says otherwise
DEFAULT_EXPIRES_IN = 3600

# Logout answers these once the token is already gone; the local session is cleared anyway
IGNORED_LOGOUT_STATUSES = (401, 403, 404)


def _eq(value: Any) -> str:
    if isinstance(value, bool):
        return f"eq.{str(value).lower()}"
    return f"eq.{value}"


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text or response.reason_phrase
    if isinstance(body, dict):
        for key in ("message", "msg", "error_description", "error"):
            if body.get(key):
                return str(body[key])
    return response.text or response.reason_phrase


def _principal_from_user(user: Mapping[str, Any]) -> Principal:
    return Principal(id=str(user["id"]), email=user.get("email"))


@dataclass(frozen=True)
class AuthSession:
    """GoTrue session: bearer token, refresh token and expiry."""

    access_token: str
    refresh_token: Optional[str]
    expires_at: datetime
    principal: Principal

    def needs_refresh(self, margin_seconds: float = 60.0) -> bool:
        """Check if the access token is expired or within ``margin_seconds`` of it."""
        return datetime.now(timezone.utc) >= self.expires_at - timedelta(seconds=margin_seconds)

    @classmethod
    def from_token_response(cls, body: Mapping[str, Any], principal: Optional[Principal] = None) -> "AuthSession":
        if body.get("expires_at"):
            expires_at = datetime.fromtimestamp(float(body["expires_at"]), timezone.utc)
        else:
            expires_in = body.get("expires_in", DEFAULT_EXPIRES_IN)
            expires_at = datetime.now(timezone.utc) + timedelta(seconds=float(expires_in))
        return cls(
            access_token=body["access_token"],
            refresh_token=body.get("refresh_token"),
            expires_at=expires_at,
            principal=_principal_from_user(body["user"]) if body.get("user") else principal,
        )


class SupabaseRemoteStore(RemoteStore):
    """
    Remote store backed by a Supabase project.

    Rows go through PostgREST at ``/rest/v1/<table>``; accounts and sessions
    through GoTrue at ``/auth/v1``. The session lives in this client only, so
    session-change notifications are emitted locally whenever sign-in,
    sign-up, sign-out or a failed token refresh changes it.

    Table requests refresh the access token first when it is expired or
    within ``refresh_margin`` seconds of expiring.
    """

    def __init__(
        self,
        url: str,
        anon_key: str,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        refresh_margin: float = 60.0,
    ) -> None:
        self._anon_key = anon_key
        self._client = httpx.AsyncClient(base_url=url.rstrip("/"), timeout=timeout, transport=transport)
        self._lock = RLock()
        self._refresh_lock = asyncio.Lock()
        self._refresh_margin = refresh_margin
        self._session: Optional[AuthSession] = None
        self._notifier = SessionNotifier()

    def _headers(self, **extra: str) -> Dict[str, str]:
        with self._lock:
            token = self._session.access_token if self._session is not None else self._anon_key
        headers = {"apikey": self._anon_key, "Authorization": f"Bearer {token}"}
        headers.update(extra)
        return headers

    async def _request(
        self,
        method: str,
        path: str,
        *,
        params: Optional[Mapping[str, str]] = None,
        json: Any = None,
        headers: Optional[Mapping[str, str]] = None,
        error_cls: type = RemoteStoreError,
    ) -> httpx.Response:
        logger.debug("%s %s params=%s", method, path, params)
        try:
            response = await self._client.request(
                method,
                path,
                params=params,
                json=json,
                headers=dict(headers) if headers is not None else self._headers(),
            )
        except httpx.HTTPError as exc:
            raise error_cls(f"Request to remote store failed: {exc}") from exc
        if response.status_code >= 400:
            raise error_cls(_error_message(response), status_code=response.status_code)
        return response

    async def _table_request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        await self._ensure_fresh_session()
        prefer = kwargs.pop("prefer", None)
        headers = self._headers(Prefer=prefer) if prefer else self._headers()
        return await self._request(method, path, headers=headers, **kwargs)

    async def _ensure_fresh_session(self) -> None:
        with self._lock:
            session = self._session
        if session is None or not session.needs_refresh(self._refresh_margin):
            return
        async with self._refresh_lock:
            # Another request may have refreshed while this one waited
            with self._lock:
                session = self._session
            if session is not None and session.needs_refresh(self._refresh_margin):
                await self._refresh(session)

    async def _refresh(self, session: AuthSession) -> None:
        logger.info("Refreshing access token for %s", session.principal.id)
        if not session.refresh_token:
            self._set_session(None)
            raise AuthError("Session expired. Please sign in again.", status_code=401)
        try:
            response = await self._request(
                "POST",
                "/auth/v1/token",
                params={"grant_type": "refresh_token"},
                json={"refresh_token": session.refresh_token},
                headers={"apikey": self._anon_key},
                error_cls=AuthError,
            )
        except AuthError as exc:
            if exc.status_code is not None and exc.status_code < 500:
                logger.warning("Refresh token rejected: %s", exc.message)
                self._set_session(None)
            raise
        self._set_session(AuthSession.from_token_response(response.json(), session.principal), notify=False)

    @staticmethod
    def _filter_params(filters: Mapping[str, Any]) -> Dict[str, str]:
        return {field: _eq(value) for field, value in filters.items()}

    async def list(
        self,
        table: str,
        filters: Mapping[str, Any],
        order_by: str = "created_at",
        descending: bool = True,
    ) -> List[TodoRecord]:
        params = {"select": "*", **self._filter_params(filters)}
        params["order"] = f"{order_by}.{'desc' if descending else 'asc'}"
        response = await self._table_request("GET", f"/rest/v1/{table}", params=params)
        return response.json() or []

    async def insert(self, table: str, record: Mapping[str, Any]) -> TodoRecord:
        response = await self._table_request(
            "POST",
            f"/rest/v1/{table}",
            params={"select": "*"},
            json=[dict(record)],
            prefer="return=representation",
        )
        rows = response.json()
        if not rows:
            raise RemoteStoreError("Insert returned no rows")
        return rows[0]

    async def update(self, table: str, filters: Mapping[str, Any], patch: Mapping[str, Any]) -> None:
        await self._table_request(
            "PATCH",
            f"/rest/v1/{table}",
            params=self._filter_params(filters),
            json=dict(patch),
            prefer="return=minimal",
        )

    async def delete(self, table: str, filters: Mapping[str, Any]) -> None:
        await self._table_request(
            "DELETE",
            f"/rest/v1/{table}",
            params=self._filter_params(filters),
            prefer="return=minimal",
        )

    async def get_current_session(self) -> Optional[Principal]:
        with self._lock:
            return self._session.principal if self._session is not None else None

    def subscribe(self, callback: SessionCallback) -> Unsubscribe:
        return self._notifier.subscribe(callback)

    def _set_session(self, session: Optional[AuthSession], notify: bool = True) -> None:
        with self._lock:
            self._session = session
        if notify:
            self._notifier.notify(session.principal if session is not None else None)

    async def sign_in(self, credentials: Credentials) -> Principal:
        response = await self._request(
            "POST",
            "/auth/v1/token",
            params={"grant_type": "password"},
            json={"email": credentials.email, "password": credentials.password},
            headers={"apikey": self._anon_key},
            error_cls=AuthError,
        )
        session = AuthSession.from_token_response(response.json())
        self._set_session(session)
        logger.info("Signed in as %s", session.principal.id)
        return session.principal

    async def sign_up(self, credentials: Credentials) -> SignUpResult:
        response = await self._request(
            "POST",
            "/auth/v1/signup",
            json={"email": credentials.email, "password": credentials.password},
            headers={"apikey": self._anon_key},
            error_cls=AuthError,
        )
        body = response.json()
        if body.get("access_token"):
            session = AuthSession.from_token_response(body)
            self._set_session(session)
            return SignUpResult(principal=session.principal)
        # Email confirmation pending: GoTrue returns the bare user without a session.
        return SignUpResult(principal=None, pending_confirmation=True)

    async def sign_out(self) -> None:
        """
        Revoke the session remotely and forget it locally.

        The local session is cleared even when the logout request fails.
        An expired or already revoked token is not an error.
        """
        with self._lock:
            session = self._session
        if session is None:
            return
        try:
            await self._request("POST", "/auth/v1/logout", headers=self._headers(), error_cls=AuthError)
        except AuthError as exc:
            if exc.status_code not in IGNORED_LOGOUT_STATUSES:
                raise
            logger.info("Logout answered %s; clearing the local session", exc.status_code)
        finally:
            self._set_session(None)

    async def aclose(self) -> None:
        await self._client.aclose()
