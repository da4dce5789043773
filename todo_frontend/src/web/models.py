from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Optional, TypedDict, Union

RecordId = Union[int, str]


# PUBLIC_INTERFACE
class TodoRecord(TypedDict, total=False):
    """
    A todo row as returned by the remote store.

    Fields:
    - id: Server-assigned unique identifier (immutable)
    - title: Short title, trimmed and non-empty
    - is_done: Completion flag
    - created_at: Server creation timestamp (datetime or ISO8601 string)
    - user_id: Owner principal id; absent in the open variant
    """

    id: RecordId
    title: str
    is_done: bool
    created_at: Union[datetime, str]
    user_id: Optional[str]


# PUBLIC_INTERFACE
@dataclass(frozen=True)
class Principal:
    """The authenticated identity behind a session."""

    id: str
    email: Optional[str] = None

    @property
    def display_name(self) -> str:
        """Local part of the email, or the id when no email is known."""
        if self.email:
            return self.email.split("@")[0]
        return self.id


# PUBLIC_INTERFACE
@dataclass(frozen=True)
class Scope:
    """
    Filters that restrict a remote operation to the records the acting
    principal may touch. An empty scope (owner_id None) is the open variant.
    """

    owner_id: Optional[str] = None
    owner_column: str = "user_id"

    def filters(self, **extra: Any) -> Dict[str, Any]:
        """Return equality filters for this scope merged with ``extra``."""
        result: Dict[str, Any] = dict(extra)
        if self.owner_id is not None:
            result[self.owner_column] = self.owner_id
        return result

    def stamp(self, record: Dict[str, Any]) -> Dict[str, Any]:
        """Return a copy of ``record`` carrying the owner id when scoped."""
        stamped = dict(record)
        if self.owner_id is not None:
            stamped[self.owner_column] = self.owner_id
        return stamped


# PUBLIC_INTERFACE
@dataclass(frozen=True)
class SignUpResult:
    """
    Outcome of a sign-up. ``principal`` is None when the remote store
    requires the address to be confirmed before a session exists.
    """

    principal: Optional[Principal]
    pending_confirmation: bool = False
