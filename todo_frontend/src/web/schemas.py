from __future__ import annotations

from datetime import datetime
from typing import List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .session import GateStatus


# PUBLIC_INTERFACE
class TodoCreate(BaseModel):
    """
    Schema for adding a todo. A blank title is accepted here and ignored by
    the add operation, which issues no request for it.
    """

    model_config = ConfigDict(json_schema_extra={"example": {"title": "Buy groceries"}})

    title: str = Field(..., description="Title of the new todo; surrounding whitespace is trimmed")


# PUBLIC_INTERFACE
class TodoRename(BaseModel):
    """Schema for renaming a todo."""

    model_config = ConfigDict(json_schema_extra={"example": {"title": "Buy groceries and supplies"}})

    title: str = Field(..., description="New title; blank titles are rejected without a remote call")


# PUBLIC_INTERFACE
class TodoOut(BaseModel):
    """A todo row as held in the local collection."""

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "id": 2,
                "title": "Buy groceries",
                "is_done": False,
                "created_at": "2025-01-25T10:15:30.123456+00:00",
                "user_id": "7d1f3f6e-3c1a-4c55-9a53-3e0c2c7f9b10",
            }
        }
    )

    id: Union[int, str] = Field(..., description="Server-assigned identifier")
    title: str = Field(..., description="Short title for the todo item")
    is_done: bool = Field(..., description="Completion status flag")
    created_at: datetime = Field(..., description="Server creation timestamp")
    user_id: Optional[str] = Field(default=None, description="Owner id; absent in the open variant")


# PUBLIC_INTERFACE
class SyncStateOut(BaseModel):
    """Envelope describing the local todo state after an operation."""

    todos: List[TodoOut] = Field(..., description="Local collection, newest first")
    loading: bool = Field(..., description="True while a full reload is in flight")
    error: Optional[str] = Field(default=None, description="Latest remote failure, if any")


class PrincipalOut(BaseModel):
    id: str
    email: Optional[str] = None


# PUBLIC_INTERFACE
class SessionOut(BaseModel):
    """Current session gate state."""

    status: GateStatus = Field(..., description="checking, authenticated or unauthenticated")
    principal: Optional[PrincipalOut] = Field(default=None, description="Signed-in principal, if any")
    auth_required: bool = Field(..., description="False when running the open variant")
    message: Optional[str] = Field(default=None, description="Notice for the user, e.g. a pending email confirmation")


# PUBLIC_INTERFACE
class CredentialsIn(BaseModel):
    """Email and password for sign-in and sign-up."""

    model_config = ConfigDict(json_schema_extra={"example": {"email": "you@example.com", "password": "secret123"}})

    email: str = Field(..., description="Account email address")
    password: str = Field(..., description="Account password", min_length=6)

    @field_validator("email")
    @classmethod
    def validate_email(cls, v: str) -> str:
        """
        Strip whitespace and require a local part and a domain.
        """
        s = v.strip()
        local, _, domain = s.partition("@")
        if not local or not domain:
            raise ValueError("email must look like name@example.com")
        return s
