from __future__ import annotations

import os
from dataclasses import dataclass
from typing import List, Optional


@dataclass(frozen=True)
class Settings:
    """
    Application settings loaded from environment variables.

    Env vars:
    - REMOTE_BACKEND: 'memory' (default) or 'supabase'
    - SUPABASE_URL: project URL, required when REMOTE_BACKEND=supabase
    - SUPABASE_ANON_KEY: project anon key, required when REMOTE_BACKEND=supabase
    - REQUIRE_AUTH: 'true' (default) scopes every todo to the signed-in user;
      'false' runs the open variant without sign-in
    - TODOS_TABLE: remote table name. Default 'todos'
    - OWNER_COLUMN: column holding the owner id. Default 'user_id'
    - SIGNUP_REQUIRES_CONFIRMATION: 'true' makes the memory backend answer
      sign-ups with a pending confirmation instead of a session (default: false)
    - REQUEST_TIMEOUT: remote request timeout in seconds. Default 10
    - CORS_ALLOW_ORIGINS: comma-separated list of allowed origins; '*' by default
    - LOG_LEVEL: logging level name. Default 'INFO'
    """

    remote_backend: str
    supabase_url: Optional[str]
    supabase_anon_key: Optional[str]
    require_auth: bool
    todos_table: str
    owner_column: str
    signup_requires_confirmation: bool
    request_timeout: float
    cors_allow_origins: List[str]
    log_level: str


def _get_env(name: str, default: str) -> str:
    value = os.getenv(name, default)
    if value is None or value == "":
        return default
    return value


def _parse_bool(value: str, default: bool = False) -> bool:
    v = value.strip().lower()
    if v in {"1", "true", "yes", "on"}:
        return True
    if v in {"0", "false", "no", "off"}:
        return False
    return default


def _parse_float(value: str, default: float) -> float:
    try:
        parsed = float(value.strip())
    except ValueError:
        return default
    return parsed if parsed > 0 else default


def _parse_origins(origins_value: str) -> List[str]:
    """
    Parse CORS origins from env. Supports:
    - '*' to allow all origins
    - Comma-separated list of origins
    """
    value = origins_value.strip()
    if value == "*":
        return ["*"]
    return [o.strip() for o in value.split(",") if o.strip()]


# PUBLIC_INTERFACE
def get_settings() -> Settings:
    """Return application settings loaded from environment variables."""
    backend = _get_env("REMOTE_BACKEND", "memory").strip().lower()
    if backend not in {"memory", "supabase"}:
        backend = "memory"

    supabase_url = os.getenv("SUPABASE_URL") or None
    if supabase_url:
        supabase_url = supabase_url.strip().rstrip("/")

    return Settings(
        remote_backend=backend,
        supabase_url=supabase_url,
        supabase_anon_key=os.getenv("SUPABASE_ANON_KEY") or None,
        require_auth=_parse_bool(_get_env("REQUIRE_AUTH", "true"), True),
        todos_table=_get_env("TODOS_TABLE", "todos").strip(),
        owner_column=_get_env("OWNER_COLUMN", "user_id").strip(),
        signup_requires_confirmation=_parse_bool(_get_env("SIGNUP_REQUIRES_CONFIRMATION", "false"), False),
        request_timeout=_parse_float(_get_env("REQUEST_TIMEOUT", "10"), 10.0),
        cors_allow_origins=_parse_origins(_get_env("CORS_ALLOW_ORIGINS", "*")),
        log_level=_get_env("LOG_LEVEL", "INFO").strip().upper(),
    )
