from __future__ import annotations

from typing import Any, Dict

from .sync import TodoSync


# PUBLIC_INTERFACE
def state_envelope(sync: TodoSync) -> Dict[str, Any]:
    """
    Build the standard state envelope for todo endpoints.

    Args:
        sync: The state container to describe.

    Returns:
        Dict with keys: todos, loading, error.
    """
    return {
        "todos": sync.todos,
        "loading": sync.loading,
        "error": sync.error,
    }
