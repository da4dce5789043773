import os
from dataclasses import replace
from typing import Any, Callable, Dict, List, Mapping, Optional

import pytest

# Tests never talk to a real project
os.environ.setdefault("REMOTE_BACKEND", "memory")

from src.web.remote import InMemoryRemoteStore, RemoteStoreError  # noqa: E402
from src.web.settings import get_settings  # noqa: E402


class RecordingStore(InMemoryRemoteStore):
    """
    In-memory store that records every table call and can be told to fail.

    - calls: operation names in call order
    - fail(op, message, times): make the next `times` calls of `op` raise
    - on_call: hook invoked with the operation name before it runs
    - list_result: when set, `list` returns exactly these rows
    """

    def __init__(self, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self.calls: List[str] = []
        self.filters: List[Dict[str, Any]] = []
        self._failures: Dict[str, List[str]] = {}
        self.on_call: Optional[Callable[[str], None]] = None
        self.list_result: Optional[List[Dict[str, Any]]] = None

    def fail(self, operation: str, message: str = "boom", times: int = 1) -> None:
        self._failures.setdefault(operation, []).extend([message] * times)

    def _enter(self, operation: str, filters: Optional[Mapping[str, Any]] = None) -> None:
        self.calls.append(operation)
        if filters is not None:
            self.filters.append(dict(filters))
        if self.on_call is not None:
            self.on_call(operation)
        pending = self._failures.get(operation)
        if pending:
            raise RemoteStoreError(pending.pop(0), status_code=500)

    async def list(self, table, filters, order_by="created_at", descending=True):
        self._enter("list", filters)
        if self.list_result is not None:
            return [dict(r) for r in self.list_result]
        return await super().list(table, filters, order_by, descending)

    async def insert(self, table, record):
        self._enter("insert")
        return await super().insert(table, record)

    async def update(self, table, filters, patch):
        self._enter("update", filters)
        await super().update(table, filters, patch)

    async def delete(self, table, filters):
        self._enter("delete", filters)
        await super().delete(table, filters)

    def count(self, operation: str) -> int:
        return self.calls.count(operation)


@pytest.fixture
def store() -> RecordingStore:
    return RecordingStore()


@pytest.fixture
def make_settings():
    def _make(**overrides: Any):
        values = {"remote_backend": "memory", **overrides}
        return replace(get_settings(), **values)

    return _make


@pytest.fixture
def make_store():
    return RecordingStore
