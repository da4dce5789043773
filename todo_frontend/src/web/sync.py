"""
Local todo collection kept in step with the remote store.

TodoSync is the single owner of the UI state (collection, loading flag and
error slot). Its coroutines are the only way to change that state:

- list: full reload, newest first as returned by the store
- add: insert, then prepend the confirmed row (not optimistic)
- toggle / rename: patch the local row at once, then confirm remotely
- delete: confirm remotely, then drop the local row

Any failed toggle, rename or delete triggers one reload. Nothing is retried
beyond that, and overlapping operations on the same row are not serialized.
reset() starts a new generation: results of requests issued before it are
dropped when they arrive.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from .models import RecordId, Scope, TodoRecord
from .remote import RemoteStore, RemoteStoreError

logger = logging.getLogger(__name__)


def _same_id(a: Any, b: Any) -> bool:
    return a == b or str(a) == str(b)


# PUBLIC_INTERFACE
class TodoSync:
    """State container for the todo collection of one user agent."""

    def __init__(self, remote: RemoteStore, table: str = "todos") -> None:
        self._remote = remote
        self._table = table
        self._todos: List[TodoRecord] = []
        self._loading = False
        self._error: Optional[str] = None
        self._generation = 0

    @property
    def todos(self) -> List[TodoRecord]:
        return list(self._todos)

    @property
    def loading(self) -> bool:
        return self._loading

    @property
    def error(self) -> Optional[str]:
        return self._error

    def find(self, todo_id: RecordId) -> Optional[TodoRecord]:
        """Return the local record with ``todo_id``, or None."""
        for todo in self._todos:
            if _same_id(todo["id"], todo_id):
                return todo
        return None

    def reset(self) -> None:
        """Forget the collection and any recorded error, and disown pending requests."""
        self._generation += 1
        self._todos = []
        self._loading = False
        self._error = None

    def _is_stale(self, generation: int) -> bool:
        if generation != self._generation:
            logger.debug("Dropping result of a request issued before reset")
            return True
        return False

    def _record_error(self, operation: str, exc: RemoteStoreError) -> None:
        logger.error("Error %s todo: %s", operation, exc.message)
        self._error = exc.message

    def _patch_local(self, todo_id: RecordId, **fields: Any) -> None:
        self._todos = [
            {**todo, **fields} if _same_id(todo["id"], todo_id) else todo  # type: ignore[misc]
            for todo in self._todos
        ]

    # PUBLIC_INTERFACE
    async def list(self, scope: Scope) -> bool:
        """
        Replace the collection with every record in ``scope``, newest first.

        Returns True when the store answered. On failure the collection keeps
        its previous value and the error slot holds the failure.
        """
        self._error = None
        return await self._load(scope)

    async def _load(self, scope: Scope) -> bool:
        generation = self._generation
        self._loading = True
        try:
            rows = await self._remote.list(
                self._table, scope.filters(), order_by="created_at", descending=True
            )
        except RemoteStoreError as exc:
            if self._is_stale(generation):
                return False
            self._record_error("fetching", exc)
            return False
        finally:
            if generation == self._generation:
                self._loading = False
        if self._is_stale(generation):
            return False
        self._todos = list(rows or [])
        return True

    async def _resync(self, scope: Scope) -> None:
        # Keeps the triggering error unless the reload fails too.
        logger.info("Reloading todos after a failed mutation")
        await self._load(scope)

    # PUBLIC_INTERFACE
    async def add(self, title: str, scope: Scope) -> Optional[TodoRecord]:
        """
        Insert a new todo and prepend the row the store returns.

        A blank title is ignored without contacting the store. Returns the
        confirmed record, or None when nothing was added.
        """
        trimmed = (title or "").strip()
        if not trimmed:
            return None

        generation = self._generation
        self._error = None
        try:
            created = await self._remote.insert(self._table, scope.stamp({"title": trimmed, "is_done": False}))
        except RemoteStoreError as exc:
            if not self._is_stale(generation):
                self._record_error("adding", exc)
            return None

        if self._is_stale(generation):
            return None
        self._todos = [created, *self._todos]
        return created

    async def _confirm_update(self, operation: str, record_id: RecordId, patch: Dict[str, Any], scope: Scope) -> bool:
        generation = self._generation
        try:
            await self._remote.update(self._table, scope.filters(id=record_id), patch)
        except RemoteStoreError as exc:
            if self._is_stale(generation):
                return False
            self._record_error(operation, exc)
            await self._resync(scope)
            return False
        return not self._is_stale(generation)

    # PUBLIC_INTERFACE
    async def toggle(self, todo_id: RecordId, scope: Scope) -> bool:
        """
        Flip ``is_done`` of a todo, locally first and then remotely.

        Unknown ids are a no-op. A rejected update records the error and
        reloads the collection. Returns True when the store confirmed.
        """
        todo = self.find(todo_id)
        if todo is None:
            return False

        record_id = todo["id"]
        is_done = not todo["is_done"]
        self._patch_local(record_id, is_done=is_done)
        return await self._confirm_update("toggling", record_id, {"is_done": is_done}, scope)

    # PUBLIC_INTERFACE
    async def rename(self, todo_id: RecordId, new_title: str, scope: Scope) -> bool:
        """
        Replace the title of a todo, locally first and then remotely.

        Blank titles and unknown ids are a no-op. A rejected update records
        the error and reloads the collection.
        """
        trimmed = (new_title or "").strip()
        todo = self.find(todo_id)
        if not trimmed or todo is None:
            return False

        record_id = todo["id"]
        self._patch_local(record_id, title=trimmed)
        return await self._confirm_update("updating", record_id, {"title": trimmed}, scope)

    # PUBLIC_INTERFACE
    async def delete(self, todo_id: RecordId, scope: Scope) -> bool:
        """
        Delete a todo remotely, then drop it from the collection.

        A rejected delete records the error and reloads the collection.
        """
        todo = self.find(todo_id)
        record_id = todo["id"] if todo is not None else todo_id
        generation = self._generation
        try:
            await self._remote.delete(self._table, scope.filters(id=record_id))
        except RemoteStoreError as exc:
            if self._is_stale(generation):
                return False
            self._record_error("deleting", exc)
            await self._resync(scope)
            return False

        if self._is_stale(generation):
            return False
        self._todos = [t for t in self._todos if not _same_id(t["id"], record_id)]
        return True
