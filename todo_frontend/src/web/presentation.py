from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional, Sequence, TypeVar

from jinja2 import Environment, FileSystemLoader, select_autoescape

from .models import Principal, RecordId, TodoRecord

TEMPLATES_DIR = Path(__file__).parent / "templates"

EMPTY_MESSAGE = "No todos yet. Add one above to get started!"

ActionUrl = Callable[[RecordId], str]
T = TypeVar("T")

_env = Environment(
    loader=FileSystemLoader(str(TEMPLATES_DIR)),
    autoescape=select_autoescape(["html"]),
    trim_blocks=True,
    lstrip_blocks=True,
)


# PUBLIC_INTERFACE
@dataclass
class TodoItemEditor:
    """
    Transient inline-edit state of one row.

    ``confirmed_title`` is the last title the collection holds; ``draft`` is
    what the user is typing. Cancelling reverts the draft, committing hands
    the trimmed draft to ``on_rename`` unless it is blank.
    """

    todo_id: RecordId
    confirmed_title: str
    draft: str = ""
    editing: bool = False

    @classmethod
    def for_record(cls, todo: TodoRecord) -> "TodoItemEditor":
        return cls(todo_id=todo["id"], confirmed_title=todo["title"], draft=todo["title"])

    def begin(self) -> None:
        self.draft = self.confirmed_title
        self.editing = True

    def update(self, text: str) -> None:
        self.draft = text

    def cancel(self) -> None:
        self.draft = self.confirmed_title
        self.editing = False

    def commit(self, on_rename: Callable[[RecordId, str], T]) -> Optional[T]:
        """Return whatever ``on_rename`` returns, or None when the draft is blank."""
        title = self.draft.strip()
        if not title:
            return None
        self.editing = False
        return on_rename(self.todo_id, title)


@dataclass(frozen=True)
class _Row:
    todo: TodoRecord
    toggle_url: str
    delete_url: str
    rename_url: str
    editor: Optional[TodoItemEditor] = None


# PUBLIC_INTERFACE
def render_todo_list(
    collection: Sequence[TodoRecord],
    on_toggle: ActionUrl,
    on_delete: ActionUrl,
    on_rename: ActionUrl,
    editor: Optional[TodoItemEditor] = None,
) -> str:
    """
    Render the todo collection as HTML.

    The three callbacks map a record id to the form action of the matching
    affordance. ``editor`` puts its row in inline-edit mode.
    """
    rows = [
        _Row(
            todo=todo,
            toggle_url=on_toggle(todo["id"]),
            delete_url=on_delete(todo["id"]),
            rename_url=on_rename(todo["id"]),
            editor=editor if editor is not None and editor.editing and str(editor.todo_id) == str(todo["id"]) else None,
        )
        for todo in collection
    ]
    return _env.get_template("todo_list.html").render(rows=rows, empty_message=EMPTY_MESSAGE)


@dataclass
class TodoPage:
    """Everything the todo page shows besides the list itself."""

    collection: Sequence[TodoRecord]
    loading: bool = False
    error: Optional[str] = None
    principal: Optional[Principal] = None
    auth_required: bool = True
    draft: str = ""
    editor: Optional[TodoItemEditor] = None


# PUBLIC_INTERFACE
def render_todo_page(page: TodoPage, on_toggle: ActionUrl, on_delete: ActionUrl, on_rename: ActionUrl) -> str:
    """Render the full todo page around ``render_todo_list``."""
    todo_list = render_todo_list(page.collection, on_toggle, on_delete, on_rename, editor=page.editor)
    return _env.get_template("todos.html").render(page=page, todo_list=todo_list)


# PUBLIC_INTERFACE
def render_sign_in_page(
    sign_up: bool = False,
    email: str = "",
    error: Optional[str] = None,
    message: Optional[str] = None,
) -> str:
    """Render the sign-in form, or the sign-up form when ``sign_up`` is set."""
    return _env.get_template("sign_in.html").render(sign_up=sign_up, email=email, error=error, message=message)


# PUBLIC_INTERFACE
def render_checking_page() -> str:
    return _env.get_template("checking.html").render()
