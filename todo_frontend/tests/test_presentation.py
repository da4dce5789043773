from datetime import datetime, timezone

from src.web.models import Principal
from src.web.presentation import (
    EMPTY_MESSAGE,
    TodoItemEditor,
    TodoPage,
    render_sign_in_page,
    render_todo_list,
    render_todo_page,
)

CREATED = datetime(2025, 1, 1, tzinfo=timezone.utc)


def toggle_url(todo_id):
    return f"/t/{todo_id}"


def delete_url(todo_id):
    return f"/d/{todo_id}"


def rename_url(todo_id):
    return f"/r/{todo_id}"


def todo(todo_id, title, is_done=False):
    return {"id": todo_id, "title": title, "is_done": is_done, "created_at": CREATED}


class TestRenderTodoList:
    def test_empty_collection_shows_message(self):
        html = render_todo_list([], toggle_url, delete_url, rename_url)
        assert EMPTY_MESSAGE in html

    def test_one_row_per_record_with_affordances(self):
        html = render_todo_list([todo(2, "b"), todo(1, "a", True)], toggle_url, delete_url, rename_url)
        assert EMPTY_MESSAGE not in html
        assert html.count('class="row"') == 2
        for todo_id in (1, 2):
            assert f'action="/t/{todo_id}"' in html
            assert f'action="/d/{todo_id}"' in html
            assert f'href="/?edit={todo_id}"' in html
        assert html.index("todo-2") < html.index("todo-1")
        assert 'class="title done"' in html

    def test_titles_are_escaped(self):
        html = render_todo_list([todo(1, "<script>x</script>")], toggle_url, delete_url, rename_url)
        assert "<script>x</script>" not in html
        assert "&lt;script&gt;" in html

    def test_editor_row_renders_rename_form(self):
        editor = TodoItemEditor.for_record(todo(1, "a"))
        editor.begin()
        editor.update("draft text")
        html = render_todo_list([todo(1, "a"), todo(2, "b")], toggle_url, delete_url, rename_url, editor=editor)
        assert 'action="/r/1"' in html
        assert 'value="draft text"' in html
        assert 'action="/r/2"' not in html


class TestTodoItemEditor:
    def test_cancel_reverts_to_confirmed_title(self):
        editor = TodoItemEditor.for_record(todo(1, "original"))
        editor.begin()
        editor.update("changed")
        editor.cancel()
        assert editor.editing is False
        assert editor.draft == "original"

    def test_commit_calls_on_rename_with_trimmed_title(self):
        calls = []
        editor = TodoItemEditor.for_record(todo(1, "a"))
        editor.begin()
        editor.update("  b  ")
        result = editor.commit(lambda todo_id, title: calls.append((todo_id, title)) or "sent")
        assert result == "sent"
        assert calls == [(1, "b")]
        assert editor.editing is False

    def test_blank_commit_does_not_call_on_rename(self):
        calls = []
        editor = TodoItemEditor.for_record(todo(1, "a"))
        editor.begin()
        editor.update("")
        assert editor.commit(lambda *args: calls.append(args)) is None
        assert calls == []
        assert editor.editing is True
        assert editor.confirmed_title == "a"


class TestPages:
    def test_todo_page_shows_error_draft_and_user(self):
        page = TodoPage(
            collection=[todo(1, "a")],
            error="insert rejected",
            principal=Principal(id="u1", email="alice@example.com"),
            draft="unsaved",
        )
        html = render_todo_page(page, toggle_url, delete_url, rename_url)
        assert "insert rejected" in html
        assert 'value="unsaved"' in html
        assert "Welcome, alice!" in html
        assert "Sign Out" in html

    def test_todo_page_loading_hides_list(self):
        page = TodoPage(collection=[todo(1, "a")], loading=True, auth_required=False)
        html = render_todo_page(page, toggle_url, delete_url, rename_url)
        assert "Loading todos..." in html
        assert "todo-1" not in html
        assert "Sign Out" not in html

    def test_sign_in_and_sign_up_pages(self):
        sign_in = render_sign_in_page(error="Invalid login credentials")
        assert "Welcome Back" in sign_in
        assert 'action="/auth/sign-in"' in sign_in
        assert "Invalid login credentials" in sign_in

        sign_up = render_sign_in_page(sign_up=True, message="Please check your email")
        assert "Create Account" in sign_up
        assert 'action="/auth/sign-up"' in sign_up
        assert "Please check your email" in sign_up
