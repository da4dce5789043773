import asyncio
import os

import pytest
from fastapi.testclient import TestClient

# Ensure we default to the memory backend for tests to avoid network dependencies
os.environ.setdefault("REMOTE_BACKEND", "memory")

from src.web.main import create_app  # noqa: E402

ALICE = {"email": "alice@example.com", "password": "secret123"}
BOB = {"email": "bob@example.com", "password": "hunter22"}


@pytest.fixture
def open_client(make_settings, store):
    app = create_app(make_settings(require_auth=False), remote=store)
    with TestClient(app) as client:
        yield client


@pytest.fixture
def auth_client(make_settings, store):
    app = create_app(make_settings(require_auth=True), remote=store)
    with TestClient(app) as client:
        yield client


def assert_todo_shape(todo: dict):
    for key in ["id", "title", "is_done", "created_at"]:
        assert key in todo
    assert isinstance(todo["title"], str)
    assert isinstance(todo["is_done"], bool)


class TestHealth:
    def test_health_check(self, open_client):
        res = open_client.get("/health")
        assert res.status_code == 200
        data = res.json()
        assert data["message"] == "Healthy"
        assert data["backend"] == "memory"


class TestTodosOpenVariant:
    def test_list_starts_empty(self, open_client):
        res = open_client.get("/api/v1/todos/")
        assert res.status_code == 200
        assert res.json() == {"todos": [], "loading": False, "error": None}

    def test_add_prepends(self, open_client):
        first = open_client.post("/api/v1/todos/", json={"title": "a"})
        assert first.status_code == 201
        res = open_client.post("/api/v1/todos/", json={"title": "  b  "})
        assert res.status_code == 201
        todos = res.json()["todos"]
        assert [t["title"] for t in todos] == ["b", "a"]
        for todo in todos:
            assert_todo_shape(todo)
            assert todo["user_id"] is None

    def test_blank_add_is_ignored(self, open_client, store):
        res = open_client.post("/api/v1/todos/", json={"title": "   "})
        assert res.status_code == 200
        assert res.json()["todos"] == []
        assert store.count("insert") == 0

    def test_toggle_rename_delete(self, open_client):
        todo_id = open_client.post("/api/v1/todos/", json={"title": "a"}).json()["todos"][0]["id"]

        res_toggle = open_client.post(f"/api/v1/todos/{todo_id}/toggle")
        assert res_toggle.status_code == 200
        assert res_toggle.json()["todos"][0]["is_done"] is True

        res_rename = open_client.patch(f"/api/v1/todos/{todo_id}", json={"title": "renamed"})
        assert res_rename.status_code == 200
        assert res_rename.json()["todos"][0]["title"] == "renamed"

        # Reload shows server truth
        listed = open_client.get("/api/v1/todos/").json()["todos"]
        assert listed[0]["title"] == "renamed"
        assert listed[0]["is_done"] is True

        res_delete = open_client.delete(f"/api/v1/todos/{todo_id}")
        assert res_delete.status_code == 200
        assert res_delete.json()["todos"] == []

    def test_blank_rename_keeps_title(self, open_client, store):
        todo_id = open_client.post("/api/v1/todos/", json={"title": "a"}).json()["todos"][0]["id"]
        res = open_client.patch(f"/api/v1/todos/{todo_id}", json={"title": ""})
        assert res.status_code == 200
        assert res.json()["todos"][0]["title"] == "a"
        assert store.count("update") == 0

    def test_unknown_todo_is_404(self, open_client):
        for method, path in [
            ("post", "/api/v1/todos/424242/toggle"),
            ("delete", "/api/v1/todos/424242"),
        ]:
            res = getattr(open_client, method)(path)
            assert res.status_code == 404
            assert res.json()["detail"] == "Todo not found"
        res = open_client.patch("/api/v1/todos/424242", json={"title": "x"})
        assert res.status_code == 404

    def test_toggle_failure_reports_502_and_reloads(self, open_client, store):
        todo_id = open_client.post("/api/v1/todos/", json={"title": "a"}).json()["todos"][0]["id"]
        store.calls.clear()
        store.fail("update", "update rejected")

        res = open_client.post(f"/api/v1/todos/{todo_id}/toggle")
        assert res.status_code == 502
        body = res.json()
        assert body["error"] == "update rejected"
        assert body["todos"][0]["is_done"] is False
        assert store.calls == ["update", "list"]

    def test_add_failure_reports_502(self, open_client, store):
        open_client.get("/api/v1/todos/")
        store.fail("insert", "insert rejected")
        res = open_client.post("/api/v1/todos/", json={"title": "a"})
        assert res.status_code == 502
        assert res.json()["error"] == "insert rejected"
        assert res.json()["todos"] == []

    def test_list_failure_reports_502(self, open_client, store):
        store.fail("list", "network down")
        res = open_client.get("/api/v1/todos/")
        assert res.status_code == 502
        assert res.json()["error"] == "network down"

    def test_blank_add_after_failure_is_200(self, open_client, store):
        todo_id = open_client.post("/api/v1/todos/", json={"title": "a"}).json()["todos"][0]["id"]
        store.fail("update", "update rejected")
        assert open_client.post(f"/api/v1/todos/{todo_id}/toggle").status_code == 502
        store.calls.clear()

        res_add = open_client.post("/api/v1/todos/", json={"title": "   "})
        assert res_add.status_code == 200
        res_rename = open_client.patch(f"/api/v1/todos/{todo_id}", json={"title": ""})
        assert res_rename.status_code == 200
        assert res_rename.json()["todos"][0]["title"] == "a"
        assert store.calls == []

    def test_unloaded_collection_reports_502_not_404(self, open_client, store):
        created = asyncio.run(store.insert("todos", {"title": "a", "is_done": False}))
        store.fail("list", "network down")

        res = open_client.post(f"/api/v1/todos/{created['id']}/toggle")
        assert res.status_code == 502
        assert res.json()["detail"] == "network down"
        assert store.count("update") == 0

    def test_session_reports_open_variant(self, open_client):
        body = open_client.get("/api/v1/session/").json()
        assert body["auth_required"] is False
        assert body["status"] == "authenticated"
        assert open_client.post("/api/v1/session/sign-in", json=ALICE).status_code == 404


class TestTodosAuthenticatedVariant:
    def test_todos_require_sign_in(self, auth_client):
        assert auth_client.get("/api/v1/todos/").status_code == 401
        assert auth_client.post("/api/v1/todos/", json={"title": "a"}).status_code == 401

    def test_sign_up_then_todos_are_owned(self, auth_client, store):
        res = auth_client.post("/api/v1/session/sign-up", json=ALICE)
        assert res.status_code == 200
        body = res.json()
        assert body["status"] == "authenticated"
        owner = body["principal"]["id"]

        created = auth_client.post("/api/v1/todos/", json={"title": "mine"}).json()["todos"][0]
        assert created["user_id"] == owner

        todo_id = created["id"]
        auth_client.post(f"/api/v1/todos/{todo_id}/toggle")
        assert store.filters[-1] == {"id": todo_id, "user_id": owner}

    def test_principals_see_only_their_todos(self, auth_client):
        auth_client.post("/api/v1/session/sign-up", json=ALICE)
        auth_client.post("/api/v1/todos/", json={"title": "alice's"})
        auth_client.post("/api/v1/session/sign-out")

        assert auth_client.get("/api/v1/session/").json()["status"] == "unauthenticated"
        assert auth_client.get("/api/v1/todos/").status_code == 401

        auth_client.post("/api/v1/session/sign-up", json=BOB)
        assert auth_client.get("/api/v1/todos/").json()["todos"] == []

        auth_client.post("/api/v1/session/sign-out")
        auth_client.post("/api/v1/session/sign-in", json=ALICE)
        titles = [t["title"] for t in auth_client.get("/api/v1/todos/").json()["todos"]]
        assert titles == ["alice's"]

    def test_bad_credentials_are_401(self, auth_client):
        res = auth_client.post("/api/v1/session/sign-in", json=ALICE)
        assert res.status_code == 401
        assert res.json() == {"error": "AuthError", "message": "Invalid login credentials"}

    def test_sign_up_pending_confirmation(self, make_settings, make_store):
        app = create_app(make_settings(require_auth=True), remote=make_store(signup_requires_confirmation=True))
        with TestClient(app) as client:
            body = client.post("/api/v1/session/sign-up", json=ALICE).json()
        assert body["status"] == "unauthenticated"
        assert body["message"] == "Please check your email to confirm your account!"


class TestValidationErrors:
    def test_short_password_is_422(self, auth_client):
        res = auth_client.post("/api/v1/session/sign-in", json={"email": "a@b.c", "password": "123"})
        assert res.status_code == 422
        body = res.json()
        assert body.get("error") == "ValidationError"
        assert body.get("message") == "Request validation failed"
        assert isinstance(body.get("detail"), list)

    def test_missing_title_is_422(self, open_client):
        res = open_client.post("/api/v1/todos/", json={})
        assert res.status_code == 422
        assert res.json().get("error") == "ValidationError"


class TestShutdown:
    def test_shutdown_releases_session_subscription(self, make_settings, store):
        app = create_app(make_settings(require_auth=True), remote=store)
        with TestClient(app) as client:
            assert client.get("/api/v1/session/").json()["status"] == "unauthenticated"
            assert len(store._notifier) == 1
        assert len(store._notifier) == 0
        assert app.state.workspace.gate.closed
