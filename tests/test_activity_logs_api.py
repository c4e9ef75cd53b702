from dataclasses import replace

import pytest
from fastapi.testclient import TestClient

from todo_api.activity_store import InMemoryActivityLogStore
from todo_api.errors import StoreUnavailableError
from todo_api.main import create_app
from todo_api.repositories import InMemoryRepository
from todo_api.settings import Settings


class RacedDeleteRepository(InMemoryRepository):
    """Repository where another request removes the todo just before our delete."""

    def delete(self, todo_id):
        super().delete(todo_id)
        return False


class UnavailableActivityLogStore(InMemoryActivityLogStore):
    """Log store whose writes always fail, as when the log database is down."""

    def append(self, entry):
        raise StoreUnavailableError("activity_logs", "activity_logs store is unreachable")


def make_client(strict=True, activity_store=None, repository=None):
    app = create_app(
        settings=replace(Settings(), activity_log_strict=strict),
        repository=repository or InMemoryRepository(),
        activity_store=activity_store or InMemoryActivityLogStore(),
    )
    return TestClient(app)


client = make_client()


def create_todo(title, description=None):
    res = client.post("/api/todos", json={"title": title, "description": description})
    assert res.status_code == 201
    return res.json()


def logs_for(todo_id, **params):
    res = client.get("/api/activity-logs", params={"todoId": todo_id, **params})
    assert res.status_code == 200
    return res.json()


class TestCreatedLogs:
    def test_create_writes_one_created_entry(self):
        todo = create_todo("Log test create", "desc")
        logs = logs_for(todo["id"])
        assert len(logs) == 1
        entry = logs[0]
        assert entry["action"] == "Created"
        assert entry["todoId"] == todo["id"]
        assert entry["todoTitle"] == "Log test create"
        assert entry["details"] == {"description": "desc", "isComplete": False}
        assert entry["changes"] is None
        assert entry["snapshot"] is None

    def test_entry_shape(self):
        todo = create_todo("Shape")
        entry = logs_for(todo["id"])[0]
        assert set(entry) == {"id", "action", "todoId", "todoTitle", "timestamp", "details", "changes", "snapshot"}
        assert isinstance(entry["id"], str) and entry["id"]


class TestUpdateLogs:
    def test_completion_flip_logs_completed_then_uncompleted(self):
        todo = create_todo("Log test complete")
        client.put(f"/api/todos/{todo['id']}", json={"isComplete": True})
        assert logs_for(todo["id"])[0]["action"] == "Completed"

        client.put(f"/api/todos/{todo['id']}", json={"isComplete": False})
        latest = logs_for(todo["id"])[0]
        assert latest["action"] == "Uncompleted"
        assert latest["changes"] is None
        assert latest["details"] is None

    def test_title_change_logs_updated_with_field_change(self):
        todo = create_todo("Log test update", "old")
        client.put(f"/api/todos/{todo['id']}", json={"title": "New title"})
        latest = logs_for(todo["id"])[0]
        assert latest["action"] == "Updated"
        assert latest["todoTitle"] == "New title"
        assert latest["changes"] == [{"field": "title", "from": "Log test update", "to": "New title"}]

    def test_mixed_change_lists_each_changed_field(self):
        todo = create_todo("Mixed", "before")
        client.put(f"/api/todos/{todo['id']}", json={"description": "after", "isComplete": True})
        latest = logs_for(todo["id"])[0]
        assert latest["action"] == "Updated"
        assert latest["changes"] == [
            {"field": "description", "from": "before", "to": "after"},
            {"field": "isComplete", "from": "False", "to": "True"},
        ]

    def test_noop_update_writes_no_entry(self):
        todo = create_todo("Unchanged", "same")
        res = client.put(f"/api/todos/{todo['id']}", json={"title": "Unchanged", "description": None})
        assert res.status_code == 200
        logs = logs_for(todo["id"])
        assert [e["action"] for e in logs] == ["Created"]

    def test_update_of_missing_todo_writes_no_entry(self):
        before = client.get("/api/activity-logs/count").json()["count"]
        assert client.put("/api/todos/987654", json={"title": "x"}).status_code == 404
        assert client.get("/api/activity-logs/count").json()["count"] == before


class TestDeleteLogs:
    def test_delete_logs_snapshot_and_entry_outlives_todo(self):
        todo = create_todo("Log test delete", "snap")
        client.put(f"/api/todos/{todo['id']}", json={"isComplete": True})
        assert client.delete(f"/api/todos/{todo['id']}").status_code == 204

        latest = logs_for(todo["id"])[0]
        assert latest["action"] == "Deleted"
        snapshot = latest["snapshot"]
        assert snapshot["id"] == todo["id"]
        assert snapshot["title"] == "Log test delete"
        assert snapshot["description"] == "snap"
        assert snapshot["isComplete"] is True
        assert "createdAt" in snapshot
        assert client.get(f"/api/todos/{todo['id']}").status_code == 404
        assert [e["action"] for e in logs_for(todo["id"])] == ["Deleted", "Completed", "Created"]

    def test_losing_a_delete_race_reports_not_found(self):
        local = make_client(repository=RacedDeleteRepository())
        tid = local.post("/api/todos", json={"title": "Contested"}).json()["id"]

        res = local.delete(f"/api/todos/{tid}")
        assert res.status_code == 404
        # The snapshot was written before the store reported the miss
        actions = [e["action"] for e in local.get("/api/activity-logs", params={"todoId": tid}).json()]
        assert actions == ["Deleted", "Created"]

    def test_delete_of_missing_todo_writes_no_entry(self):
        before = client.get("/api/activity-logs/count").json()["count"]
        assert client.delete("/api/todos/987654").status_code == 404
        assert client.get("/api/activity-logs/count").json()["count"] == before


class TestQueries:
    def test_limit_caps_results(self):
        local = make_client()
        for i in range(3):
            local.post("/api/todos", json={"title": f"Limit {i}"})
        res = local.get("/api/activity-logs", params={"limit": 2})
        assert res.status_code == 200
        logs = res.json()
        assert len(logs) == 2
        assert [e["todoTitle"] for e in logs] == ["Limit 2", "Limit 1"]

    def test_default_limit_is_fifty(self):
        local = make_client()
        for i in range(55):
            local.post("/api/todos", json={"title": f"Bulk {i}"})
        assert len(local.get("/api/activity-logs").json()) == 50
        assert local.get("/api/activity-logs/count").json() == {"count": 55}

    def test_count_ignores_limit_and_filters_by_todo(self):
        local = make_client()
        first = local.post("/api/todos", json={"title": "Count A"}).json()
        local.post("/api/todos", json={"title": "Count B"})
        local.put(f"/api/todos/{first['id']}", json={"title": "Count A2"})

        assert local.get("/api/activity-logs/count").json() == {"count": 3}
        assert local.get("/api/activity-logs/count", params={"todoId": first["id"]}).json() == {"count": 2}
        assert local.get("/api/activity-logs/count", params={"todoId": 424242}).json() == {"count": 0}

    def test_negative_limit_rejected(self):
        res = client.get("/api/activity-logs", params={"limit": -1})
        assert res.status_code == 400


class TestScenario:
    def test_create_complete_rename_delete(self):
        local = make_client()
        res = local.post("/api/todos", json={"title": "Test todo", "description": "A description"})
        assert res.status_code == 201
        todo = res.json()
        assert todo["isComplete"] is False
        tid = todo["id"]

        def latest():
            return local.get("/api/activity-logs", params={"todoId": tid}).json()[0]

        assert latest()["action"] == "Created"

        local.put(f"/api/todos/{tid}", json={"isComplete": True})
        assert latest()["action"] == "Completed"

        local.put(f"/api/todos/{tid}", json={"title": "New"})
        entry = latest()
        assert entry["action"] == "Updated"
        assert entry["changes"] == [{"field": "title", "from": "Test todo", "to": "New"}]

        assert local.delete(f"/api/todos/{tid}").status_code == 204
        entry = latest()
        assert entry["action"] == "Deleted"
        assert entry["snapshot"]["title"] == "New"
        assert local.get(f"/api/todos/{tid}").status_code == 404


class TestLogStoreFailures:
    def test_strict_mode_fails_request_after_primary_write(self):
        local = make_client(strict=True, activity_store=UnavailableActivityLogStore())
        res = local.post("/api/todos", json={"title": "Orphan"})
        assert res.status_code == 503
        assert res.json()["store"] == "activity_logs"
        # The todo write already happened; there is no cross-store rollback
        assert [t["title"] for t in local.get("/api/todos").json()] == ["Orphan"]

    def test_lenient_mode_keeps_mutations_available(self):
        local = make_client(strict=False, activity_store=UnavailableActivityLogStore())
        res = local.post("/api/todos", json={"title": "Survives"})
        assert res.status_code == 201
        tid = res.json()["id"]

        assert local.put(f"/api/todos/{tid}", json={"isComplete": True}).status_code == 200
        assert local.delete(f"/api/todos/{tid}").status_code == 204
        assert local.get("/api/activity-logs/count").json() == {"count": 0}


class TestSQLiteBackends:
    @pytest.fixture
    def sqlite_client(self, tmp_path):
        settings = replace(
            Settings(),
            persistence_backend="sqlite",
            sqlite_db_path=str(tmp_path / "data" / "todos.db"),
            activity_log_backend="sqlite",
            activity_log_db_path=str(tmp_path / "logs" / "activity_logs.db"),
        )
        return TestClient(create_app(settings=settings))

    def test_stores_use_separate_files(self, sqlite_client, tmp_path):
        sqlite_client.post("/api/todos", json={"title": "On disk"})
        assert (tmp_path / "data" / "todos.db").exists()
        assert (tmp_path / "logs" / "activity_logs.db").exists()
        health = sqlite_client.get("/").json()
        assert health["backend"] == "sqlite"
        assert health["activityLogBackend"] == "sqlite"

    def test_create_complete_rename_delete(self, sqlite_client):
        res = sqlite_client.post("/api/todos", json={"title": "Test todo", "description": "A description"})
        assert res.status_code == 201
        todo = res.json()
        tid = todo["id"]

        def entries():
            return sqlite_client.get("/api/activity-logs", params={"todoId": tid}).json()

        assert entries()[0]["details"] == {"description": "A description", "isComplete": False}

        sqlite_client.put(f"/api/todos/{tid}", json={"isComplete": True})
        assert entries()[0]["action"] == "Completed"

        sqlite_client.put(f"/api/todos/{tid}", json={"title": "New", "description": None})
        assert entries()[0]["changes"] == [{"field": "title", "from": "Test todo", "to": "New"}]

        assert sqlite_client.delete(f"/api/todos/{tid}").status_code == 204
        deleted = entries()[0]
        assert deleted["action"] == "Deleted"
        assert deleted["snapshot"] == {
            "id": tid,
            "title": "New",
            "description": "A description",
            "isComplete": True,
            "createdAt": todo["createdAt"],
        }
        assert sqlite_client.get(f"/api/todos/{tid}").status_code == 404
        assert [e["action"] for e in entries()] == ["Deleted", "Updated", "Completed", "Created"]
        assert sqlite_client.get("/api/activity-logs/count", params={"todoId": tid}).json() == {"count": 4}

    def test_huge_limit_is_accepted(self, sqlite_client):
        sqlite_client.post("/api/todos", json={"title": "Only one"})
        res = sqlite_client.get("/api/activity-logs", params={"limit": 2**63})
        assert res.status_code == 200
        assert len(res.json()) == 1

    def test_out_of_range_ids_are_rejected(self, sqlite_client):
        too_big = 2**63
        assert sqlite_client.get("/api/activity-logs/count", params={"todoId": too_big}).status_code == 400
        assert sqlite_client.get("/api/activity-logs", params={"todoId": too_big}).status_code == 400
        assert sqlite_client.get(f"/api/todos/{too_big}").status_code == 400
        assert sqlite_client.put(f"/api/todos/{too_big}", json={"title": "x"}).status_code == 400
        assert sqlite_client.delete(f"/api/todos/{-(2**63) - 1}").status_code == 400
        # The largest representable id is simply absent
        assert sqlite_client.get(f"/api/todos/{2**63 - 1}").status_code == 404
