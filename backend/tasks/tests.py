# backend/tasks/tests.py
from django.test import SimpleTestCase, override_settings
from rest_framework.test import APIClient
from unittest import mock
from pathlib import Path
import itertools
import tempfile
import threading
import json

from .exceptions import NotFoundError, StorageError, ValidationError
from .models import Task
from .services import TaskService
from .store import JsonTaskStore


def fixed_clock():
    counter = itertools.count(1)
    return lambda: f"2026-01-01T00:00:{next(counter):02d}.000Z"


class TempDirMixin:
    def make_tmp_dir(self):
        tmp = tempfile.TemporaryDirectory()
        self.addCleanup(tmp.cleanup)
        return Path(tmp.name)


class StoreTests(TempDirMixin, SimpleTestCase):
    def setUp(self):
        self.path = self.make_tmp_dir() / "data" / "tasks.json"
        self.store = JsonTaskStore(self.path)

    def test_missing_file_loads_empty(self):
        self.assertEqual(self.store.load(), [])

    def test_corrupt_file_loads_empty(self):
        self.path.parent.mkdir(parents=True)
        self.path.write_text("{not json", encoding="utf-8")
        self.assertEqual(self.store.load(), [])

    def test_non_list_file_loads_empty(self):
        self.path.parent.mkdir(parents=True)
        self.path.write_text(json.dumps({"tasks": []}), encoding="utf-8")
        self.assertEqual(self.store.load(), [])

    def test_save_then_load_keeps_every_field(self):
        tasks = [
            Task(id="b", title="Second", createdAt="2026-01-02T00:00:00.000Z", completed=True,
                 priority="high", dueDate="2026-02-01", completedAt="2026-01-03T00:00:00.000Z",
                 updatedAt="2026-01-02T10:00:00.000Z"),
            Task(id="a", title="First", createdAt="2026-01-01T00:00:00.000Z"),
        ]
        self.store.save(tasks)
        self.assertEqual(self.store.load(), tasks)

    def test_save_of_load_is_noop(self):
        self.store.save([Task(id="a", title="A", createdAt="2026-01-01T00:00:00.000Z", priority="low")])
        before = self.path.read_text(encoding="utf-8")
        self.store.save(self.store.load())
        self.assertEqual(self.path.read_text(encoding="utf-8"), before)

    def test_save_leaves_no_temp_files(self):
        self.store.save([])
        self.assertEqual([p.name for p in self.path.parent.iterdir()], ["tasks.json"])

    def test_loads_records_missing_optional_keys(self):
        self.path.parent.mkdir(parents=True)
        self.path.write_text(json.dumps([
            {"id": "x", "title": "Old", "createdAt": "2025-01-01T00:00:00.000Z"},
        ]), encoding="utf-8")
        task = self.store.load()[0]
        self.assertFalse(task.completed)
        self.assertEqual(task.priority, "medium")
        self.assertIsNone(task.dueDate)
        self.assertIsNone(task.completedAt)

    def test_malformed_record_is_skipped_not_the_whole_file(self):
        self.path.parent.mkdir(parents=True)
        self.path.write_text(json.dumps([
            {"id": "a", "title": "Keep", "createdAt": "2025-01-01T00:00:00.000Z"},
            {"id": "b", "createdAt": "2025-01-02T00:00:00.000Z"},
            "not a record",
            {"id": "c", "title": "Also keep", "createdAt": "2025-01-03T00:00:00.000Z"},
        ]), encoding="utf-8")
        self.assertEqual([t.id for t in self.store.load()], ["a", "c"])

    def test_ensure_exists_writes_empty_collection(self):
        self.store.ensure_exists()
        self.assertEqual(json.loads(self.path.read_text(encoding="utf-8")), [])

    def test_write_failure_raises_storage_error(self):
        blocker = self.make_tmp_dir() / "blocker"
        blocker.write_text("", encoding="utf-8")
        store = JsonTaskStore(blocker / "tasks.json")
        with self.assertRaises(StorageError):
            store.save([])


class TaskServiceTests(TempDirMixin, SimpleTestCase):
    def setUp(self):
        self.store = JsonTaskStore(self.make_tmp_dir() / "tasks.json")
        self.service = TaskService(self.store, clock=fixed_clock())

    def test_add_task_defaults(self):
        task = self.service.add_task("  Buy milk  ")
        self.assertEqual(task.title, "Buy milk")
        self.assertFalse(task.completed)
        self.assertEqual(task.priority, "medium")
        self.assertIsNone(task.dueDate)
        self.assertIsNotNone(task.createdAt)
        self.assertEqual(self.service.list_tasks(), [task])

    def test_add_task_keeps_given_priority_and_due_date(self):
        task = self.service.add_task("Report", priority="high", due_date="2026-03-01")
        self.assertEqual(task.priority, "high")
        self.assertEqual(task.dueDate, "2026-03-01")

    def test_add_task_accepts_unknown_priority(self):
        task = self.service.add_task("Odd", priority="urgent")
        self.assertEqual(task.priority, "urgent")

    def test_add_task_rejects_blank_titles(self):
        for title in ("", "   ", None):
            with self.assertRaises(ValidationError):
                self.service.add_task(title)
        self.assertEqual(self.service.list_tasks(), [])

    def test_ids_are_unique(self):
        ids = {self.service.add_task(f"Task {i}").id for i in range(20)}
        self.assertEqual(len(ids), 20)

    def test_colliding_id_is_regenerated(self):
        service = TaskService(self.store, clock=fixed_clock(), id_factory=iter(["a", "a", "b"]).__next__)
        service.add_task("One")
        self.assertEqual(service.add_task("Two").id, "b")

    def test_newest_first(self):
        for title in ("A", "B", "C"):
            self.service.add_task(title)
        self.assertEqual([t.title for t in self.service.list_tasks()], ["C", "B", "A"])

    def test_toggle_twice_is_identity(self):
        task = self.service.add_task("Buy milk")
        done = self.service.toggle_task(task.id)
        self.assertTrue(done.completed)
        self.assertIsNotNone(done.completedAt)
        undone = self.service.toggle_task(task.id)
        self.assertFalse(undone.completed)
        self.assertIsNone(undone.completedAt)
        self.assertFalse(self.service.list_tasks()[0].completed)

    def test_unknown_id_leaves_collection_unchanged(self):
        self.service.add_task("Keep me")
        before = self.service.list_tasks()
        for call in (
            lambda: self.service.toggle_task("nope"),
            lambda: self.service.update_task("nope", title="x"),
            lambda: self.service.delete_task("nope"),
        ):
            with self.assertRaises(NotFoundError):
                call()
        self.assertEqual(self.service.list_tasks(), before)

    def test_update_applies_given_fields(self):
        task = self.service.add_task("Draft", due_date="2026-01-10")
        updated = self.service.update_task(task.id, title="  Final  ", priority="low")
        self.assertEqual(updated.title, "Final")
        self.assertEqual(updated.priority, "low")
        self.assertEqual(updated.dueDate, "2026-01-10")
        self.assertIsNotNone(updated.updatedAt)
        self.assertEqual(updated.createdAt, task.createdAt)

    def test_update_ignores_blank_title(self):
        task = self.service.add_task("Keep title")
        self.assertEqual(self.service.update_task(task.id, title="   ").title, "Keep title")

    def test_update_due_date_explicit_none_clears(self):
        task = self.service.add_task("Dated", due_date="2026-01-10")
        self.assertEqual(self.service.update_task(task.id).dueDate, "2026-01-10")
        self.assertIsNone(self.service.update_task(task.id, due_date=None).dueDate)

    def test_delete_task(self):
        a = self.service.add_task("A")
        b = self.service.add_task("B")
        self.service.delete_task(a.id)
        self.assertEqual(self.service.list_tasks(), [b])

    def test_clear_completed_keeps_pending_in_order(self):
        a = self.service.add_task("A")
        b = self.service.add_task("B")
        c = self.service.add_task("C")
        d = self.service.add_task("D")
        self.service.toggle_task(b.id)
        self.service.toggle_task(d.id)
        self.assertEqual(self.service.clear_completed(), 2)
        self.assertEqual([t.id for t in self.service.list_tasks()], [c.id, a.id])
        self.assertEqual(self.service.clear_completed(), 0)

    def test_filter_and_search(self):
        self.service.add_task("Buy milk")
        bread = self.service.add_task("Buy bread")
        self.service.add_task("Call mom")
        self.service.toggle_task(bread.id)
        self.assertEqual([t.title for t in self.service.filter_tasks("active")], ["Call mom", "Buy milk"])
        self.assertEqual([t.title for t in self.service.filter_tasks("completed")], ["Buy bread"])
        self.assertEqual([t.title for t in self.service.filter_tasks(search="BUY")], ["Buy bread", "Buy milk"])
        with self.assertRaises(ValidationError):
            self.service.filter_tasks("someday")

    def test_stats(self):
        self.assertEqual(self.service.stats(), {"total": 0, "pending": 0, "completed": 0, "progress": 0})
        for title in ("A", "B", "C"):
            self.service.add_task(title)
        self.service.toggle_task(self.service.list_tasks()[0].id)
        self.assertEqual(self.service.stats(), {"total": 3, "pending": 2, "completed": 1, "progress": 33})

    def test_concurrent_adds_all_persist(self):
        service = TaskService(self.store)
        barrier = threading.Barrier(8)

        def worker(n):
            barrier.wait()
            for i in range(5):
                service.add_task(f"worker {n} task {i}")

        threads = [threading.Thread(target=worker, args=(n,)) for n in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        tasks = self.store.load()
        self.assertEqual(len(tasks), 40)
        self.assertEqual(len({t.id for t in tasks}), 40)


class TaskAPITests(TempDirMixin, SimpleTestCase):
    def setUp(self):
        tmp = self.make_tmp_dir()
        override = override_settings(
            TASKS_DATA_FILE=tmp / "data" / "tasks.json",
            CLIENT_INDEX_FILE=tmp / "public" / "index.html",
        )
        override.enable()
        self.addCleanup(override.disable)
        self.tmp = tmp
        self.client = APIClient()

    def add(self, **body):
        return self.client.post("/api/tasks", body, format="json")

    def test_list_empty(self):
        res = self.client.get("/api/tasks")
        self.assertEqual(res.status_code, 200)
        self.assertEqual(res.json(), {"success": True, "tasks": []})

    def test_add_toggle_scenario(self):
        res = self.add(title="Buy milk")
        self.assertEqual(res.status_code, 201)
        task = res.json()["task"]
        self.assertTrue(res.json()["success"])
        self.assertEqual(task["priority"], "medium")
        self.assertFalse(task["completed"])
        self.assertIsNone(task["dueDate"])

        res = self.client.patch(f"/api/tasks/{task['id']}/toggle")
        self.assertEqual(res.status_code, 200)
        self.assertTrue(res.json()["task"]["completed"])
        self.assertIsNotNone(res.json()["task"]["completedAt"])

        res = self.client.patch(f"/api/tasks/{task['id']}/toggle/")
        self.assertFalse(res.json()["task"]["completed"])
        self.assertIsNone(res.json()["task"]["completedAt"])

    def test_add_blank_title_is_400(self):
        for body in ({}, {"title": ""}, {"title": "   "}):
            res = self.add(**body)
            self.assertEqual(res.status_code, 400)
            self.assertFalse(res.json()["success"])
            self.assertEqual(res.json()["message"], "Task title is required")
        self.assertEqual(self.client.get("/api/tasks").json()["tasks"], [])

    def test_add_non_object_body_is_400(self):
        res = self.client.post("/api/tasks", [{"title": "x"}], format="json")
        self.assertEqual(res.status_code, 400)
        self.assertFalse(res.json()["success"])

    def test_list_is_newest_first(self):
        for title in ("A", "B", "C"):
            self.add(title=title)
        titles = [t["title"] for t in self.client.get("/api/tasks/").json()["tasks"]]
        self.assertEqual(titles, ["C", "B", "A"])

    def test_update(self):
        task = self.add(title="Draft", dueDate="2026-05-01").json()["task"]
        res = self.client.put(f"/api/tasks/{task['id']}", {"title": " Final ", "priority": "high"}, format="json")
        self.assertEqual(res.status_code, 200)
        updated = res.json()["task"]
        self.assertEqual(updated["title"], "Final")
        self.assertEqual(updated["priority"], "high")
        self.assertEqual(updated["dueDate"], "2026-05-01")
        self.assertIsNotNone(updated["updatedAt"])

        res = self.client.put(f"/api/tasks/{task['id']}", {"dueDate": None}, format="json")
        self.assertIsNone(res.json()["task"]["dueDate"])

    def test_unknown_id_is_404(self):
        for res in (
            self.client.patch("/api/tasks/missing/toggle"),
            self.client.put("/api/tasks/missing", {"title": "x"}, format="json"),
            self.client.delete("/api/tasks/missing"),
        ):
            self.assertEqual(res.status_code, 404)
            self.assertEqual(res.json(), {"success": False, "message": "Task not found"})

    def test_delete(self):
        task = self.add(title="Gone soon").json()["task"]
        res = self.client.delete(f"/api/tasks/{task['id']}")
        self.assertEqual(res.status_code, 200)
        self.assertEqual(res.json(), {"success": True, "message": "Task deleted successfully"})
        self.assertEqual(self.client.get("/api/tasks").json()["tasks"], [])

    def test_clear_completed_scenario(self):
        done = self.add(title="Done").json()["task"]
        pending = self.add(title="Pending").json()["task"]
        self.client.patch(f"/api/tasks/{done['id']}/toggle")
        res = self.client.delete("/api/tasks/completed/clear")
        self.assertEqual(res.status_code, 200)
        self.assertEqual(res.json(), {"success": True, "message": "Cleared 1 completed tasks", "count": 1})
        tasks = self.client.get("/api/tasks").json()["tasks"]
        self.assertEqual([t["id"] for t in tasks], [pending["id"]])

    def test_filter_query_params(self):
        self.add(title="Buy milk")
        other = self.add(title="Walk dog").json()["task"]
        self.client.patch(f"/api/tasks/{other['id']}/toggle")
        res = self.client.get("/api/tasks", {"status": "completed"})
        self.assertEqual([t["title"] for t in res.json()["tasks"]], ["Walk dog"])
        res = self.client.get("/api/tasks", {"search": "milk"})
        self.assertEqual([t["title"] for t in res.json()["tasks"]], ["Buy milk"])
        self.assertEqual(self.client.get("/api/tasks", {"status": "later"}).status_code, 400)

    def test_stats(self):
        first = self.add(title="One").json()["task"]
        self.add(title="Two")
        self.client.patch(f"/api/tasks/{first['id']}/toggle")
        res = self.client.get("/api/tasks/stats")
        self.assertEqual(res.json(), {
            "success": True,
            "stats": {"total": 2, "pending": 1, "completed": 1, "progress": 50},
        })

    def test_storage_error_is_500(self):
        blocker = self.tmp / "blocker"
        blocker.write_text("", encoding="utf-8")
        with override_settings(TASKS_DATA_FILE=blocker / "tasks.json"):
            res = self.add(title="Nowhere to go")
        self.assertEqual(res.status_code, 500)
        self.assertFalse(res.json()["success"])

    def test_unexpected_error_is_generic_500(self):
        broken = mock.Mock()
        broken.stats.side_effect = RuntimeError("boom")
        with mock.patch("tasks.views.get_task_service", return_value=broken):
            res = self.client.get("/api/tasks/stats")
        self.assertEqual(res.status_code, 500)
        self.assertEqual(res.json(), {"success": False, "message": "An unexpected error occurred"})

    def test_unmatched_path_serves_client_entry(self):
        index = self.tmp / "public" / "index.html"
        index.parent.mkdir(parents=True)
        index.write_text("<html>tasks</html>", encoding="utf-8")
        res = self.client.get("/some/client/route")
        self.assertEqual(res.status_code, 200)
        self.assertIn(b"tasks", b"".join(res.streaming_content))

    def test_unmatched_path_without_client_is_404(self):
        res = self.client.get("/nothing/here")
        self.assertEqual(res.status_code, 404)
        self.assertEqual(res.json(), {"success": False, "message": "Not found"})

    def write_client(self):
        public = self.tmp / "public"
        public.mkdir(parents=True)
        (public / "index.html").write_text("<html><script src='/app.js'></script></html>", encoding="utf-8")
        (public / "app.js").write_text("const API_URL = '/api/tasks';", encoding="utf-8")

    def test_client_assets_are_served_as_files(self):
        self.write_client()
        res = self.client.get("/app.js")
        self.assertEqual(res.status_code, 200)
        self.assertIn("javascript", res["Content-Type"])
        self.assertEqual(b"".join(res.streaming_content), b"const API_URL = '/api/tasks';")

    def test_client_entry_honours_html_accept(self):
        self.write_client()
        res = self.client.get("/some/route", HTTP_ACCEPT="text/html")
        self.assertEqual(res.status_code, 200)
        self.assertTrue(res["Content-Type"].startswith("text/html"))
        self.assertIn(b"<script", b"".join(res.streaming_content))

    def test_client_entry_rejects_writes(self):
        self.write_client()
        self.assertEqual(self.client.post("/some/route", {}, format="json").status_code, 405)

    def test_stats_route_shadows_detail_methods(self):
        self.assertEqual(self.client.put("/api/tasks/stats", {"title": "x"}, format="json").status_code, 405)

    def test_cors_allows_any_origin(self):
        res = self.client.get("/api/tasks", HTTP_ORIGIN="http://other.example")
        self.assertEqual(res.status_code, 200)
        self.assertEqual(res["Access-Control-Allow-Origin"], "*")

    def test_cors_preflight(self):
        res = self.client.options(
            "/api/tasks",
            HTTP_ORIGIN="http://other.example",
            HTTP_ACCESS_CONTROL_REQUEST_METHOD="POST",
        )
        self.assertEqual(res.status_code, 200)
        self.assertEqual(res["Access-Control-Allow-Origin"], "*")
        self.assertIn("POST", res["Access-Control-Allow-Methods"])
