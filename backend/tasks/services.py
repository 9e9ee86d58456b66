# backend/tasks/services.py
import functools
import logging
import threading

from django.conf import settings

from .exceptions import NotFoundError, ValidationError
from .models import PRIORITY_MEDIUM, Task, new_task_id, utc_now
from .store import JsonTaskStore

logger = logging.getLogger(__name__)

STATUS_FILTERS = ("all", "active", "completed")

# one load-mutate-save cycle at a time, across every service instance
_MUTATION_LOCK = threading.Lock()

_UNSET = object()


def _clean_title(title):
    if not isinstance(title, str):
        return ""
    return title.strip()


class TaskService:
    """
    Business rules over the task collection. Every call reads the full
    collection from the store, applies one change and writes it back.
    """

    def __init__(self, store, clock=None, id_factory=None):
        self.store = store
        self.clock = clock or utc_now
        self.id_factory = id_factory or new_task_id

    def list_tasks(self):
        return self.store.load()

    def filter_tasks(self, status="all", search=None):
        status = (status or "all").lower()
        if status not in STATUS_FILTERS:
            raise ValidationError(
                f"Unknown status filter '{status}', expected one of: {', '.join(STATUS_FILTERS)}"
            )
        tasks = self.store.load()
        if status == "active":
            tasks = [t for t in tasks if not t.completed]
        elif status == "completed":
            tasks = [t for t in tasks if t.completed]
        if search:
            needle = search.lower()
            tasks = [t for t in tasks if needle in t.title.lower()]
        return tasks

    def stats(self):
        tasks = self.store.load()
        total = len(tasks)
        completed = sum(1 for t in tasks if t.completed)
        progress = round(completed / total * 100) if total else 0
        return {
            "total": total,
            "pending": total - completed,
            "completed": completed,
            "progress": progress,
        }

    def add_task(self, title, priority=None, due_date=None):
        title = _clean_title(title)
        if not title:
            raise ValidationError("Task title is required")

        with _MUTATION_LOCK:
            tasks = self.store.load()
            existing = {t.id for t in tasks}
            task_id = self.id_factory()
            while task_id in existing:
                task_id = self.id_factory()
            task = Task(
                id=task_id,
                title=title,
                createdAt=self.clock(),
                completed=False,
                priority=priority or PRIORITY_MEDIUM,
                dueDate=due_date or None,
            )
            tasks.insert(0, task)
            self.store.save(tasks)
        logger.info("Added task %s", task.id)
        return task

    def toggle_task(self, task_id):
        with _MUTATION_LOCK:
            tasks = self.store.load()
            task = self._find(tasks, task_id)
            task.completed = not task.completed
            task.completedAt = self.clock() if task.completed else None
            self.store.save(tasks)
        logger.info("Toggled task %s (completed=%s)", task.id, task.completed)
        return task

    def update_task(self, task_id, title=None, priority=None, due_date=_UNSET):
        """
        Only truthy title/priority values are applied; a blank title leaves
        the old one in place. due_date is applied whenever it is passed,
        None included, so callers can clear it.
        """
        with _MUTATION_LOCK:
            tasks = self.store.load()
            task = self._find(tasks, task_id)
            title = _clean_title(title)
            if title:
                task.title = title
            if priority:
                task.priority = priority
            if due_date is not _UNSET:
                task.dueDate = due_date
            task.updatedAt = self.clock()
            self.store.save(tasks)
        logger.info("Updated task %s", task.id)
        return task

    def delete_task(self, task_id):
        with _MUTATION_LOCK:
            tasks = self.store.load()
            task = self._find(tasks, task_id)
            self.store.save([t for t in tasks if t.id != task.id])
        logger.info("Deleted task %s", task_id)

    def clear_completed(self):
        with _MUTATION_LOCK:
            tasks = self.store.load()
            remaining = [t for t in tasks if not t.completed]
            count = len(tasks) - len(remaining)
            self.store.save(remaining)
        logger.info("Cleared %d completed tasks", count)
        return count

    def _find(self, tasks, task_id):
        for task in tasks:
            if task.id == task_id:
                return task
        raise NotFoundError(task_id)


@functools.lru_cache(maxsize=None)
def _service_for_path(path):
    store = JsonTaskStore(path)
    store.ensure_exists()
    return TaskService(store)


def get_task_service():
    return _service_for_path(str(settings.TASKS_DATA_FILE))
