# backend/tasks/models.py
from dataclasses import dataclass, asdict
from typing import Optional
import datetime
import uuid

# low / medium / high are what the client offers; not enforced here
PRIORITY_MEDIUM = "medium"


def new_task_id():
    return str(uuid.uuid4())


def utc_now():
    # same shape as JS Date.toISOString(): 2026-01-01T12:00:00.000Z
    now = datetime.datetime.now(datetime.timezone.utc)
    return now.isoformat(timespec="milliseconds").replace("+00:00", "Z")


@dataclass
class Task:
    """
    A single to-do item. Field names are the JSON keys stored on disk
    and returned by the API.
    """
    id: str
    title: str
    createdAt: str
    completed: bool = False
    priority: str = PRIORITY_MEDIUM
    dueDate: Optional[str] = None
    completedAt: Optional[str] = None
    updatedAt: Optional[str] = None

    def to_dict(self):
        return asdict(self)

    @classmethod
    def from_dict(cls, data):
        return cls(
            id=str(data["id"]),
            title=data["title"],
            createdAt=data.get("createdAt"),
            completed=bool(data.get("completed", False)),
            priority=data.get("priority") or PRIORITY_MEDIUM,
            dueDate=data.get("dueDate"),
            completedAt=data.get("completedAt"),
            updatedAt=data.get("updatedAt"),
        )

    def __str__(self):
        return self.title
