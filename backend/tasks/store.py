# backend/tasks/store.py
"""
Flat-file persistence for the task collection.

The whole collection is one JSON array. Every save rewrites the file:
the new content goes to a temp file next to the target which is then
renamed over it, so readers never see a half-written file.
"""
import json
import logging
import os
import tempfile
from pathlib import Path

from .exceptions import StorageError
from .models import Task

logger = logging.getLogger(__name__)


class JsonTaskStore:
    def __init__(self, path):
        self.path = Path(path)

    def ensure_exists(self):
        """Create the data directory and an empty collection if missing."""
        if self.path.exists():
            return
        self.save([])
        logger.info("Initialized task store at %s", self.path)

    def load(self):
        if not self.path.exists():
            return []
        try:
            with self.path.open("r", encoding="utf-8") as f:
                data = json.load(f)
            if not isinstance(data, list):
                raise ValueError("expected a JSON array of tasks")
        except (OSError, ValueError) as e:
            # unreadable state reads as an empty list, never fails the caller
            logger.warning("Could not read task store %s: %s", self.path, e)
            return []

        tasks = []
        for index, item in enumerate(data):
            try:
                tasks.append(Task.from_dict(item))
            except (KeyError, TypeError, AttributeError) as e:
                logger.warning("Skipping malformed task #%d in %s: %r", index, self.path, e)
        return tasks

    def save(self, tasks):
        payload = [t.to_dict() for t in tasks]
        tmp_name = None
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                dir=self.path.parent, prefix=f".{self.path.name}.", suffix=".tmp"
            )
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(payload, f, indent=2)
            os.replace(tmp_name, self.path)
        except (OSError, TypeError, ValueError) as e:
            logger.error("Could not write task store %s: %s", self.path, e)
            if tmp_name and os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise StorageError(f"Failed to save tasks: {e}") from e
