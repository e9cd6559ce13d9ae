"""Process-local task store used in development and tests."""

from __future__ import annotations

import threading
import uuid
from datetime import datetime, timezone
from typing import Any

from trantor.errors import TaskNotFoundError
from trantor.models import Task, TaskCreate


class InMemoryTaskStore:
    def __init__(self, tasks: list[Task] | None = None) -> None:
        self._lock = threading.Lock()
        # Newest first, like ``order("created_at", desc=True)``
        self._tasks: list[Task] = list(tasks or [])

    def list(self) -> list[Task]:
        with self._lock:
            return [task.model_copy(deep=True) for task in self._tasks]

    def get(self, task_id: str) -> Task:
        with self._lock:
            return self._find(task_id).model_copy(deep=True)

    def insert(self, data: TaskCreate) -> Task:
        task = Task(
            **data.model_dump(),
            id=str(uuid.uuid4()),
            created_at=datetime.now(tz=timezone.utc).isoformat(),
        )
        with self._lock:
            self._tasks.insert(0, task)
        return task.model_copy(deep=True)

    def update(self, task_id: str, fields: dict[str, Any]) -> Task:
        with self._lock:
            current = self._find(task_id)
            merged = current.model_dump(mode="json") | fields
            updated = Task.model_validate(merged)
            idx = self._tasks.index(current)
            self._tasks[idx] = updated
            return updated.model_copy(deep=True)

    def delete(self, task_id: str) -> None:
        with self._lock:
            self._tasks.remove(self._find(task_id))

    def _find(self, task_id: str) -> Task:
        for task in self._tasks:
            if task.id == task_id:
                return task
        raise TaskNotFoundError(task_id)
