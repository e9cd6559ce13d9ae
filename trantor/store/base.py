"""Task storage interface."""

from __future__ import annotations

from typing import Any, Protocol

from trantor.models import Task, TaskCreate


class TaskStore(Protocol):
    """Backend holding the task table.

    ``list()`` returns tasks newest first. ``update()`` receives JSON-ready
    column values and returns the stored task after the change.
    """

    def list(self) -> list[Task]: ...

    def get(self, task_id: str) -> Task: ...

    def insert(self, data: TaskCreate) -> Task: ...

    def update(self, task_id: str, fields: dict[str, Any]) -> Task: ...

    def delete(self, task_id: str) -> None: ...
