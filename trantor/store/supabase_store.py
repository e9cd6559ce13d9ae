"""Supabase-backed task store.

Rows live in a single table (``tasks_tasks`` by default). Column names are the
snake_case task field names, so the row mapping only has to deal with enum
values, nested comments and nulls coming back from Postgres.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx
from postgrest.exceptions import APIError
from pydantic import ValidationError
from supabase import Client

from trantor.errors import TaskNotFoundError, TaskStoreError
from trantor.models import Task, TaskCreate, TaskUpdate

logger = logging.getLogger("trantor")

# Columns written on insert; server-side defaults fill id and created_at.
INSERT_COLUMNS = (
    "title", "description", "priority", "status", "due_date", "assignee",
    "related_to", "estimated_cost", "actual_cost", "currency",
    "estimated_time", "actual_time", "is_urgent", "is_important", "comments",
)


def task_to_row(data: TaskCreate) -> dict[str, Any]:
    dumped = data.model_dump(mode="json")
    return {col: dumped[col] for col in INSERT_COLUMNS}


def update_to_row(update: TaskUpdate) -> dict[str, Any]:
    """Columns for a partial update: only the fields that were set."""
    return update.changes()


def row_to_task(row: dict[str, Any]) -> Task:
    cleaned = dict(row)
    if cleaned.get("description") is None:
        cleaned["description"] = ""
    if cleaned.get("assignee") is None:
        cleaned["assignee"] = ""
    cleaned["comments"] = cleaned.get("comments") or []
    for flag in ("is_urgent", "is_important", "is_timer_running"):
        cleaned[flag] = bool(cleaned.get(flag))
    cleaned["id"] = str(cleaned["id"])
    if cleaned.get("created_at") is not None:
        cleaned["created_at"] = str(cleaned["created_at"])
    return Task.model_validate(cleaned)


class SupabaseTaskStore:
    def __init__(self, client: Client, table: str = "tasks_tasks") -> None:
        self.client = client
        self.table = table

    def _query(self):
        return self.client.table(self.table)

    def _execute(self, request, action: str) -> list[dict[str, Any]]:
        try:
            response = request.execute()
        except (APIError, httpx.HTTPError) as e:
            logger.error("Supabase %s failed: %s", action, e)
            raise TaskStoreError(f"Failed to {action}: {e}") from e
        return response.data or []

    def _to_tasks(self, rows: list[dict[str, Any]]) -> list[Task]:
        try:
            return [row_to_task(row) for row in rows]
        except ValidationError as e:
            raise TaskStoreError(f"Malformed task row: {e}") from e

    def list(self) -> list[Task]:
        rows = self._execute(
            self._query().select("*").order("created_at", desc=True),
            "fetch tasks",
        )
        return self._to_tasks(rows)

    def get(self, task_id: str) -> Task:
        rows = self._execute(
            self._query().select("*").eq("id", task_id).limit(1),
            f"fetch task {task_id}",
        )
        if not rows:
            raise TaskNotFoundError(task_id)
        return self._to_tasks(rows)[0]

    def insert(self, data: TaskCreate) -> Task:
        rows = self._execute(
            self._query().insert(task_to_row(data)),
            f"create task {data.title}",
        )
        if not rows:
            raise TaskStoreError(f"Insert of '{data.title}' returned no row")
        return self._to_tasks(rows)[0]

    def update(self, task_id: str, fields: dict[str, Any]) -> Task:
        rows = self._execute(
            self._query().update(fields).eq("id", task_id),
            f"update task {task_id}",
        )
        if not rows:
            raise TaskNotFoundError(task_id)
        return self._to_tasks(rows)[0]

    def delete(self, task_id: str) -> None:
        rows = self._execute(
            self._query().delete().eq("id", task_id),
            f"delete task {task_id}",
        )
        if not rows:
            raise TaskNotFoundError(task_id)
