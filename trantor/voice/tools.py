"""Task tools the voice model can call, and their dispatch.

The same ``add_task`` / ``list_tasks`` actions back the text assistant's
langchain tools, so both assistants create tasks with identical defaults.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Any

from google.genai import types

from trantor.errors import TrantorError
from trantor.i18n import spoken_date, t
from trantor.models import (
    Currency,
    Language,
    LogCategory,
    Priority,
    Status,
    Task,
    TaskCreate,
)
from trantor.services.activity_log import ActivityLog
from trantor.services.task_service import TaskService

ADD_TASK = "addTask"
LIST_TASKS = "listTasks"

ADD_TASK_DECLARATION = types.FunctionDeclaration(
    name=ADD_TASK,
    description=(
        "Add a new task. Differentiate between title, description, priority, "
        "due date, and estimated duration."
    ),
    parameters=types.Schema(
        type=types.Type.OBJECT,
        properties={
            "title": types.Schema(
                type=types.Type.STRING,
                description='The main subject of the task. Keep it brief (e.g. "Buy Groceries", "Email Client").',
            ),
            "description": types.Schema(
                type=types.Type.STRING,
                description=(
                    "Detailed instructions, context, or notes provided by the user. "
                    "If the user provides a long sentence, extract the details here "
                    '(e.g. "from the store on Main St").'
                ),
            ),
            "priority": types.Schema(
                type=types.Type.STRING,
                enum=[p.value for p in Priority],
                description="Priority level of the task.",
            ),
            "dueDate": types.Schema(
                type=types.Type.STRING,
                description="Due date in YYYY-MM-DD format.",
            ),
        },
        required=["title"],
    ),
)

LIST_TASKS_DECLARATION = types.FunctionDeclaration(
    name=LIST_TASKS,
    description="List or read the current pending tasks.",
    parameters=types.Schema(
        type=types.Type.OBJECT,
        properties={
            "status": types.Schema(
                type=types.Type.STRING,
                enum=[s.value for s in Status],
                description="Filter by status",
            ),
        },
    ),
)

TOOL_DECLARATIONS = [ADD_TASK_DECLARATION, LIST_TASKS_DECLARATION]


def add_task(
    service: TaskService,
    language: Language | str,
    title: str,
    description: str | None = None,
    priority: str | None = None,
    due_date: str | None = None,
    today: date | None = None,
) -> tuple[Task, dict[str, Any]]:
    """Create a task from a tool call; returns the task and the model-facing result."""
    data = TaskCreate(
        title=title,
        description=description or "",
        priority=Priority(priority) if priority else Priority.MEDIUM,
        due_date=due_date or (today or date.today()).isoformat(),
        status=Status.NOT_STARTED,
        assignee="Me",
        currency=Currency.USD,
        estimated_cost=0,
    )
    task = service.create_task(data, language)
    return task, {"message": t(language)["task_added"]}


def list_tasks(service: TaskService, language: Language | str, status: str | None = None) -> dict[str, Any]:
    """Pending tasks with localised priority and a spoken due date."""
    labels = t(language)["priority"]
    pending = [task for task in service.list_tasks() if task.status != Status.COMPLETED]
    if status:
        pending = [task for task in pending if task.status == Status(status)]
    return {
        "count": len(pending),
        "tasks": [
            {
                "title": task.title,
                "priority": labels.get(task.priority, task.priority.value),
                "dueDate": spoken_date(task.due_date, language),
            }
            for task in pending
        ],
    }


@dataclass
class ToolOutcome:
    id: str | None
    name: str
    result: dict[str, Any]
    created: Task | None = None


@dataclass
class ToolDispatcher:
    """Runs tool calls for one voice session, skipping ids it has already handled."""

    service: TaskService
    log: ActivityLog
    language: Language | str = Language.ES
    processed_ids: set[str] = field(default_factory=set)

    def reset(self) -> None:
        self.processed_ids.clear()

    def dispatch(self, call_id: str | None, name: str, args: dict[str, Any] | None = None) -> ToolOutcome | None:
        """Execute one call. Returns ``None`` for a duplicate id."""
        if call_id is not None:
            if call_id in self.processed_ids:
                return None
            self.processed_ids.add(call_id)
        args = dict(args or {})
        self.log.info(LogCategory.VOICE_AI, f"Processing Tool: {name}", args)

        if name == ADD_TASK:
            title = args.get("title")
            if not title:
                return ToolOutcome(call_id, name, {"error": "Missing required argument: title"})
            try:
                task, result = add_task(
                    self.service,
                    self.language,
                    title=title,
                    description=args.get("description"),
                    priority=args.get("priority"),
                    due_date=args.get("dueDate"),
                )
            except (ValueError, TrantorError) as e:
                self.log.error(LogCategory.VOICE_AI, f"Tool {name} failed", str(e))
                return ToolOutcome(call_id, name, {"error": str(e)})
            return ToolOutcome(call_id, name, result, created=task)

        if name == LIST_TASKS:
            try:
                return ToolOutcome(call_id, name, list_tasks(self.service, self.language, args.get("status")))
            except (ValueError, TrantorError) as e:
                self.log.error(LogCategory.VOICE_AI, f"Tool {name} failed", str(e))
                return ToolOutcome(call_id, name, {"error": str(e)})

        self.log.warning(LogCategory.VOICE_AI, f"Unknown tool: {name}")
        return ToolOutcome(call_id, name, {"error": f"Unknown tool: {name}"})
