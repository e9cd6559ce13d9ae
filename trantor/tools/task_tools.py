"""Task tools for the text assistant.

Thin langchain wrappers over the voice tool actions, so typed and spoken
requests create tasks the same way.
"""

from __future__ import annotations

import json
from contextvars import ContextVar

from langchain_core.tools import tool

from trantor.errors import TrantorError
from trantor.models import Language
from trantor.services.task_service import TaskService
from trantor.voice import tools as voice_tools

# Set per request by the API before the agent runs
_service: ContextVar[TaskService | None] = ContextVar("task_service", default=None)
_language: ContextVar[Language] = ContextVar("task_language", default=Language.ES)


def set_task_service(service: TaskService, language: Language | str = Language.ES) -> None:
    _service.set(service)
    _language.set(Language(language))


def get_task_service() -> TaskService:
    service = _service.get()
    if service is None:
        raise RuntimeError("Task service not initialized. Call set_task_service() first.")
    return service


@tool
def add_task(
    title: str,
    description: str = "",
    priority: str = "Medium",
    due_date: str = "",
) -> str:
    """Add a new task.

    Keep the title brief and put any extra context in the description.

    Args:
        title: The main subject of the task (e.g. "Buy Groceries")
        description: Detailed instructions or notes from the user
        priority: One of High, Medium, Low
        due_date: Due date in YYYY-MM-DD format; empty means today
    """
    try:
        _, result = voice_tools.add_task(
            get_task_service(),
            _language.get(),
            title=title,
            description=description,
            priority=priority or None,
            due_date=due_date or None,
        )
    except (ValueError, TrantorError) as e:
        return f"Error: {e}"
    return result["message"]


@tool
def list_tasks(status: str = "") -> str:
    """List the current pending tasks.

    Args:
        status: Optional status filter (Not Started, In Progress, Deferred)
    """
    try:
        result = voice_tools.list_tasks(get_task_service(), _language.get(), status or None)
    except (ValueError, TrantorError) as e:
        return f"Error: {e}"
    return json.dumps(result, ensure_ascii=False)


ALL_TASK_TOOLS = [add_task, list_tasks]
