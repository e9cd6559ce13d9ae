"""Task operations on top of a TaskStore.

The service owns the rules the views rely on: completion dates are stamped
and cleared with status changes, timers accumulate into ``actual_time``, and
every change lands in the activity log.
"""

from __future__ import annotations

import time
import uuid
from dataclasses import dataclass
from datetime import date, datetime

from trantor.errors import TaskStoreError
from trantor.i18n import format_duration
from trantor.models import (
    Comment,
    Language,
    LogCategory,
    Quadrant,
    Status,
    Task,
    TaskCreate,
    TaskUpdate,
)
from trantor.services.activity_log import ActivityLog
from trantor.services.notifications import NotificationCenter
from trantor.store.base import TaskStore
from trantor.views.task_views import QUADRANT_FLAGS

MS_PER_HOUR = 1000 * 60 * 60


def now_ms() -> int:
    return int(time.time() * 1000)


@dataclass
class TimerSnapshot:
    display_hours: float
    display: str
    estimated_hours: float
    progress_percent: float
    over_budget: bool
    running: bool


def timer_snapshot(task: Task, now: int | None = None) -> TimerSnapshot:
    """Live timer reading: stored actual time plus the running interval."""
    elapsed = 0.0
    if task.is_timer_running and task.timer_start_time is not None:
        now = now_ms() if now is None else now
        elapsed = (now - task.timer_start_time) / MS_PER_HOUR
    shown = (task.actual_time or 0) + elapsed
    estimated = task.estimated_time or 0
    progress = min(100.0, shown / estimated * 100) if estimated > 0 else 0.0
    return TimerSnapshot(
        display_hours=shown,
        display=format_duration(shown),
        estimated_hours=estimated,
        progress_percent=progress,
        over_budget=estimated > 0 and shown > estimated,
        running=task.is_timer_running,
    )


class TaskService:
    def __init__(
        self,
        store: TaskStore,
        activity_log: ActivityLog,
        notifications: NotificationCenter | None = None,
    ) -> None:
        self.store = store
        self.log = activity_log
        self.notifications = notifications

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def list_tasks(self) -> list[Task]:
        try:
            return self.store.list()
        except TaskStoreError as e:
            self.log.error(LogCategory.SYSTEM, "Failed to fetch tasks", str(e))
            raise

    def get_task(self, task_id: str) -> Task:
        return self.store.get(task_id)

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def create_task(self, data: TaskCreate, language: Language | str = Language.ES) -> Task:
        try:
            task = self.store.insert(data)
        except TaskStoreError as e:
            self.log.error(LogCategory.TASK, f"Failed to create task: {data.title}", str(e))
            raise
        self.log.success(LogCategory.TASK, f"Task created: {task.title}", task.model_dump(mode="json"))
        if self.notifications is not None:
            self.notifications.push_new_task(task, language)
        return task

    def update_task(self, task_id: str, updates: TaskUpdate | dict, today: date | None = None) -> Task:
        if isinstance(updates, TaskUpdate):
            changes = updates.changes()
        else:
            changes = TaskUpdate.model_validate(updates).changes()
        if not changes:
            return self.store.get(task_id)

        if "status" in changes:
            current = self.store.get(task_id)
            completing = changes["status"] == Status.COMPLETED.value
            was_completed = current.status == Status.COMPLETED
            if completing and not was_completed and not changes.get("completed_at"):
                changes["completed_at"] = (today or date.today()).isoformat()
            elif not completing and was_completed:
                changes["completed_at"] = None

        try:
            return self.store.update(task_id, changes)
        except TaskStoreError as e:
            self.log.error(LogCategory.TASK, f"Failed to update task: {task_id}", str(e))
            raise

    def delete_task(self, task_id: str) -> None:
        try:
            self.store.delete(task_id)
        except TaskStoreError as e:
            self.log.error(LogCategory.TASK, f"Failed to delete task: {task_id}", str(e))
            raise
        self.log.warning(LogCategory.TASK, f"Task deleted: {task_id}")

    def toggle_complete(self, task_id: str, today: date | None = None) -> Task:
        task = self.store.get(task_id)
        target = Status.NOT_STARTED if task.status == Status.COMPLETED else Status.COMPLETED
        return self.update_task(task_id, {"status": target}, today=today)

    def move_to_status(self, task_id: str, status: Status, today: date | None = None) -> Task:
        task = self.store.get(task_id)
        if task.status == status:
            return task
        return self.update_task(task_id, {"status": status}, today=today)

    def move_to_quadrant(self, task_id: str, quadrant: Quadrant) -> Task:
        urgent, important = QUADRANT_FLAGS[Quadrant(quadrant)]
        task = self.store.get(task_id)
        if task.is_urgent == urgent and task.is_important == important:
            return task
        return self.update_task(task_id, {"is_urgent": urgent, "is_important": important})

    def add_comment(self, task_id: str, text: str, author: str, avatar: str | None = None) -> Task:
        task = self.store.get(task_id)
        comment = Comment(
            id=str(uuid.uuid4()),
            text=text,
            author=author,
            created_at=datetime.now().isoformat(timespec="seconds"),
            avatar=avatar,
        )
        return self.update_task(task_id, TaskUpdate(comments=[*task.comments, comment]))

    # ------------------------------------------------------------------
    # Time tracking
    # ------------------------------------------------------------------

    def start_timer(self, task_id: str, now: int | None = None) -> Task:
        task = self.store.get(task_id)
        if task.is_timer_running:
            return task
        start = now_ms() if now is None else now
        return self.update_task(task_id, TaskUpdate(is_timer_running=True, timer_start_time=start))

    def stop_timer(self, task_id: str, now: int | None = None) -> Task:
        task = self.store.get(task_id)
        if not task.is_timer_running:
            return task
        now = now_ms() if now is None else now
        start = now if task.timer_start_time is None else task.timer_start_time
        elapsed = (now - start) / MS_PER_HOUR
        actual = round((task.actual_time or 0) + elapsed, 4)
        return self.update_task(
            task_id,
            TaskUpdate(is_timer_running=False, timer_start_time=None, actual_time=actual),
        )
