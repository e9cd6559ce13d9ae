"""In-app notifications derived from the task list."""

from __future__ import annotations

import threading
import time
from datetime import date, datetime

from trantor.i18n import t
from trantor.models import Language, Notification, NotificationType, Status, Task


class NotificationCenter:
    """Per-user notification list, newest first."""

    def __init__(self) -> None:
        self._items: list[Notification] = []
        self._lock = threading.Lock()

    def list(self) -> list[Notification]:
        with self._lock:
            return list(self._items)

    def unread_count(self) -> int:
        return sum(1 for n in self.list() if not n.is_read)

    def refresh(
        self,
        tasks: list[Task],
        language: Language | str,
        today: date | None = None,
    ) -> list[Notification]:
        """Add welcome / overdue / due-today notifications that are not present yet.

        Returns the notifications that were added.
        """
        strings = t(language)
        today_str = (today or date.today()).isoformat()
        now = datetime.now()

        with self._lock:
            existing = {n.id for n in self._items}
            added: list[Notification] = []

            if not self._items:
                added.append(Notification(
                    id="welcome",
                    title=strings["welcome_title"],
                    message=strings["welcome_msg"],
                    type=NotificationType.SUCCESS,
                    timestamp=now,
                ))

            for task in tasks:
                if task.status == Status.COMPLETED or not task.due_date:
                    continue
                if task.due_date < today_str:
                    nid, title, kind = f"overdue-{task.id}", strings["overdue_title"], NotificationType.ALERT
                elif task.due_date == today_str:
                    nid, title, kind = f"today-{task.id}", strings["due_today_title"], NotificationType.INFO
                else:
                    continue
                if nid in existing:
                    continue
                existing.add(nid)
                added.append(Notification(
                    id=nid, title=title, message=task.title, type=kind, timestamp=now,
                ))

            self._items = added + self._items
        return added

    def push_new_task(self, task: Task, language: Language | str) -> Notification:
        notification = Notification(
            id=f"new-{int(time.time() * 1000)}-{task.id}",
            title=t(language)["new_task_title"],
            message=task.title,
            type=NotificationType.SUCCESS,
            timestamp=datetime.now(),
        )
        with self._lock:
            self._items.insert(0, notification)
        return notification

    def mark_all_read(self) -> None:
        with self._lock:
            self._items = [n.model_copy(update={"is_read": True}) for n in self._items]

    def clear(self) -> None:
        with self._lock:
            self._items = []
