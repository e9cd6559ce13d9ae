from trantor.models.enums import (
    CalendarMode,
    Currency,
    KpiRange,
    Language,
    LogCategory,
    LogLevel,
    NotificationType,
    Priority,
    Quadrant,
    Status,
)
from trantor.models.events import LogEntry, Notification
from trantor.models.task import Comment, Task, TaskCreate, TaskUpdate
from trantor.models.user import (
    AuthSession,
    Preferences,
    PreferencesUpdate,
    ProfileUpdate,
    User,
)

__all__ = [
    "AuthSession",
    "CalendarMode",
    "Comment",
    "Currency",
    "KpiRange",
    "Language",
    "LogCategory",
    "LogEntry",
    "LogLevel",
    "Notification",
    "NotificationType",
    "Preferences",
    "PreferencesUpdate",
    "Priority",
    "ProfileUpdate",
    "Quadrant",
    "Status",
    "Task",
    "TaskCreate",
    "TaskUpdate",
    "User",
]
