"""Enumerations shared by tasks, notifications and the activity log."""

from __future__ import annotations

from enum import Enum


class Priority(str, Enum):
    HIGH = "High"
    MEDIUM = "Medium"
    LOW = "Low"


class Status(str, Enum):
    NOT_STARTED = "Not Started"
    IN_PROGRESS = "In Progress"
    COMPLETED = "Completed"
    DEFERRED = "Deferred"


class Currency(str, Enum):
    USD = "USD"
    MXN = "MXN"


class Language(str, Enum):
    ES = "es"
    EN = "en"


class NotificationType(str, Enum):
    ALERT = "alert"
    INFO = "info"
    SUCCESS = "success"


class LogLevel(str, Enum):
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    SUCCESS = "success"


class LogCategory(str, Enum):
    SYSTEM = "System"
    VOICE_AI = "VoiceAI"
    TASK = "Task"
    NETWORK = "Network"


class Quadrant(str, Enum):
    """Eisenhower matrix quadrants, in display order."""

    DO_FIRST = "do_first"
    SCHEDULE = "schedule"
    DELEGATE = "delegate"
    ELIMINATE = "eliminate"


class KpiRange(str, Enum):
    WEEK = "week"
    MONTH = "month"
    YEAR = "year"


class CalendarMode(str, Enum):
    DAY = "day"
    WEEK = "week"
    MONTH = "month"
