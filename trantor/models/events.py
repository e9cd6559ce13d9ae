"""Notification and activity-log records."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel

from trantor.models.enums import LogCategory, LogLevel, NotificationType


class Notification(BaseModel):
    id: str
    title: str
    message: str
    type: NotificationType
    is_read: bool = False
    timestamp: datetime


class LogEntry(BaseModel):
    id: str
    timestamp: str
    level: LogLevel
    category: LogCategory
    message: str
    details: Any = None
