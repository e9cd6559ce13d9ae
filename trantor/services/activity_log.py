"""Rolling in-memory activity log.

Every entry is mirrored to the ``trantor`` logger so the same events show up
in the server output; the buffer itself backs the System Log view.
"""

from __future__ import annotations

import logging
import random
import string
import threading
import time
from collections import deque
from datetime import datetime
from typing import Any

from trantor.models import LogCategory, LogEntry, LogLevel

logger = logging.getLogger("trantor")

_PY_LEVELS = {
    LogLevel.INFO: logging.INFO,
    LogLevel.SUCCESS: logging.INFO,
    LogLevel.WARNING: logging.WARNING,
    LogLevel.ERROR: logging.ERROR,
}

_ID_ALPHABET = string.digits + string.ascii_lowercase


def _entry_id() -> str:
    suffix = "".join(random.choices(_ID_ALPHABET, k=5))
    return f"{int(time.time() * 1000)}{suffix}"


class ActivityLog:
    """Newest-first buffer capped at *max_entries*."""

    def __init__(self, max_entries: int = 100) -> None:
        self._entries: deque[LogEntry] = deque(maxlen=max_entries)
        self._lock = threading.Lock()

    def add(
        self,
        level: LogLevel | str,
        category: LogCategory | str,
        message: str,
        details: Any = None,
    ) -> LogEntry:
        level = LogLevel(level)
        category = LogCategory(category)
        entry = LogEntry(
            id=_entry_id(),
            timestamp=datetime.now().strftime("%H:%M:%S"),
            level=level,
            category=category,
            message=message,
            details=details,
        )
        if details is not None:
            logger.log(_PY_LEVELS[level], "[%s] %s %s", category.value, message, details)
        else:
            logger.log(_PY_LEVELS[level], "[%s] %s", category.value, message)
        with self._lock:
            self._entries.appendleft(entry)
        return entry

    def info(self, category: LogCategory | str, message: str, details: Any = None) -> LogEntry:
        return self.add(LogLevel.INFO, category, message, details)

    def success(self, category: LogCategory | str, message: str, details: Any = None) -> LogEntry:
        return self.add(LogLevel.SUCCESS, category, message, details)

    def warning(self, category: LogCategory | str, message: str, details: Any = None) -> LogEntry:
        return self.add(LogLevel.WARNING, category, message, details)

    def error(self, category: LogCategory | str, message: str, details: Any = None) -> LogEntry:
        return self.add(LogLevel.ERROR, category, message, details)

    def entries(self) -> list[LogEntry]:
        with self._lock:
            return list(self._entries)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)
