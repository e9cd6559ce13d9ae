"""Read models over a task list: search, due state, matrix, board and calendar."""

from __future__ import annotations

import calendar as _calendar
from datetime import date, timedelta
from typing import Literal

from pydantic import BaseModel

from trantor.i18n import long_date, month_label, short_month, short_weekday, t
from trantor.models import CalendarMode, Language, Quadrant, Status, Task

DueStatus = Literal["completed", "none", "overdue", "today", "upcoming"]


def filter_tasks(tasks: list[Task], query: str = "", show_completed: bool = False) -> list[Task]:
    """Case-insensitive search over title and description."""
    needle = query.lower()
    return [
        task for task in tasks
        if (needle in task.title.lower() or needle in task.description.lower())
        and (show_completed or task.status != Status.COMPLETED)
    ]


def due_status(task: Task, today: date | None = None) -> DueStatus:
    if task.status == Status.COMPLETED:
        return "completed"
    if not task.due_date:
        return "none"
    today_str = (today or date.today()).isoformat()
    if task.due_date < today_str:
        return "overdue"
    if task.due_date == today_str:
        return "today"
    return "upcoming"


# ---------------------------------------------------------------------------
# Eisenhower matrix
# ---------------------------------------------------------------------------

QUADRANT_FLAGS: dict[Quadrant, tuple[bool, bool]] = {
    # quadrant → (is_urgent, is_important)
    Quadrant.DO_FIRST: (True, True),
    Quadrant.SCHEDULE: (False, True),
    Quadrant.DELEGATE: (True, False),
    Quadrant.ELIMINATE: (False, False),
}


class MatrixQuadrant(BaseModel):
    id: Quadrant
    title: str
    is_urgent: bool
    is_important: bool
    tasks: list[Task]


def quadrant_of(task: Task) -> Quadrant:
    if task.is_urgent and task.is_important:
        return Quadrant.DO_FIRST
    if task.is_important:
        return Quadrant.SCHEDULE
    if task.is_urgent:
        return Quadrant.DELEGATE
    return Quadrant.ELIMINATE


def eisenhower_matrix(tasks: list[Task], language: Language | str = Language.ES) -> list[MatrixQuadrant]:
    titles = t(language)["matrix"]
    buckets: dict[Quadrant, list[Task]] = {q: [] for q in Quadrant}
    for task in tasks:
        buckets[quadrant_of(task)].append(task)
    return [
        MatrixQuadrant(
            id=q,
            title=titles[q.value],
            is_urgent=QUADRANT_FLAGS[q][0],
            is_important=QUADRANT_FLAGS[q][1],
            tasks=buckets[q],
        )
        for q in Quadrant
    ]


# ---------------------------------------------------------------------------
# Kanban board
# ---------------------------------------------------------------------------

class BoardColumn(BaseModel):
    status: Status
    title: str
    tasks: list[Task]


def kanban_board(tasks: list[Task], language: Language | str = Language.ES) -> list[BoardColumn]:
    labels = t(language)["status"]
    return [
        BoardColumn(
            status=status,
            title=labels[status],
            tasks=[task for task in tasks if task.status == status],
        )
        for status in Status
    ]


# ---------------------------------------------------------------------------
# Calendar
# ---------------------------------------------------------------------------

class CalendarCell(BaseModel):
    day: date
    is_today: bool
    tasks: list[Task]


class CalendarView(BaseModel):
    mode: CalendarMode
    anchor: date
    label: str
    # Sunday-first short weekday headers
    weekdays: list[str]
    # Month mode pads the first week with ``None`` up to the first weekday
    cells: list[CalendarCell | None]


def week_start(day: date) -> date:
    """Sunday on or before *day*."""
    return day - timedelta(days=(day.weekday() + 1) % 7)


def _cell(day: date, tasks: list[Task], today: date) -> CalendarCell:
    iso = day.isoformat()
    return CalendarCell(
        day=day,
        is_today=day == today,
        tasks=[task for task in tasks if task.due_date == iso],
    )


def calendar(
    tasks: list[Task],
    mode: CalendarMode | str = CalendarMode.DAY,
    anchor: date | None = None,
    language: Language | str = Language.ES,
    today: date | None = None,
) -> CalendarView:
    mode = CalendarMode(mode)
    today = today or date.today()
    anchor = anchor or today
    sunday = week_start(today)
    weekdays = [short_weekday(sunday + timedelta(days=i), language) for i in range(7)]

    if mode == CalendarMode.MONTH:
        first = anchor.replace(day=1)
        days_in_month = _calendar.monthrange(first.year, first.month)[1]
        padding = (first.weekday() + 1) % 7
        cells: list[CalendarCell | None] = [None] * padding
        cells += [_cell(first + timedelta(days=i), tasks, today) for i in range(days_in_month)]
        label = month_label(anchor, language)
    elif mode == CalendarMode.WEEK:
        start = week_start(anchor)
        end = start + timedelta(days=6)
        cells = [_cell(start + timedelta(days=i), tasks, today) for i in range(7)]
        label = f"{_short_date(start, language)} - {_short_date(end, language)}"
    else:
        cells = [_cell(anchor, tasks, today)]
        label = long_date(anchor, language)

    return CalendarView(mode=mode, anchor=anchor, label=label, weekdays=weekdays, cells=cells)


def _short_date(day: date, language: Language | str) -> str:
    if Language(language) == Language.ES:
        return f"{day.day} {short_month(day, language)}"
    return f"{short_month(day, language)} {day.day}"


def shift_anchor(anchor: date, mode: CalendarMode | str, step: int) -> date:
    """Move the calendar by *step* months, weeks or days."""
    mode = CalendarMode(mode)
    if mode == CalendarMode.WEEK:
        return anchor + timedelta(weeks=step)
    if mode == CalendarMode.DAY:
        return anchor + timedelta(days=step)
    month_index = anchor.month - 1 + step
    year = anchor.year + month_index // 12
    month = month_index % 12 + 1
    # Clamp to the target month's length (Jan 31 → Feb 28)
    day = min(anchor.day, _calendar.monthrange(year, month)[1])
    return anchor.replace(year=year, month=month, day=day)
