from trantor.views.analytics import Dashboard, KpiReport, dashboard, kpi_report, range_bounds
from trantor.views.task_views import (
    BoardColumn,
    CalendarView,
    MatrixQuadrant,
    calendar,
    due_status,
    eisenhower_matrix,
    filter_tasks,
    kanban_board,
    quadrant_of,
    shift_anchor,
    week_start,
)

__all__ = [
    "BoardColumn",
    "CalendarView",
    "Dashboard",
    "KpiReport",
    "MatrixQuadrant",
    "calendar",
    "dashboard",
    "due_status",
    "eisenhower_matrix",
    "filter_tasks",
    "kanban_board",
    "kpi_report",
    "quadrant_of",
    "range_bounds",
    "shift_anchor",
    "week_start",
]
