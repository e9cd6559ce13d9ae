"""Dashboard counters and KPI report.

Dates are compared as calendar days (``YYYY-MM-DD`` prefixes), never as
timestamps, so a task due "2026-03-01" belongs to March in every timezone.
"""

from __future__ import annotations

import calendar as _calendar
import math
from datetime import date, timedelta

from pydantic import BaseModel

from trantor.i18n import format_currency, parse_iso_date, short_month, short_weekday, t
from trantor.models import Currency, KpiRange, Language, Priority, Status, Task

PRIORITY_COLORS = {
    Priority.HIGH: "#EF4444",
    Priority.MEDIUM: "#F59E0B",
    Priority.LOW: "#10B981",
}

RECENT_TASKS = 4
HISTORY_DAYS = 7


# ---------------------------------------------------------------------------
# Dashboard
# ---------------------------------------------------------------------------

class DashboardStats(BaseModel):
    total: int
    in_progress: int
    completed: int
    high_priority: int


class HistoryPoint(BaseModel):
    date: str
    name: str
    tasks: int


class Dashboard(BaseModel):
    stats: DashboardStats
    completion_history: list[HistoryPoint]
    recent_tasks: list[Task]


def dashboard(tasks: list[Task], language: Language | str = Language.ES, today: date | None = None) -> Dashboard:
    today = today or date.today()
    stats = DashboardStats(
        total=len(tasks),
        in_progress=sum(1 for task in tasks if task.status == Status.IN_PROGRESS),
        completed=sum(1 for task in tasks if task.status == Status.COMPLETED),
        high_priority=sum(1 for task in tasks if task.priority == Priority.HIGH),
    )
    history = []
    for offset in range(HISTORY_DAYS - 1, -1, -1):
        day = today - timedelta(days=offset)
        iso = day.isoformat()
        history.append(HistoryPoint(
            date=iso,
            name=short_weekday(day, language),
            tasks=sum(
                1 for task in tasks
                if task.status == Status.COMPLETED and task.completed_at == iso
            ),
        ))
    return Dashboard(stats=stats, completion_history=history, recent_tasks=tasks[:RECENT_TASKS])


# ---------------------------------------------------------------------------
# KPIs
# ---------------------------------------------------------------------------

class Efficiency(BaseModel):
    score: int
    estimated_hours: float
    actual_hours: float


class Financials(BaseModel):
    currency: Currency
    budget: float
    executed: float
    budget_display: str
    executed_display: str


class ChartBucket(BaseModel):
    name: str
    created: int
    completed: int
    est_hours: float
    act_hours: float
    budget: float
    actual_cost: float


class PrioritySlice(BaseModel):
    name: str
    value: int
    color: str


class KpiReport(BaseModel):
    range: KpiRange
    label: str
    start: date
    end: date
    total_tasks: int
    completed_tasks: int
    efficiency: Efficiency
    on_time_rate: str
    financials: Financials
    chart: list[ChartBucket]
    priority_distribution: list[PrioritySlice]


def range_bounds(kind: KpiRange | str, today: date | None = None) -> tuple[date, date]:
    """Inclusive bounds: Monday–Sunday week, calendar month or calendar year."""
    kind = KpiRange(kind)
    today = today or date.today()
    if kind == KpiRange.WEEK:
        start = today - timedelta(days=today.weekday())
        return start, start + timedelta(days=6)
    if kind == KpiRange.MONTH:
        last = _calendar.monthrange(today.year, today.month)[1]
        return today.replace(day=1), today.replace(day=last)
    return date(today.year, 1, 1), date(today.year, 12, 31)


def _in_range(value: str | None, start: date, end: date) -> bool:
    if not value:
        return False
    try:
        day = parse_iso_date(value)
    except ValueError:
        return False
    return start <= day <= end


def _completed_between(tasks: list[Task], start: date, end: date) -> list[Task]:
    return [
        task for task in tasks
        if task.status == Status.COMPLETED and _in_range(task.completed_at, start, end)
    ]


def _cost_in(tasks: list[Task], currency: Currency) -> float:
    # Estimated cost doubles as earned value for completed work
    return sum(task.estimated_cost or 0 for task in tasks if task.currency == currency)


def _bucket(name: str, planned: list[Task], completed: list[Task], currency: Currency) -> ChartBucket:
    return ChartBucket(
        name=name,
        created=len(planned),
        completed=len(completed),
        est_hours=sum(task.estimated_time or 0 for task in planned),
        act_hours=sum(task.actual_time or 0 for task in completed),
        budget=_cost_in(planned, currency),
        actual_cost=_cost_in(completed, currency),
    )


def efficiency(completed: list[Task]) -> Efficiency:
    total_est = 0.0
    total_act = 0.0
    for task in completed:
        if task.estimated_time is not None and task.actual_time is not None:
            total_est += task.estimated_time
            total_act += task.actual_time
    score = total_est / (total_act or 1) * 100 if total_est > 0 else 0
    # Round half up: 62.5 scores 63
    return Efficiency(score=math.floor(score + 0.5), estimated_hours=total_est, actual_hours=total_act)


def on_time_rate(completed: list[Task]) -> str:
    if not completed:
        return "0.0"
    on_time = [task for task in completed if task.completed_at and task.completed_at <= task.due_date]
    return f"{len(on_time) / len(completed) * 100:.1f}"


def kpi_report(
    tasks: list[Task],
    kind: KpiRange | str = KpiRange.WEEK,
    currency: Currency | str = Currency.MXN,
    language: Language | str = Language.ES,
    today: date | None = None,
) -> KpiReport:
    kind = KpiRange(kind)
    currency = Currency(currency)
    start, end = range_bounds(kind, today)

    range_tasks = [task for task in tasks if _in_range(task.due_date, start, end)]
    range_completed = _completed_between(tasks, start, end)

    chart: list[ChartBucket] = []
    if kind == KpiRange.YEAR:
        for month in range(1, 13):
            first = date(start.year, month, 1)
            last = first.replace(day=_calendar.monthrange(start.year, month)[1])
            chart.append(_bucket(
                short_month(first, language),
                [task for task in tasks if _in_range(task.due_date, first, last)],
                _completed_between(tasks, first, last),
                currency,
            ))
    else:
        day = start
        while day <= end:
            iso = day.isoformat()
            name = short_weekday(day, language) if kind == KpiRange.WEEK else str(day.day)
            chart.append(_bucket(
                name,
                [task for task in tasks if task.due_date == iso],
                [task for task in tasks if task.status == Status.COMPLETED and task.completed_at == iso],
                currency,
            ))
            day += timedelta(days=1)

    labels = t(language)["priority"]
    distribution = [
        PrioritySlice(
            name=labels[priority],
            value=sum(1 for task in range_tasks if task.priority == priority),
            color=PRIORITY_COLORS[priority],
        )
        for priority in Priority
    ]

    budget = _cost_in(range_tasks, currency)
    executed = _cost_in(range_completed, currency)
    return KpiReport(
        range=kind,
        label=t(language)["kpi"][f"current_{kind.value}"],
        start=start,
        end=end,
        total_tasks=len(range_tasks),
        completed_tasks=len(range_completed),
        efficiency=efficiency(range_completed),
        on_time_rate=on_time_rate(range_completed),
        financials=Financials(
            currency=currency,
            budget=budget,
            executed=executed,
            budget_display=format_currency(budget, currency),
            executed_display=format_currency(executed, currency),
        ),
        chart=chart,
        priority_distribution=distribution,
    )
