"""Localised strings and date/number formatting for the two supported languages."""

from __future__ import annotations

import math
from datetime import date

from trantor.models.enums import Currency, Language, Priority, Status

TRANSLATIONS: dict[Language, dict] = {
    Language.EN: {
        "status": {
            Status.NOT_STARTED: "Not Started",
            Status.IN_PROGRESS: "In Progress",
            Status.COMPLETED: "Completed",
            Status.DEFERRED: "Deferred",
        },
        "priority": {
            Priority.HIGH: "High",
            Priority.MEDIUM: "Medium",
            Priority.LOW: "Low",
        },
        "welcome_title": "Welcome to Trantor!",
        "welcome_msg": "Your task management system is ready.",
        "overdue_title": "Task Overdue",
        "due_today_title": "Due Today",
        "new_task_title": "New Task Created",
        "tts": {"prefix": "Task:", "priority": "Priority", "due": "Due on", "desc": "Details:"},
        "task_added": "Task added successfully",
        "api_key_missing": "API Key missing",
        "untitled": "Untitled",
        "matrix": {
            "do_first": "Do First",
            "schedule": "Schedule",
            "delegate": "Delegate",
            "eliminate": "Eliminate",
        },
        "weekdays": ["Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday"],
        "weekdays_short": ["Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun"],
        "months": [
            "January", "February", "March", "April", "May", "June",
            "July", "August", "September", "October", "November", "December",
        ],
        "months_short": [
            "Jan", "Feb", "Mar", "Apr", "May", "Jun",
            "Jul", "Aug", "Sep", "Oct", "Nov", "Dec",
        ],
        "kpi": {
            "current_week": "Current Week",
            "current_month": "Current Month",
            "current_year": "Current Year",
        },
    },
    Language.ES: {
        "status": {
            Status.NOT_STARTED: "No Iniciada",
            Status.IN_PROGRESS: "En Progreso",
            Status.COMPLETED: "Completada",
            Status.DEFERRED: "Diferida",
        },
        "priority": {
            Priority.HIGH: "Alta",
            Priority.MEDIUM: "Media",
            Priority.LOW: "Baja",
        },
        "welcome_title": "¡Bienvenido a Trantor!",
        "welcome_msg": "Tu sistema de gestión de tareas está listo.",
        "overdue_title": "Tarea Vencida",
        "due_today_title": "Vence Hoy",
        "new_task_title": "Nueva Tarea Creada",
        "tts": {"prefix": "Tarea:", "priority": "Prioridad", "due": "Vence el", "desc": "Detalles:"},
        "task_added": "Tarea agregada correctamente",
        "api_key_missing": "Falta API Key",
        "untitled": "Sin título",
        "matrix": {
            "do_first": "Hacer Primero",
            "schedule": "Agendar",
            "delegate": "Delegar",
            "eliminate": "Eliminar",
        },
        "weekdays": ["lunes", "martes", "miércoles", "jueves", "viernes", "sábado", "domingo"],
        "weekdays_short": ["lun", "mar", "mié", "jue", "vie", "sáb", "dom"],
        "months": [
            "enero", "febrero", "marzo", "abril", "mayo", "junio",
            "julio", "agosto", "septiembre", "octubre", "noviembre", "diciembre",
        ],
        "months_short": [
            "ene", "feb", "mar", "abr", "may", "jun",
            "jul", "ago", "sept", "oct", "nov", "dic",
        ],
        "kpi": {
            "current_week": "Semana Actual",
            "current_month": "Mes Actual",
            "current_year": "Año Actual",
        },
    },
}


def t(language: Language | str) -> dict:
    return TRANSLATIONS[Language(language)]


def get_locale(language: Language | str) -> str:
    return "es-MX" if Language(language) == Language.ES else "en-US"


def speech_language_name(language: Language | str) -> str:
    return "Spanish" if Language(language) == Language.ES else "English"


def parse_iso_date(value: str) -> date:
    """Parse the ``YYYY-MM-DD`` prefix of *value* as a calendar date (no timezone shift)."""
    return date.fromisoformat(value[:10])


def short_weekday(day: date, language: Language | str) -> str:
    return t(language)["weekdays_short"][day.weekday()]


def short_month(day: date, language: Language | str) -> str:
    return t(language)["months_short"][day.month - 1]


def spoken_date(value: str, language: Language | str) -> str:
    """Render a due date the way it is read aloud.

    ``"2026-01-05"`` becomes ``"Monday, January 5"`` or ``"lunes, 5 de enero"``.
    Values that do not parse are returned unchanged.
    """
    if not value:
        return value
    try:
        day = parse_iso_date(value)
    except ValueError:
        return value
    strings = t(language)
    weekday = strings["weekdays"][day.weekday()]
    month = strings["months"][day.month - 1]
    if Language(language) == Language.ES:
        return f"{weekday}, {day.day} de {month}"
    return f"{weekday}, {month} {day.day}"


def long_date(day: date, language: Language | str) -> str:
    """Header label for a single day, e.g. ``"Monday, January 5"``."""
    return spoken_date(day.isoformat(), language)


def month_label(day: date, language: Language | str) -> str:
    month = t(language)["months"][day.month - 1]
    if Language(language) == Language.ES:
        return f"{month} de {day.year}"
    return f"{month} {day.year}"


def format_currency(amount: float, currency: Currency | str) -> str:
    """``$1,234.50 MXN``; es-MX and en-US group digits the same way."""
    return f"${amount:,.2f} {Currency(currency).value}"


def format_duration(total_hours: float) -> str:
    """Fractional hours as ``HH:MM:SS``."""
    hours = math.floor(total_hours)
    minutes = math.floor((total_hours - hours) * 60)
    seconds = math.floor(((total_hours - hours) * 60 - minutes) * 60)
    return f"{hours:02d}:{minutes:02d}:{seconds:02d}"
