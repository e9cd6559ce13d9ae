"""Task and comment records."""

from __future__ import annotations

from pydantic import BaseModel, Field, model_validator

from trantor.models.enums import Currency, Priority, Status


class Comment(BaseModel):
    id: str
    text: str
    author: str
    created_at: str
    avatar: str | None = None


class TaskCreate(BaseModel):
    """Fields accepted when a task is created. ``due_date`` is ``YYYY-MM-DD``."""

    title: str = Field(min_length=1)
    description: str = ""
    priority: Priority = Priority.MEDIUM
    status: Status = Status.NOT_STARTED
    due_date: str
    assignee: str = ""
    related_to: str | None = None
    estimated_cost: float | None = None
    actual_cost: float | None = None
    currency: Currency | None = None
    estimated_time: float | None = None
    actual_time: float | None = None
    is_urgent: bool = False
    is_important: bool = False
    comments: list[Comment] = Field(default_factory=list)


NON_NULLABLE_FIELDS = frozenset({
    "title", "description", "priority", "status", "due_date", "assignee",
    "is_urgent", "is_important", "is_timer_running", "comments",
})


class Task(TaskCreate):
    id: str
    is_timer_running: bool = False
    # Epoch milliseconds
    timer_start_time: int | None = None
    completed_at: str | None = None
    created_at: str | None = None


class TaskUpdate(BaseModel):
    """Partial update; only the fields that were explicitly set are applied.

    Fields in ``NON_NULLABLE_FIELDS`` may be omitted but never sent as null.
    """

    title: str | None = Field(None, min_length=1)
    description: str | None = None
    priority: Priority | None = None
    status: Status | None = None
    due_date: str | None = None
    assignee: str | None = None
    related_to: str | None = None
    estimated_cost: float | None = None
    actual_cost: float | None = None
    currency: Currency | None = None
    estimated_time: float | None = None
    actual_time: float | None = None
    is_urgent: bool | None = None
    is_important: bool | None = None
    is_timer_running: bool | None = None
    timer_start_time: int | None = None
    completed_at: str | None = None
    comments: list[Comment] | None = None

    @model_validator(mode="after")
    def _reject_null_required(self) -> TaskUpdate:
        nulled = sorted(
            name for name in self.model_fields_set & NON_NULLABLE_FIELDS
            if getattr(self, name) is None
        )
        if nulled:
            raise ValueError(f"Fields cannot be null: {', '.join(nulled)}")
        return self

    def changes(self) -> dict:
        return self.model_dump(mode="json", exclude_unset=True)
