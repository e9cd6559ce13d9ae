"""Tests for TaskService: completion dates, moves, comments and timers."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from trantor.errors import TaskNotFoundError, TaskStoreError
from trantor.models import LogLevel, Priority, Quadrant, Status, TaskCreate, TaskUpdate
from trantor.services.task_service import MS_PER_HOUR, TaskService, timer_snapshot


def _new(service: TaskService, **overrides):
    fields = {"title": "Load trailer", "due_date": "2026-03-20"}
    fields.update(overrides)
    return service.create_task(TaskCreate(**fields))


class _FailingStore:
    def list(self):
        raise TaskStoreError("Failed to fetch tasks: boom")

    def insert(self, data):
        raise TaskStoreError("Failed to create task: boom")


# ---------------------------------------------------------------------------
# Create / read / delete
# ---------------------------------------------------------------------------

class TestCreate:
    def test_create_applies_defaults(self, task_service):
        task = _new(task_service)
        assert task.id
        assert task.status == Status.NOT_STARTED
        assert task.priority == Priority.MEDIUM
        assert task.comments == []
        assert task.is_timer_running is False

    def test_create_logs_success(self, task_service, activity_log):
        _new(task_service, title="Fuel stop")
        entry = activity_log.entries()[0]
        assert entry.level == LogLevel.SUCCESS
        assert entry.message == "Task created: Fuel stop"

    def test_create_pushes_notification(self, task_service, notifications):
        task = _new(task_service, title="Fuel stop")
        items = notifications.list()
        assert len(items) == 1
        assert items[0].message == "Fuel stop"
        assert items[0].id.endswith(task.id)

    def test_list_is_newest_first(self, task_service):
        first = _new(task_service, title="first")
        second = _new(task_service, title="second")
        ids = [task.id for task in task_service.list_tasks()]
        assert ids == [second.id, first.id]

    def test_store_failure_is_logged_and_raised(self, activity_log):
        service = TaskService(_FailingStore(), activity_log)
        with pytest.raises(TaskStoreError):
            service.list_tasks()
        assert activity_log.entries()[0].level == LogLevel.ERROR

    def test_delete_logs_warning(self, task_service, activity_log):
        task = _new(task_service)
        task_service.delete_task(task.id)
        assert task_service.list_tasks() == []
        entry = activity_log.entries()[0]
        assert entry.level == LogLevel.WARNING
        assert entry.message == f"Task deleted: {task.id}"

    def test_missing_task_raises(self, task_service):
        with pytest.raises(TaskNotFoundError):
            task_service.get_task("nope")


# ---------------------------------------------------------------------------
# Completion dates
# ---------------------------------------------------------------------------

class TestCompletion:
    def test_completing_stamps_today(self, task_service, today):
        task = _new(task_service)
        done = task_service.update_task(task.id, {"status": "Completed"}, today=today)
        assert done.completed_at == "2026-03-16"

    def test_explicit_completed_at_wins(self, task_service, today):
        task = _new(task_service)
        done = task_service.update_task(
            task.id, TaskUpdate(status=Status.COMPLETED, completed_at="2026-03-10"), today=today
        )
        assert done.completed_at == "2026-03-10"

    def test_leaving_completed_clears_date(self, task_service, today):
        task = _new(task_service)
        task_service.update_task(task.id, {"status": "Completed"}, today=today)
        reopened = task_service.update_task(task.id, {"status": "In Progress"}, today=today)
        assert reopened.completed_at is None

    def test_toggle_twice_round_trips(self, task_service, today):
        task = _new(task_service)
        done = task_service.toggle_complete(task.id, today=today)
        assert done.status == Status.COMPLETED
        assert done.completed_at == today.isoformat()
        undone = task_service.toggle_complete(task.id, today=today)
        assert undone.status == Status.NOT_STARTED
        assert undone.completed_at is None

    def test_empty_update_is_a_no_op(self, task_service):
        task = _new(task_service)
        assert task_service.update_task(task.id, {}) == task

    def test_null_required_field_is_rejected(self, task_service):
        task = _new(task_service)
        with pytest.raises(ValidationError, match="priority, title"):
            task_service.update_task(task.id, {"title": None, "priority": None})
        assert task_service.get_task(task.id) == task


# ---------------------------------------------------------------------------
# Board and matrix moves
# ---------------------------------------------------------------------------

class TestMoves:
    def test_move_to_status(self, task_service, today):
        task = _new(task_service)
        moved = task_service.move_to_status(task.id, Status.COMPLETED, today=today)
        assert moved.status == Status.COMPLETED
        assert moved.completed_at == today.isoformat()

    def test_move_to_same_status_changes_nothing(self, task_service, activity_log):
        task = _new(task_service)
        before = len(activity_log)
        assert task_service.move_to_status(task.id, Status.NOT_STARTED) == task
        assert len(activity_log) == before

    @pytest.mark.parametrize(
        "quadrant, urgent, important",
        [
            (Quadrant.DO_FIRST, True, True),
            (Quadrant.SCHEDULE, False, True),
            (Quadrant.DELEGATE, True, False),
            (Quadrant.ELIMINATE, False, False),
        ],
    )
    def test_move_to_quadrant_sets_flags(self, task_service, quadrant, urgent, important):
        task = _new(task_service, is_urgent=not urgent, is_important=not important)
        moved = task_service.move_to_quadrant(task.id, quadrant)
        assert (moved.is_urgent, moved.is_important) == (urgent, important)


# ---------------------------------------------------------------------------
# Comments
# ---------------------------------------------------------------------------

class TestComments:
    def test_comments_append_in_order(self, task_service):
        task = _new(task_service)
        task_service.add_comment(task.id, "first", "Ada")
        updated = task_service.add_comment(task.id, "second", "Ada", avatar="https://img/ada.png")
        assert [c.text for c in updated.comments] == ["first", "second"]
        assert updated.comments[1].avatar == "https://img/ada.png"
        assert updated.comments[0].id != updated.comments[1].id


# ---------------------------------------------------------------------------
# Timer
# ---------------------------------------------------------------------------

class TestTimer:
    def test_start_then_stop_accumulates_hours(self, task_service):
        task = _new(task_service, actual_time=1.0)
        started = task_service.start_timer(task.id, now=1_000)
        assert started.is_timer_running is True
        assert started.timer_start_time == 1_000

        stopped = task_service.stop_timer(task.id, now=1_000 + MS_PER_HOUR // 2)
        assert stopped.is_timer_running is False
        assert stopped.timer_start_time is None
        assert stopped.actual_time == 1.5

    def test_start_twice_keeps_first_start(self, task_service):
        task = _new(task_service)
        task_service.start_timer(task.id, now=1_000)
        again = task_service.start_timer(task.id, now=9_000)
        assert again.timer_start_time == 1_000

    def test_stop_when_idle_is_a_no_op(self, task_service):
        task = _new(task_service, actual_time=2.0)
        assert task_service.stop_timer(task.id, now=5_000).actual_time == 2.0

    def test_snapshot_includes_running_interval(self, task_service):
        task = _new(task_service, actual_time=1.0, estimated_time=2.0)
        running = task_service.start_timer(task.id, now=0)
        snap = timer_snapshot(running, now=MS_PER_HOUR * 2)
        assert snap.display_hours == 3.0
        assert snap.display == "03:00:00"
        assert snap.progress_percent == 100.0
        assert snap.over_budget is True
        assert snap.running is True

    def test_snapshot_without_estimate(self, task_service):
        task = _new(task_service, actual_time=0.25)
        snap = timer_snapshot(task)
        assert snap.display == "00:15:00"
        assert snap.progress_percent == 0.0
        assert snap.over_budget is False
