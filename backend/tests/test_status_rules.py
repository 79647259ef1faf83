"""Derived Overdue status."""

from datetime import datetime
from types import SimpleNamespace

from autotask.models.task import TaskStatus
from autotask.services.status_service import effective_status, is_overdue

DEADLINE = datetime(2025, 6, 11, 17, 0)


def _task(status):
    return SimpleNamespace(status=status.value, deadline=DEADLINE)


def test_completed_task_is_never_overdue():
    task = _task(TaskStatus.COMPLETED)
    assert is_overdue(task, datetime(2030, 1, 1)) is False
    assert effective_status(task, datetime(2030, 1, 1)) == "Completed"


def test_pending_task_past_deadline_is_overdue():
    task = _task(TaskStatus.PENDING)
    assert is_overdue(task, datetime(2025, 6, 11, 17, 1)) is True
    assert effective_status(task, datetime(2025, 6, 11, 17, 1)) == "Overdue"


def test_deadline_instant_itself_is_not_overdue():
    assert is_overdue(_task(TaskStatus.PENDING), DEADLINE) is False


def test_submitted_task_past_deadline_derives_overdue():
    task = _task(TaskStatus.SUBMITTED)
    assert effective_status(task, datetime(2025, 6, 12)) == "Overdue"
    assert effective_status(task, datetime(2025, 6, 10)) == "Submitted"


def test_derivation_does_not_mutate():
    task = _task(TaskStatus.PENDING)
    effective_status(task, datetime(2025, 7, 1))
    effective_status(task, datetime(2025, 7, 1))
    assert task.status == "Pending"
