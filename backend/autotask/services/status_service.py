"""Effective task status: the stored status plus the time-derived Overdue view.

Nothing here mutates a task; callers may evaluate it as often as they like.
"""

from datetime import datetime

from autotask.models.task import TaskStatus
from autotask.schemas.task import TaskOut
from autotask.utils.time import to_local_naive


def is_overdue(task, now: datetime) -> bool:
    if task.status == TaskStatus.COMPLETED.value:
        return False
    return now > to_local_naive(task.deadline)


def effective_status(task, now: datetime) -> str:
    if is_overdue(task, now):
        return TaskStatus.OVERDUE.value
    return task.status


def to_task_out(task, now: datetime) -> TaskOut:
    """Snapshot a task with its derived fields filled in for `now`."""
    return TaskOut(
        task_id=task.task_id,
        title=task.title,
        description=task.description or "",
        assignee_id=task.assignee_id,
        assigner_id=task.assigner_id,
        priority=task.priority,
        deadline=task.deadline,
        status=task.status,
        effective_status=effective_status(task, now),
        is_overdue=is_overdue(task, now),
        created_at=task.created_at,
        attachment_ids=task.attachment_ids,
        submitted_at=task.submitted_at,
        submission_file_id=task.submission_file_id,
        submission_score=task.submission_score,
        score=task.score,
        reminder_sent=bool(task.reminder_sent),
        overdue_notification_sent=bool(task.overdue_notification_sent),
    )
