"""Task lifecycle service: create, submit, score, delete and list tasks.

Each operation validates first, then commits its whole state change in one
conditional statement through TaskRepository. Notifications are only queued
on the caller's NotificationBatch; sending them is a separate, best-effort step
that cannot undo or fail the mutation.
"""

import json
import logging
from datetime import datetime
from typing import Iterable, List, Optional

from sqlalchemy.orm import Session

from autotask.clock import system_clock
from autotask.config import settings
from autotask.errors import InvalidTransitionError, NotFoundError, TaskValidationError
from autotask.models.task import TaskStatus
from autotask.models.user import User
from autotask.ports import Clock, NotificationKind
from autotask.repositories.task_repository import TaskRepository
from autotask.schemas.task import TaskCreate, TaskOut, TaskPage, TaskUpdate
from autotask.schemas.user import UserOut
from autotask.services.listing_service import filter_tasks_by_search, sort_and_paginate
from autotask.services.notification_service import NotificationBatch
from autotask.services.scoring_service import SCORE_MAX, SCORE_MIN, is_valid_score, score_submission
from autotask.services.status_service import to_task_out
from autotask.services.user_service import find_user
from autotask.utils.time import to_local_naive

logger = logging.getLogger(__name__)


def _queue(
    notifications: Optional[NotificationBatch],
    kind: NotificationKind,
    task: TaskOut,
    user: Optional[User],
    **extra,
) -> None:
    if notifications is None:
        return
    if user is None or not user.email:
        logger.warning("[task] no reachable assignee for %s task_id=%s", kind.value, task.task_id)
        return
    notifications.add(kind, task, UserOut.model_validate(user), **extra)


def _clean_attachment_ids(ids: Iterable[int]) -> List[int]:
    out: List[int] = []
    for file_id in ids or []:
        if isinstance(file_id, bool) or not isinstance(file_id, int) or file_id <= 0:
            raise TaskValidationError(f"Invalid attachment file id: {file_id!r}")
        if file_id not in out:
            out.append(file_id)
    return out


def get_task(db: Session, task_id: int, *, clock: Clock = system_clock) -> TaskOut:
    return to_task_out(TaskRepository(db).require(task_id), clock.now())


def create_task(
    db: Session,
    data: TaskCreate,
    assigner: User,
    *,
    clock: Clock = system_clock,
    notifications: Optional[NotificationBatch] = None,
) -> TaskOut:
    title = (data.title or "").strip()
    if not title:
        raise TaskValidationError("Task title is required")
    attachment_ids = _clean_attachment_ids(data.attachment_ids)
    assignee = find_user(db, data.assignee_id)
    if assignee is None:
        raise TaskValidationError(f"Assignee {data.assignee_id} does not exist")

    now = clock.now()
    task = TaskRepository(db).add(
        title=title,
        description=(data.description or "").strip(),
        assignee_id=assignee.user_id,
        assigner_id=assigner.user_id,
        priority=int(data.priority),
        deadline=to_local_naive(data.deadline),
        attachments=json.dumps(attachment_ids),
        status=TaskStatus.PENDING.value,
        created_at=now,
        updated_at=now,
        reminder_sent=False,
        overdue_notification_sent=False,
    )
    logger.info("[task] created id=%s assignee=%s assigner=%s", task.task_id, assignee.user_id, assigner.user_id)

    out = to_task_out(task, now)
    _queue(notifications, NotificationKind.TASK_ASSIGNED, out, assignee, assigner_name=assigner.display_name)
    return out


def update_task(
    db: Session,
    task_id: int,
    data: TaskUpdate,
    *,
    clock: Clock = system_clock,
) -> TaskOut:
    """
    Edit title, description, priority or deadline of a task that is not Completed,
    and append new attachments.

    Moving the deadline clears reminder_sent and overdue_notification_sent so the
    new deadline gets its own reminder and overdue notice. For a task that was
    already submitted, the stored timing score is recomputed against the new
    deadline.
    """
    repo = TaskRepository(db)
    task = repo.require(task_id)
    if task.status == TaskStatus.COMPLETED.value:
        raise InvalidTransitionError("Completed tasks cannot be edited")

    values = {}
    guards = {}
    if data.title is not None:
        title = data.title.strip()
        if not title:
            raise TaskValidationError("Task title is required")
        values["title"] = title
    if data.description is not None:
        values["description"] = data.description.strip()
    if data.priority is not None:
        values["priority"] = int(data.priority)
    if data.deadline is not None:
        deadline = to_local_naive(data.deadline)
        if deadline != task.deadline:
            values["deadline"] = deadline
            values["reminder_sent"] = False
            values["overdue_notification_sent"] = False
            if task.submitted_at is not None:
                values["submission_score"] = score_submission(deadline, task.submitted_at)
            guards["deadline"] = task.deadline

    new_ids = _clean_attachment_ids(data.attachment_ids)
    current = task.attachment_ids
    added = [i for i in new_ids if i not in current]
    if added:
        values["attachments"] = json.dumps(current + added)
        guards["attachments"] = task.attachments

    now = clock.now()
    if not values:
        return to_task_out(task, now)

    ok = repo.transition(
        task_id,
        [TaskStatus.PENDING, TaskStatus.SUBMITTED],
        where=guards,
        updated_at=now,
        **values,
    )
    if not ok:
        repo.require(task_id)
        raise InvalidTransitionError(f"Task {task_id} changed while it was being edited")
    logger.info("[task] updated id=%s fields=%s", task_id, sorted(values))
    return to_task_out(repo.require(task_id), now)


def remove_attachment(
    db: Session,
    task_id: int,
    file_id: int,
    *,
    clock: Clock = system_clock,
) -> TaskOut:
    repo = TaskRepository(db)
    task = repo.require(task_id)
    if task.status == TaskStatus.COMPLETED.value:
        raise InvalidTransitionError("Attachments of completed tasks cannot be changed")
    current = task.attachment_ids
    if file_id not in current:
        raise NotFoundError(f"File {file_id} is not attached to task {task_id}")

    now = clock.now()
    ok = repo.transition(
        task_id,
        [TaskStatus.PENDING, TaskStatus.SUBMITTED],
        where={"attachments": task.attachments},
        attachments=json.dumps([i for i in current if i != file_id]),
        updated_at=now,
    )
    if not ok:
        repo.require(task_id)
        raise InvalidTransitionError(f"Task {task_id} changed while it was being edited")
    logger.info("[task] removed attachment file_id=%s from id=%s", file_id, task_id)
    return to_task_out(repo.require(task_id), now)


def submit_task(
    db: Session,
    task_id: int,
    file_id: int,
    *,
    submitted_at: Optional[datetime] = None,
    clock: Clock = system_clock,
) -> TaskOut:
    repo = TaskRepository(db)
    task = repo.require(task_id)
    if task.status != TaskStatus.PENDING.value:
        raise InvalidTransitionError(f"Only pending tasks can be submitted (task {task_id} is {task.status})")
    if not isinstance(file_id, int) or file_id <= 0:
        raise TaskValidationError("A submission file is required")

    now = clock.now()
    submitted_at = to_local_naive(submitted_at) if submitted_at is not None else now
    if task.created_at and submitted_at < task.created_at:
        raise TaskValidationError("Submission time cannot precede task creation")

    ok = repo.transition(
        task_id,
        [TaskStatus.PENDING],
        status=TaskStatus.SUBMITTED.value,
        submitted_at=submitted_at,
        submission_file_id=file_id,
        submission_score=score_submission(task.deadline, submitted_at),
        updated_at=now,
    )
    if not ok:
        raise InvalidTransitionError(f"Task {task_id} is no longer pending")
    logger.info("[task] submitted id=%s file_id=%s", task_id, file_id)
    return to_task_out(repo.require(task_id), now)


def score_task(
    db: Session,
    task_id: int,
    score: Optional[int] = None,
    *,
    scorer: Optional[User] = None,
    clock: Clock = system_clock,
    notifications: Optional[NotificationBatch] = None,
) -> TaskOut:
    if score is not None and not is_valid_score(score):
        raise TaskValidationError(f"Score must be an integer between {SCORE_MIN} and {SCORE_MAX}")

    repo = TaskRepository(db)
    task = repo.require(task_id)
    if task.status != TaskStatus.SUBMITTED.value:
        raise InvalidTransitionError(f"Task {task_id} must be submitted before scoring (it is {task.status})")

    if score is None:
        score = task.submission_score
        if score is None:
            score = score_submission(task.deadline, task.submitted_at)

    now = clock.now()
    ok = repo.transition(
        task_id,
        [TaskStatus.SUBMITTED],
        status=TaskStatus.COMPLETED.value,
        score=score,
        updated_at=now,
    )
    if not ok:
        raise InvalidTransitionError(f"Task {task_id} is no longer awaiting a score")
    logger.info("[task] scored id=%s score=%s", task_id, score)

    out = to_task_out(repo.require(task_id), now)
    _queue(
        notifications,
        NotificationKind.TASK_SCORED,
        out,
        find_user(db, out.assignee_id),
        score=score,
        scorer_name=scorer.display_name if scorer else None,
    )
    return out


def delete_task(
    db: Session,
    task_id: int,
    *,
    deleter: Optional[User] = None,
    clock: Clock = system_clock,
    notifications: Optional[NotificationBatch] = None,
) -> None:
    repo = TaskRepository(db)
    task = repo.require(task_id)
    if task.status == TaskStatus.COMPLETED.value:
        raise InvalidTransitionError("Completed tasks cannot be deleted")

    # The row is gone after the DELETE; keep what the notification needs.
    snapshot = to_task_out(task, clock.now())
    assignee = find_user(db, task.assignee_id)

    if not repo.delete_unless_completed(task_id):
        repo.require(task_id)
        raise InvalidTransitionError("Completed tasks cannot be deleted")
    logger.info("[task] deleted id=%s", task_id)

    _queue(
        notifications,
        NotificationKind.TASK_DELETED,
        snapshot,
        assignee,
        deleter_name=deleter.display_name if deleter else None,
    )


def list_tasks(
    db: Session,
    page: int = 1,
    limit: Optional[int] = None,
    *,
    q: Optional[str] = None,
    clock: Clock = system_clock,
) -> TaskPage:
    if limit is None:
        limit = settings.DEFAULT_PAGE_LIMIT
    limit = min(max(1, int(limit)), settings.MAX_PAGE_LIMIT)

    now = clock.now()
    tasks = filter_tasks_by_search(TaskRepository(db).list_all(), q)
    items, pagination = sort_and_paginate(tasks, page, limit, now)
    return TaskPage(tasks=[to_task_out(t, now) for t in items], pagination=pagination)
