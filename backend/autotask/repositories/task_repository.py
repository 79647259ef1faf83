"""Task repository: the only code that reads or writes the tasks table."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy import delete, select, update
from sqlalchemy.orm import Session

from autotask.errors import NotFoundError
from autotask.models.task import Task, TaskStatus

logger = logging.getLogger(__name__)

_FLAGS = {"reminder_sent", "overdue_notification_sent"}


class TaskRepository:
    """
    SQLAlchemy-backed task collection.

    Every mutation is a single conditional statement committed on its own:
    - transition(): UPDATE ... WHERE status IN (expected)
    - mark_flag():  UPDATE ... WHERE flag = false
    - delete_unless_completed(): DELETE ... WHERE status != 'Completed'
    A caller that loses a race sees False and nothing is written.
    """

    def __init__(self, db: Session) -> None:
        self.db = db

    # ---- reads ----

    def get(self, task_id: int) -> Optional[Task]:
        return self.db.get(Task, task_id)

    def require(self, task_id: int) -> Task:
        task = self.get(task_id)
        if task is None:
            raise NotFoundError(f"Task {task_id} not found")
        return task

    def list_all(self) -> List[Task]:
        return list(self.db.scalars(select(Task).order_by(Task.task_id)))

    def list_for_assignee(self, user_id: int) -> List[Task]:
        stmt = select(Task).where(Task.assignee_id == user_id).order_by(Task.task_id)
        return list(self.db.scalars(stmt))

    def list_reminder_candidates(self, window_start: datetime, window_end: datetime) -> List[Task]:
        """Pending, not yet reminded, deadline inside the inclusive window."""
        stmt = (
            select(Task)
            .where(
                Task.status == TaskStatus.PENDING.value,
                Task.reminder_sent.is_(False),
                Task.deadline >= window_start,
                Task.deadline <= window_end,
            )
            .order_by(Task.deadline, Task.task_id)
        )
        return list(self.db.scalars(stmt))

    def list_overdue_candidates(self, now: datetime) -> List[Task]:
        """Pending, deadline already passed, overdue notice not yet sent."""
        stmt = (
            select(Task)
            .where(
                Task.status == TaskStatus.PENDING.value,
                Task.overdue_notification_sent.is_(False),
                Task.deadline < now,
            )
            .order_by(Task.deadline, Task.task_id)
        )
        return list(self.db.scalars(stmt))

    # ---- writes ----

    def add(self, **fields: Any) -> Task:
        task = Task(**fields)
        self.db.add(task)
        self.db.commit()
        self.db.refresh(task)
        logger.debug("[task] added id=%s assignee=%s deadline=%s", task.task_id, task.assignee_id, task.deadline)
        return task

    def transition(
        self,
        task_id: int,
        expected: Iterable[TaskStatus],
        *,
        where: Optional[Dict[str, Any]] = None,
        **values: Any,
    ) -> bool:
        """
        Apply `values` only if the stored status is one of `expected`.

        `where` adds column guards (column name -> value the row must still hold),
        so a read-modify-write of that column cannot overwrite a concurrent change.
        """
        exp = [e.value for e in expected]
        if not exp:
            return False
        conditions = [Task.task_id == task_id, Task.status.in_(exp)]
        for name, value in (where or {}).items():
            column = getattr(Task, name)
            conditions.append(column.is_(None) if value is None else column == value)
        stmt = (
            update(Task)
            .where(*conditions)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        try:
            result = self.db.execute(stmt)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        return result.rowcount == 1

    def mark_flag(self, task_id: int, flag: str, **values: Any) -> bool:
        """Flip a one-way notification flag; False if it was already set."""
        if flag not in _FLAGS:
            raise ValueError(f"unknown flag: {flag}")
        column = getattr(Task, flag)
        stmt = (
            update(Task)
            .where(Task.task_id == task_id, column.is_(False))
            .values({flag: True, **values})
            .execution_options(synchronize_session=False)
        )
        try:
            result = self.db.execute(stmt)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        return result.rowcount == 1

    def delete_unless_completed(self, task_id: int) -> bool:
        stmt = (
            delete(Task)
            .where(Task.task_id == task_id, Task.status != TaskStatus.COMPLETED.value)
            .execution_options(synchronize_session=False)
        )
        try:
            result = self.db.execute(stmt)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        return result.rowcount == 1
