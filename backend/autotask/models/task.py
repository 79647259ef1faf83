"""SQLAlchemy model for the Task domain."""

import json
from enum import Enum, IntEnum

from sqlalchemy import Boolean, Column, DateTime, Index, Integer, String, Text

from autotask.database import Base


class TaskStatus(str, Enum):
    PENDING = "Pending"
    SUBMITTED = "Submitted"
    COMPLETED = "Completed"
    # Derived for display and sorting; never written by the engine.
    OVERDUE = "Overdue"


class Priority(IntEnum):
    LOW = 1
    MEDIUM = 2
    HIGH = 3


class Task(Base):
    __tablename__ = "tasks"

    task_id = Column(Integer, primary_key=True, autoincrement=True)
    title = Column(String(200), nullable=False)
    description = Column(Text, nullable=False, default="")
    # Weak references to users: a task outlives its assignee's account.
    assignee_id = Column(Integer, nullable=False)
    assigner_id = Column(Integer, nullable=False)
    priority = Column(Integer, nullable=False, default=int(Priority.MEDIUM))
    deadline = Column(DateTime, nullable=False)
    status = Column(String(20), nullable=False, default=TaskStatus.PENDING.value)
    created_at = Column(DateTime, nullable=False)
    updated_at = Column(DateTime)
    submitted_at = Column(DateTime)
    attachments = Column(Text)  # JSON array of file ids
    submission_file_id = Column(Integer)
    submission_score = Column(Integer)
    score = Column(Integer)
    reminder_sent = Column(Boolean, nullable=False, default=False)
    overdue_notification_sent = Column(Boolean, nullable=False, default=False)

    __table_args__ = (
        Index("idx_task_status_deadline", "status", "deadline"),
        Index("idx_task_assignee", "assignee_id"),
        {"sqlite_autoincrement": True},
    )

    @property
    def attachment_ids(self):
        if not self.attachments:
            return []
        try:
            parsed = json.loads(self.attachments)
            if isinstance(parsed, list):
                return [int(item) for item in parsed]
        except (json.JSONDecodeError, TypeError, ValueError):
            return []
        return []
