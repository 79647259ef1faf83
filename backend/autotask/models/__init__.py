"""SQLAlchemy model package; importing it registers every table on Base.metadata."""

from autotask.models.user import User
from autotask.models.task import Task, TaskStatus, Priority
from autotask.models.notification import Notification

__all__ = [
    "User",
    "Task", "TaskStatus", "Priority",
    "Notification",
]
