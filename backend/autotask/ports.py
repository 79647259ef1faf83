"""
Ports (interfaces) the task engine depends on.

The engine talks to Protocols instead of concrete collaborators so the clock,
the notification channel and the user lookup can be swapped in tests.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Awaitable, Optional, Protocol


class NotificationKind(str, Enum):
    TASK_ASSIGNED = "task_assigned"
    DEADLINE_REMINDER = "deadline_reminder"
    TASK_SCORED = "task_scored"
    TASK_DELETED = "task_deleted"
    TASK_OVERDUE = "task_overdue"


@dataclass(slots=True, frozen=True)
class NotificationResult:
    success: bool
    error: Optional[str] = None


class Clock(Protocol):
    def now(self) -> datetime: ...


class Notifier(Protocol):
    """
    Outbound notification channel.

    `task` and `user` are plain snapshots (TaskOut / UserOut), never live ORM
    rows, so a notifier may run after the originating session has closed.
    Implementations report failure through NotificationResult; an exception
    escaping notify() is treated the same way by the caller.
    """

    def notify(
        self,
        kind: NotificationKind,
        task: Any,
        user: Any,
        **extra: Any,
    ) -> Awaitable[NotificationResult]: ...


class UserDirectory(Protocol):
    def find_user(self, user_id: int) -> Any | None: ...
