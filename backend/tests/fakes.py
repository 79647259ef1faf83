"""Deterministic stand-ins for the clock and the notification channel."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Iterable

from autotask.ports import NotificationKind, NotificationResult


class FixedClock:
    """Clock that only moves when a test moves it."""

    def __init__(self, now: datetime) -> None:
        self.current = now

    def now(self) -> datetime:
        return self.current

    def set(self, now: datetime) -> None:
        self.current = now

    def advance(self, **kwargs) -> None:
        self.current += timedelta(**kwargs)


@dataclass(slots=True)
class SentNotification:
    kind: NotificationKind
    task: Any
    user: Any
    extra: dict


@dataclass
class RecordingNotifier:
    """Notifier that records every call and always succeeds."""

    sent: list[SentNotification] = field(default_factory=list)

    async def notify(self, kind, task, user, **extra) -> NotificationResult:
        self.sent.append(SentNotification(kind=kind, task=task, user=user, extra=extra))
        return NotificationResult(success=True)

    def kinds(self) -> list[NotificationKind]:
        return [s.kind for s in self.sent]

    def for_kind(self, kind: NotificationKind) -> list[SentNotification]:
        return [s for s in self.sent if s.kind == kind]


class FailingNotifier(RecordingNotifier):
    """
    Records calls like RecordingNotifier but fails for the given task ids:
    an unsuccessful result by default, or an exception when `raise_error` is set.
    Empty `task_ids` means every call fails.
    """

    def __init__(self, task_ids: Iterable[int] = (), raise_error: bool = False) -> None:
        super().__init__()
        self.task_ids = set(task_ids)
        self.raise_error = raise_error

    async def notify(self, kind, task, user, **extra) -> NotificationResult:
        self.sent.append(SentNotification(kind=kind, task=task, user=user, extra=extra))
        if self.task_ids and task.task_id not in self.task_ids:
            return NotificationResult(success=True)
        if self.raise_error:
            raise RuntimeError("mail server unavailable")
        return NotificationResult(success=False, error="mail server unavailable")
