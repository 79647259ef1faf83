"""Notification service: in-app notification storage, the Notifier used by the
task engine, and the batch that sends notifications without blocking on any one.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Tuple

from sqlalchemy.orm import Session

from autotask.config import settings
from autotask.database import SessionLocal
from autotask.models.notification import Notification
from autotask.models.task import Priority
from autotask.ports import NotificationKind, NotificationResult, Notifier

logger = logging.getLogger(__name__)

PRIORITY_LABELS = {
    int(Priority.LOW): "Low",
    int(Priority.MEDIUM): "Medium",
    int(Priority.HIGH): "High",
}


def get_notifications(db: Session, user_id: int, unread_only: bool = False) -> List[Notification]:
    q = db.query(Notification).filter(Notification.user_id == user_id)
    if unread_only:
        q = q.filter(Notification.is_read == False)
    return q.order_by(Notification.created_at.desc(), Notification.noti_id.desc()).limit(50).all()


def mark_read(db: Session, noti_id: int, user_id: int) -> Optional[Notification]:
    noti = db.query(Notification).filter(
        Notification.noti_id == noti_id,
        Notification.user_id == user_id,
    ).first()
    if noti:
        noti.is_read = True
        db.commit()
        db.refresh(noti)
    return noti


def mark_all_read(db: Session, user_id: int):
    db.query(Notification).filter(
        Notification.user_id == user_id,
        Notification.is_read == False,
    ).update({"is_read": True})
    db.commit()


def create_notification(
    db: Session,
    user_id: int,
    noti_type: str,
    title: str,
    message: Optional[str] = None,
    link_url: Optional[str] = None,
    task_id: Optional[int] = None,
) -> Notification:
    noti = Notification(
        user_id=user_id,
        noti_type=noti_type,
        task_id=task_id,
        title=title,
        message=message,
        link_url=link_url,
    )
    db.add(noti)
    db.commit()
    db.refresh(noti)
    return noti


def _fmt_deadline(value: datetime) -> str:
    return value.strftime("%Y-%m-%d %H:%M")


def _fmt_attachments(task) -> str:
    ids = list(getattr(task, "attachment_ids", None) or [])
    if not ids:
        return ""
    return " Attachments: " + ", ".join(f"file #{i}" for i in ids) + "."


def render_notification(kind: NotificationKind, task, user, **extra: Any) -> Tuple[str, str]:
    """Title and message text for one notification."""
    name = getattr(user, "display_name", None) or "there"
    priority = PRIORITY_LABELS.get(int(task.priority), "Medium")

    if kind == NotificationKind.TASK_ASSIGNED:
        assigner = extra.get("assigner_name") or "Admin"
        return (
            f"New task: {task.title}",
            f"Hi {name}, {assigner} assigned you \"{task.title}\" "
            f"({priority} priority), due {_fmt_deadline(task.deadline)}."
            f"{_fmt_attachments(task)}",
        )
    if kind == NotificationKind.DEADLINE_REMINDER:
        hours_left = extra.get("hours_left")
        due = f"in {hours_left} hours" if hours_left is not None and hours_left >= 0 else f"on {_fmt_deadline(task.deadline)}"
        return (
            f"Reminder: \"{task.title}\" is due {due}",
            f"Hi {name}, your task \"{task.title}\" ({priority} priority) is due "
            f"{_fmt_deadline(task.deadline)}. Submit it before the deadline."
            f"{_fmt_attachments(task)}",
        )
    if kind == NotificationKind.TASK_SCORED:
        scorer = extra.get("scorer_name") or "Admin"
        score = extra.get("score", task.score)
        return (
            f"Task scored: {task.title}",
            f"Hi {name}, {scorer} scored your submission for \"{task.title}\": {score:+d}.",
        )
    if kind == NotificationKind.TASK_DELETED:
        deleter = extra.get("deleter_name") or "Admin"
        return (
            f"Task deleted: {task.title}",
            f"Hi {name}, {deleter} deleted the task \"{task.title}\". No further action is needed.",
        )
    if kind == NotificationKind.TASK_OVERDUE:
        return (
            f"Overdue: {task.title}",
            f"Hi {name}, the deadline for \"{task.title}\" passed on "
            f"{_fmt_deadline(task.deadline)} and it has not been submitted yet.",
        )
    raise ValueError(f"unsupported notification kind: {kind}")


class InAppNotifier:
    """Notifier that stores each notification as a Notification row for the assignee."""

    def __init__(self, session_factory: Callable[[], Session] = SessionLocal) -> None:
        self._session_factory = session_factory

    async def notify(self, kind: NotificationKind, task, user, **extra: Any) -> NotificationResult:
        try:
            title, message = render_notification(kind, task, user, **extra)
            link_url = None
            if kind != NotificationKind.TASK_DELETED:
                link_url = f"{settings.FRONTEND_URL.rstrip('/')}/tasks/{task.task_id}"
            await asyncio.to_thread(
                self._store,
                user.user_id,
                kind.value,
                title,
                message,
                link_url,
                task.task_id,
            )
        except Exception as exc:
            logger.exception("[notify] %s failed task_id=%s user_id=%s", kind.value, task.task_id, user.user_id)
            return NotificationResult(success=False, error=str(exc))
        logger.info("[notify] %s sent task_id=%s user_id=%s", kind.value, task.task_id, user.user_id)
        return NotificationResult(success=True)

    def _store(self, user_id, noti_type, title, message, link_url, task_id) -> None:
        # Runs on a worker thread with its own session.
        db = self._session_factory()
        try:
            create_notification(
                db,
                user_id,
                noti_type,
                title,
                message=message,
                link_url=link_url,
                task_id=task_id,
            )
        finally:
            db.close()


default_notifier = InAppNotifier()


def get_notifier() -> Notifier:
    return default_notifier


@dataclass(slots=True)
class PendingNotification:
    kind: NotificationKind
    task: Any
    user: Any
    extra: Dict[str, Any] = field(default_factory=dict)


class NotificationBatch:
    """
    Collects notifications and sends them as independent asyncio tasks.

    dispatch() starts one task per notification, then gathers them all, so a
    slow or failing send never holds up the others. Failures (a False result
    or an exception) are logged and returned, never raised.
    """

    def __init__(self, notifier: Notifier) -> None:
        self.notifier = notifier
        self._pending: List[PendingNotification] = []

    @property
    def pending(self) -> List[PendingNotification]:
        return list(self._pending)

    def add(self, kind: NotificationKind, task, user, **extra: Any) -> None:
        self._pending.append(PendingNotification(kind=kind, task=task, user=user, extra=extra))

    async def dispatch(self) -> List[Tuple[PendingNotification, NotificationResult]]:
        pending, self._pending = self._pending, []
        if not pending:
            return []
        jobs = [asyncio.create_task(self._send(p)) for p in pending]
        results = await asyncio.gather(*jobs, return_exceptions=True)
        out = []
        for item, result in zip(pending, results):
            if isinstance(result, BaseException):
                result = NotificationResult(success=False, error=str(result) or result.__class__.__name__)
            out.append((item, result))
        return out

    async def _send(self, item: PendingNotification) -> NotificationResult:
        task_id = getattr(item.task, "task_id", None)
        try:
            result = await self.notifier.notify(item.kind, item.task, item.user, **item.extra)
        except Exception as exc:
            logger.exception("[notify] %s raised task_id=%s", item.kind.value, task_id)
            return NotificationResult(success=False, error=str(exc) or exc.__class__.__name__)
        if result is None:
            result = NotificationResult(success=True)
        if not result.success:
            logger.warning("[notify] %s failed task_id=%s error=%s", item.kind.value, task_id, result.error)
        return result
