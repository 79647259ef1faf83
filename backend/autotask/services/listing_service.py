"""Ordering and pagination of task listings."""

import math
from datetime import datetime
from typing import List, Optional, Sequence, Tuple

from autotask.models.task import TaskStatus
from autotask.schemas.task import PaginationOut
from autotask.services.status_service import effective_status
from autotask.utils.time import to_local_naive

STATUS_RANK = {
    TaskStatus.OVERDUE.value: 0,
    TaskStatus.PENDING.value: 1,
    TaskStatus.SUBMITTED.value: 2,
    TaskStatus.COMPLETED.value: 3,
}
_UNKNOWN_RANK = len(STATUS_RANK)


def _sort_key(task, now: datetime):
    rank = STATUS_RANK.get(effective_status(task, now), _UNKNOWN_RANK)
    return (rank, -int(task.priority or 0), to_local_naive(task.deadline), task.task_id or 0)


def sort_tasks(tasks: Sequence, now: datetime) -> list:
    """Overdue first, then Pending, Submitted, Completed; higher priority and earlier deadline first."""
    return sorted(tasks, key=lambda t: _sort_key(t, now))


def filter_tasks_by_search(tasks: Sequence, term: Optional[str]) -> list:
    """Case-insensitive substring match on title or description; a blank term keeps everything."""
    if not term or not term.strip():
        return list(tasks)
    needle = term.strip().lower()
    return [
        t for t in tasks
        if needle in (t.title or "").lower() or needle in (t.description or "").lower()
    ]


def sort_and_paginate(tasks: Sequence, page: int, limit: int, now: datetime) -> Tuple[List, PaginationOut]:
    page = max(1, int(page or 1))
    limit = max(1, int(limit or 1))

    ordered = sort_tasks(tasks, now)
    total = len(ordered)
    start = (page - 1) * limit
    items = ordered[start:start + limit]

    return items, PaginationOut(
        page=page,
        limit=limit,
        total=total,
        total_pages=math.ceil(total / limit),
        has_more=page * limit < total,
    )
