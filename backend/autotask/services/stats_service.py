"""Per-user statistics derived from the task collection.

Nothing is cached: every figure is recomputed from the tasks passed in, so the
numbers always agree with the current collection.
"""

from datetime import datetime
from typing import Iterable, List

from autotask.models.task import TaskStatus
from autotask.schemas.user import RankingEntry, UserStats
from autotask.utils.time import to_local_naive


def user_stats(user_id: int, tasks: Iterable) -> UserStats:
    assigned = [t for t in tasks if t.assignee_id == user_id]
    completed = [t for t in assigned if t.status == TaskStatus.COMPLETED.value]

    scores = [t.score for t in completed if t.score is not None]
    average = round(sum(scores) / len(scores), 1) if scores else 0.0

    on_time = 0
    late = 0
    for t in completed:
        if t.submitted_at is None:
            continue
        if to_local_naive(t.submitted_at) <= to_local_naive(t.deadline):
            on_time += 1
        else:
            late += 1

    return UserStats(
        user_id=user_id,
        total_assigned=len(assigned),
        total_completed=len(completed),
        average_score=average,
        on_time=on_time,
        late=late,
    )


def monthly_score(tasks: Iterable, now: datetime) -> int:
    """Sum of scores for tasks submitted (or, unsubmitted, created) in now's month."""
    total = 0
    for t in tasks:
        stamp = t.submitted_at or t.created_at
        if stamp is None:
            continue
        stamp = to_local_naive(stamp)
        if stamp.year == now.year and stamp.month == now.month:
            total += t.score or 0
    return total


def rank_users(users: Iterable, tasks: Iterable, now: datetime) -> List[RankingEntry]:
    tasks = list(tasks)
    entries = [
        RankingEntry(
            user_id=u.user_id,
            display_name=u.display_name,
            monthly_score=monthly_score([t for t in tasks if t.assignee_id == u.user_id], now),
        )
        for u in users
    ]
    # sorted() is stable, so equal scores keep the directory order.
    return sorted(entries, key=lambda e: -e.monthly_score)
