"""Deadline-based scoring of submissions."""

from datetime import date, datetime
from typing import Union

from autotask.utils.time import local_day

SCORE_EARLY = 1
SCORE_ON_DAY = 0
SCORE_LATE = -1

SCORE_MIN = SCORE_LATE
SCORE_MAX = SCORE_EARLY


def score_submission(deadline: Union[datetime, date], submitted_at: Union[datetime, date]) -> int:
    """
    Compare the submission's local calendar day with the deadline's.

    Time of day is ignored on both sides, so anything handed in on the
    deadline day scores 0 even after the deadline's own time has passed.
    """
    submitted_day = local_day(submitted_at)
    deadline_day = local_day(deadline)
    if submitted_day < deadline_day:
        return SCORE_EARLY
    if submitted_day == deadline_day:
        return SCORE_ON_DAY
    return SCORE_LATE


def is_valid_score(score) -> bool:
    return isinstance(score, int) and not isinstance(score, bool) and SCORE_MIN <= score <= SCORE_MAX
