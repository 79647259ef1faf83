"""Pydantic contracts for sweep results and scheduler status."""

from pydantic import BaseModel
from typing import List, Optional


class SweepTaskResult(BaseModel):
    task_id: int
    success: bool
    error: Optional[str] = None


class SweepResult(BaseModel):
    kind: str
    success: bool = True
    # Tasks selected by the sweep, whether or not their notification went out.
    count: int = 0
    sent: int = 0
    results: List[SweepTaskResult] = []
    error: Optional[str] = None


class SchedulerStatus(BaseModel):
    reminder_job: bool
    overdue_job: bool
