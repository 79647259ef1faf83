"""Pydantic request/response contracts for tasks."""

from pydantic import BaseModel, field_validator
from typing import List, Optional, Union
from datetime import date, datetime

from autotask.models.task import Priority
from autotask.utils.time import to_local_naive


class TaskCreate(BaseModel):
    title: str
    description: str = ""
    assignee_id: int
    priority: Priority = Priority.MEDIUM
    # A bare date means local midnight of that day.
    deadline: Union[datetime, date]
    attachment_ids: List[int] = []

    @field_validator("deadline")
    @classmethod
    def _normalize_deadline(cls, value):
        return to_local_naive(value)


class TaskUpdate(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    priority: Optional[Priority] = None
    deadline: Optional[Union[datetime, date]] = None
    # Appended to the existing attachments.
    attachment_ids: List[int] = []

    @field_validator("deadline")
    @classmethod
    def _normalize_deadline(cls, value):
        return to_local_naive(value) if value is not None else None


class TaskSubmit(BaseModel):
    file_id: int


class TaskScore(BaseModel):
    # Omitted: use the timing score fixed at submission.
    score: Optional[int] = None


class TaskOut(BaseModel):
    task_id: int
    title: str
    description: str
    assignee_id: int
    assigner_id: int
    priority: int
    deadline: datetime
    status: str
    effective_status: str
    is_overdue: bool
    created_at: datetime
    attachment_ids: List[int] = []
    submitted_at: Optional[datetime] = None
    submission_file_id: Optional[int] = None
    submission_score: Optional[int] = None
    score: Optional[int] = None
    reminder_sent: bool = False
    overdue_notification_sent: bool = False


class PaginationOut(BaseModel):
    page: int
    limit: int
    total: int
    total_pages: int
    has_more: bool


class TaskPage(BaseModel):
    tasks: List[TaskOut]
    pagination: PaginationOut
