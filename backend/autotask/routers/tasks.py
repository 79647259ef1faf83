"""Tasks API router: task lifecycle endpoints. Notifications go out after the response."""

from fastapi import APIRouter, BackgroundTasks, Depends, Query
from sqlalchemy.orm import Session
from typing import Optional
from autotask.clock import get_clock
from autotask.database import get_db
from autotask.schemas.task import TaskCreate, TaskSubmit, TaskScore, TaskOut, TaskPage, TaskUpdate
from autotask.services import task_service
from autotask.services.notification_service import NotificationBatch, get_notifier
from autotask.middleware.auth_middleware import get_current_user, require_roles
from autotask.models.user import User

router = APIRouter(prefix="/api/tasks", tags=["tasks"])


@router.get("", response_model=TaskPage)
def list_tasks(
    page: int = Query(1, ge=1),
    limit: Optional[int] = Query(None, ge=1),
    q: Optional[str] = None,
    db: Session = Depends(get_db),
    clock=Depends(get_clock),
    current_user: User = Depends(get_current_user),
):
    return task_service.list_tasks(db, page, limit, q=q, clock=clock)


@router.post("", response_model=TaskOut, status_code=201)
def create_task(
    data: TaskCreate,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    clock=Depends(get_clock),
    notifier=Depends(get_notifier),
    current_user: User = Depends(require_roles("admin")),
):
    batch = NotificationBatch(notifier)
    task = task_service.create_task(db, data, current_user, clock=clock, notifications=batch)
    background_tasks.add_task(batch.dispatch)
    return task


@router.get("/{task_id}", response_model=TaskOut)
def get_task(
    task_id: int,
    db: Session = Depends(get_db),
    clock=Depends(get_clock),
    current_user: User = Depends(get_current_user),
):
    return task_service.get_task(db, task_id, clock=clock)


@router.put("/{task_id}", response_model=TaskOut)
def update_task(
    task_id: int,
    data: TaskUpdate,
    db: Session = Depends(get_db),
    clock=Depends(get_clock),
    current_user: User = Depends(require_roles("admin")),
):
    return task_service.update_task(db, task_id, data, clock=clock)


@router.delete("/{task_id}/attachments/{file_id}", response_model=TaskOut)
def remove_attachment(
    task_id: int,
    file_id: int,
    db: Session = Depends(get_db),
    clock=Depends(get_clock),
    current_user: User = Depends(require_roles("admin")),
):
    return task_service.remove_attachment(db, task_id, file_id, clock=clock)


@router.post("/{task_id}/submit", response_model=TaskOut)
def submit_task(
    task_id: int,
    data: TaskSubmit,
    db: Session = Depends(get_db),
    clock=Depends(get_clock),
    current_user: User = Depends(get_current_user),
):
    return task_service.submit_task(db, task_id, data.file_id, clock=clock)


@router.post("/{task_id}/score", response_model=TaskOut)
def score_task(
    task_id: int,
    data: TaskScore,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    clock=Depends(get_clock),
    notifier=Depends(get_notifier),
    current_user: User = Depends(require_roles("admin")),
):
    batch = NotificationBatch(notifier)
    task = task_service.score_task(
        db, task_id, data.score, scorer=current_user, clock=clock, notifications=batch,
    )
    background_tasks.add_task(batch.dispatch)
    return task


@router.delete("/{task_id}")
def delete_task(
    task_id: int,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    clock=Depends(get_clock),
    notifier=Depends(get_notifier),
    current_user: User = Depends(require_roles("admin")),
):
    batch = NotificationBatch(notifier)
    task_service.delete_task(db, task_id, deleter=current_user, clock=clock, notifications=batch)
    background_tasks.add_task(batch.dispatch)
    return {"message": "Task deleted"}
