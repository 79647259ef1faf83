"""Scheduler API router: manual sweep runs, job status and shutdown."""

from fastapi import APIRouter, Depends
from autotask.schemas.scheduler import SchedulerStatus, SweepResult
from autotask.services.scheduler_service import SchedulerEngine, get_scheduler_engine
from autotask.middleware.auth_middleware import get_current_user, require_roles
from autotask.models.user import User

router = APIRouter(prefix="/api/scheduler", tags=["scheduler"])


@router.post("/reminders/run", response_model=SweepResult)
async def run_reminders(
    engine: SchedulerEngine = Depends(get_scheduler_engine),
    current_user: User = Depends(require_roles("admin")),
):
    return await engine.run_reminder_sweep_now()


@router.post("/overdue/run", response_model=SweepResult)
async def run_overdue(
    engine: SchedulerEngine = Depends(get_scheduler_engine),
    current_user: User = Depends(require_roles("admin")),
):
    return await engine.run_overdue_sweep_now()


@router.get("/status", response_model=SchedulerStatus)
def status(
    engine: SchedulerEngine = Depends(get_scheduler_engine),
    current_user: User = Depends(get_current_user),
):
    return engine.scheduler_status()


@router.post("/stop", response_model=SchedulerStatus)
async def stop(
    engine: SchedulerEngine = Depends(get_scheduler_engine),
    current_user: User = Depends(require_roles("admin")),
):
    await engine.stop_scheduler()
    return engine.scheduler_status()
