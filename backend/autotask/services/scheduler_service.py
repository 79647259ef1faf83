"""
Background sweeps over the task collection and the scheduler that runs them.

Two jobs:
- deadline reminder: daily at REMINDER_HOUR:REMINDER_MINUTE, notifies assignees
  of pending tasks due between the start of today and the end of tomorrow;
- overdue check: every OVERDUE_INTERVAL_MINUTES, notifies assignees of pending
  tasks whose deadline has passed.

Both are idempotent through one-way flags on the task (reminder_sent,
overdue_notification_sent). A flag is set only after its notification was
delivered, so a failed send is retried on a later run and a delivered one is
never repeated. Overdue itself stays a derived status; the sweep never writes it.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Awaitable, Callable, Dict, List, Optional

from sqlalchemy.orm import Session

from autotask.clock import system_clock
from autotask.config import settings
from autotask.database import SessionLocal
from autotask.ports import Clock, NotificationKind, Notifier
from autotask.repositories.task_repository import TaskRepository
from autotask.schemas.scheduler import SchedulerStatus, SweepResult, SweepTaskResult
from autotask.schemas.user import UserOut
from autotask.services.notification_service import NotificationBatch, get_notifier
from autotask.services.status_service import to_task_out
from autotask.services.user_service import UserDirectory
from autotask.utils.time import reminder_window

logger = logging.getLogger(__name__)

REMINDER_JOB = "deadline_reminder"
OVERDUE_JOB = "overdue_check"

JobFn = Callable[[], Awaitable[object]]

# Local midnight; interval ticks are counted from here.
INTERVAL_EPOCH = datetime(2000, 1, 1)


# ---- triggers ----


@dataclass(frozen=True)
class DailyTrigger:
    """Fires once a day at a fixed local time (cron "M H * * *")."""

    hour: int
    minute: int = 0

    def __post_init__(self) -> None:
        if not 0 <= self.hour <= 23 or not 0 <= self.minute <= 59:
            raise ValueError(f"invalid time of day {self.hour:02d}:{self.minute:02d}")

    def next_fire(self, after: datetime) -> datetime:
        candidate = after.replace(hour=self.hour, minute=self.minute, second=0, microsecond=0)
        if candidate <= after:
            candidate += timedelta(days=1)
        return candidate


@dataclass(frozen=True)
class IntervalTrigger:
    """
    Fires every `seconds`, on multiples of the interval counted from a fixed
    epoch (cron "0 * * * *" for 3600). Counting from the epoch instead of from
    midnight keeps the gaps even for intervals that do not divide a day.
    """

    seconds: float

    def __post_init__(self) -> None:
        if self.seconds <= 0:
            raise ValueError("interval must be positive")

    def next_fire(self, after: datetime) -> datetime:
        elapsed = (after - INTERVAL_EPOCH).total_seconds()
        steps = int(elapsed // self.seconds) + 1
        return INTERVAL_EPOCH + timedelta(seconds=steps * self.seconds)


# ---- scheduler ----


@dataclass
class ScheduledJob:
    name: str
    trigger: object
    fn: JobFn
    runner: Optional[asyncio.Task] = None
    running: bool = False
    last_run: Optional[datetime] = None
    next_run: Optional[datetime] = None
    runs: int = 0

    @property
    def active(self) -> bool:
        return self.runner is not None and not self.runner.done()


class Scheduler:
    """
    Runs registered jobs on their triggers inside the current event loop.

    Each job has its own loop: compute the next fire time, sleep until then,
    run, repeat. The next fire time is computed only after a run finishes, so
    a job never overlaps itself; a run that outlasts its period skips the
    missed ticks. An exception from a run is logged and the loop continues.
    """

    def __init__(self, clock: Clock = system_clock, *, max_sleep: float = 60.0) -> None:
        self._clock = clock
        self._max_sleep = max_sleep
        self._jobs: Dict[str, ScheduledJob] = {}

    def schedule(self, name: str, trigger, fn: JobFn) -> ScheduledJob:
        if name in self._jobs and self._jobs[name].active:
            raise RuntimeError(f"job {name!r} is already scheduled")
        job = ScheduledJob(name=name, trigger=trigger, fn=fn)
        self._jobs[name] = job
        return job

    def start(self) -> None:
        for job in self._jobs.values():
            if job.active:
                continue
            job.runner = asyncio.create_task(self._run_job(job), name=f"scheduler:{job.name}")
            logger.info("[scheduler] started job %s (%s)", job.name, job.trigger)

    async def stop(self) -> None:
        runners = []
        for job in self._jobs.values():
            if job.runner is not None and not job.runner.done():
                job.runner.cancel()
                runners.append(job.runner)
                logger.info("[scheduler] stopped job %s", job.name)
        if runners:
            await asyncio.gather(*runners, return_exceptions=True)
        for job in self._jobs.values():
            job.runner = None
            job.running = False
            job.next_run = None

    def is_active(self, name: str) -> bool:
        job = self._jobs.get(name)
        return bool(job and job.active)

    def status(self) -> SchedulerStatus:
        return SchedulerStatus(
            reminder_job=self.is_active(REMINDER_JOB),
            overdue_job=self.is_active(OVERDUE_JOB),
        )

    def jobs(self) -> List[ScheduledJob]:
        return list(self._jobs.values())

    async def _run_job(self, job: ScheduledJob) -> None:
        while True:
            job.next_run = job.trigger.next_fire(self._clock.now())
            await self._sleep_until(job.next_run)
            job.running = True
            try:
                await job.fn()
            except asyncio.CancelledError:
                raise
            except Exception:
                logger.exception("[scheduler] job %s failed", job.name)
            finally:
                job.running = False
                job.last_run = self._clock.now()
                job.runs += 1

    async def _sleep_until(self, when: datetime) -> None:
        # Sleep in bounded slices so clock jumps (DST, suspend) are noticed.
        while True:
            remaining = (when - self._clock.now()).total_seconds()
            if remaining <= 0:
                return
            await asyncio.sleep(min(remaining, self._max_sleep))


# ---- sweeps ----


@dataclass
class _Candidate:
    task_id: int
    snapshot: object
    user: Optional[UserOut]
    extra: dict = field(default_factory=dict)


class TaskSweeper:
    """
    The reminder and overdue sweeps.

    Each run opens its own session, selects candidates, queues one notification
    per task on a NotificationBatch, then sets the task's flag for every
    notification that went out. Loading failures abandon the run with no side
    effects. A per-sweep lock keeps a manual run from interleaving with a
    scheduled one.
    """

    def __init__(
        self,
        notifier: Notifier,
        *,
        session_factory: Callable[[], Session] = SessionLocal,
        clock: Clock = system_clock,
    ) -> None:
        self.notifier = notifier
        self.session_factory = session_factory
        self.clock = clock
        self._locks = {REMINDER_JOB: asyncio.Lock(), OVERDUE_JOB: asyncio.Lock()}

    async def run_reminder_sweep(self) -> SweepResult:
        async with self._locks[REMINDER_JOB]:
            return await self._sweep(
                kind=REMINDER_JOB,
                notification=NotificationKind.DEADLINE_REMINDER,
                flag="reminder_sent",
                select=self._reminder_candidates,
            )

    async def run_overdue_sweep(self) -> SweepResult:
        async with self._locks[OVERDUE_JOB]:
            return await self._sweep(
                kind=OVERDUE_JOB,
                notification=NotificationKind.TASK_OVERDUE,
                flag="overdue_notification_sent",
                select=self._overdue_candidates,
            )

    def _reminder_candidates(self, repo: TaskRepository, now: datetime):
        start, end = reminder_window(now)
        for task in repo.list_reminder_candidates(start, end):
            hours_left = round((task.deadline - now).total_seconds() / 3600)
            yield task, {"hours_left": hours_left}

    def _overdue_candidates(self, repo: TaskRepository, now: datetime):
        for task in repo.list_overdue_candidates(now):
            yield task, {}

    async def _sweep(self, *, kind: str, notification: NotificationKind, flag: str, select) -> SweepResult:
        logger.info("[scheduler] running %s sweep", kind)
        try:
            now = self.clock.now()
            candidates = await asyncio.to_thread(self._load_candidates, select, now)
        except Exception as exc:
            logger.exception("[scheduler] %s sweep could not load tasks", kind)
            return SweepResult(kind=kind, success=False, error=str(exc))

        results: List[SweepTaskResult] = []
        batch = NotificationBatch(self.notifier)
        queued: List[_Candidate] = []
        for c in candidates:
            if c.user is None:
                logger.warning("[scheduler] %s: no reachable assignee for task %s, skipping", kind, c.task_id)
                results.append(SweepTaskResult(task_id=c.task_id, success=False, error="Assignee not found"))
                continue
            batch.add(notification, c.snapshot, c.user, **c.extra)
            queued.append(c)

        sent = 0
        for c, (_, outcome) in zip(queued, await batch.dispatch()):
            if outcome.success:
                try:
                    await asyncio.to_thread(self._mark, c.task_id, flag)
                except Exception as exc:
                    logger.exception("[scheduler] %s: could not flag task %s", kind, c.task_id)
                    results.append(SweepTaskResult(task_id=c.task_id, success=False, error=str(exc)))
                    continue
                sent += 1
            results.append(SweepTaskResult(task_id=c.task_id, success=outcome.success, error=outcome.error))

        results.sort(key=lambda r: r.task_id)
        logger.info("[scheduler] %s sweep done: %d selected, %d sent", kind, len(candidates), sent)
        return SweepResult(kind=kind, count=len(candidates), sent=sent, results=results)

    # Session work runs on a worker thread; the event loop never blocks on the database.

    def _load_candidates(self, select, now: datetime) -> List[_Candidate]:
        db = self.session_factory()
        try:
            return self._load(db, select, now)
        finally:
            db.close()

    def _mark(self, task_id: int, flag: str) -> None:
        db = self.session_factory()
        try:
            TaskRepository(db).mark_flag(task_id, flag, updated_at=self.clock.now())
        finally:
            db.close()

    def _load(self, db: Session, select, now: datetime) -> List[_Candidate]:
        repo = TaskRepository(db)
        directory = UserDirectory(db)
        out = []
        for task, extra in select(repo, now):
            user = directory.find_user(task.assignee_id)
            user_out = UserOut.model_validate(user) if user is not None and user.email else None
            out.append(_Candidate(task_id=task.task_id, snapshot=to_task_out(task, now), user=user_out, extra=extra))
        return out


# ---- application wiring ----


class SchedulerEngine:
    """Owns the sweeper and the scheduler that drives it."""

    def __init__(
        self,
        sweeper: TaskSweeper,
        *,
        clock: Clock = system_clock,
        reminder_trigger: Optional[DailyTrigger] = None,
        overdue_trigger: Optional[IntervalTrigger] = None,
    ) -> None:
        self.sweeper = sweeper
        self.scheduler = Scheduler(clock)
        self.reminder_trigger = reminder_trigger or DailyTrigger(settings.REMINDER_HOUR, settings.REMINDER_MINUTE)
        self.overdue_trigger = overdue_trigger or IntervalTrigger(settings.OVERDUE_INTERVAL_MINUTES * 60)

    def start(self) -> None:
        if not self.scheduler.is_active(REMINDER_JOB):
            self.scheduler.schedule(REMINDER_JOB, self.reminder_trigger, self.sweeper.run_reminder_sweep)
        if not self.scheduler.is_active(OVERDUE_JOB):
            self.scheduler.schedule(OVERDUE_JOB, self.overdue_trigger, self.sweeper.run_overdue_sweep)
        self.scheduler.start()

    async def stop_scheduler(self) -> None:
        await self.scheduler.stop()

    def scheduler_status(self) -> SchedulerStatus:
        return self.scheduler.status()

    async def run_reminder_sweep_now(self) -> SweepResult:
        return await self.sweeper.run_reminder_sweep()

    async def run_overdue_sweep_now(self) -> SweepResult:
        return await self.sweeper.run_overdue_sweep()


_engine: Optional[SchedulerEngine] = None


def get_scheduler_engine() -> SchedulerEngine:
    global _engine
    if _engine is None:
        _engine = SchedulerEngine(TaskSweeper(get_notifier()))
    return _engine
