"""Reminder and overdue sweeps, triggers and the job loop."""

import asyncio
from datetime import datetime, timedelta

import pytest

from autotask.models.task import TaskStatus
from autotask.ports import NotificationKind
from autotask.services.scheduler_service import (
    OVERDUE_JOB,
    REMINDER_JOB,
    DailyTrigger,
    IntervalTrigger,
    Scheduler,
    SchedulerEngine,
    TaskSweeper,
)
from tests.conftest import NOW, TestingSession, make_task
from tests.fakes import FailingNotifier, FixedClock, RecordingNotifier


# ---- reminder sweep ----


@pytest.mark.asyncio
async def test_reminder_sweep_sends_once(db, seed_users, sweeper, notifier):
    task = make_task(db, seed_users["alice"], seed_users["admin"], deadline=datetime(2025, 6, 11, 17, 0))

    first = await sweeper.run_reminder_sweep()
    second = await sweeper.run_reminder_sweep()

    assert first.success is True
    assert (first.count, first.sent) == (1, 1)
    assert (second.count, second.sent) == (0, 0)
    assert notifier.kinds() == [NotificationKind.DEADLINE_REMINDER]
    assert notifier.sent[0].extra["hours_left"] == 32
    db.refresh(task)
    assert task.reminder_sent is True


@pytest.mark.asyncio
async def test_reminder_window_is_today_and_tomorrow(db, seed_users, sweeper, notifier):
    alice, admin = seed_users["alice"], seed_users["admin"]
    earlier_today = make_task(db, alice, admin, deadline=datetime(2025, 6, 10, 0, 0))
    end_of_tomorrow = make_task(db, alice, admin, deadline=datetime(2025, 6, 11, 23, 59, 59))
    make_task(db, alice, admin, deadline=datetime(2025, 6, 12, 0, 0))
    make_task(db, alice, admin, deadline=datetime(2025, 6, 9, 23, 0))

    result = await sweeper.run_reminder_sweep()

    assert sorted(r.task_id for r in result.results) == [earlier_today.task_id, end_of_tomorrow.task_id]


@pytest.mark.asyncio
async def test_reminder_skips_non_pending_and_already_reminded(db, seed_users, sweeper, notifier):
    alice, admin = seed_users["alice"], seed_users["admin"]
    make_task(db, alice, admin, reminder_sent=True)
    make_task(
        db, alice, admin,
        status=TaskStatus.SUBMITTED.value,
        submitted_at=datetime(2025, 6, 9, 12, 0),
        submission_file_id=3,
    )

    result = await sweeper.run_reminder_sweep()

    assert result.count == 0
    assert notifier.sent == []


@pytest.mark.asyncio
async def test_reminder_with_missing_assignee_is_reported(db, seed_users, sweeper, notifier):
    ghost = make_task(db, seed_users["alice"], seed_users["admin"], assignee_id=999)

    result = await sweeper.run_reminder_sweep()

    assert result.success is True
    [entry] = result.results
    assert entry.task_id == ghost.task_id
    assert entry.success is False
    assert notifier.sent == []
    db.refresh(ghost)
    assert ghost.reminder_sent is False


@pytest.mark.asyncio
async def test_failed_send_does_not_block_others_and_is_retried(db, seed_users, clock):
    alice, admin = seed_users["alice"], seed_users["admin"]
    flaky = make_task(db, alice, admin, title="Flaky")
    fine = make_task(db, alice, admin, title="Fine")

    failing = FailingNotifier(task_ids=[flaky.task_id], raise_error=True)
    result = await TaskSweeper(failing, session_factory=TestingSession, clock=clock).run_reminder_sweep()

    assert (result.count, result.sent) == (2, 1)
    outcome = {r.task_id: r.success for r in result.results}
    assert outcome == {flaky.task_id: False, fine.task_id: True}
    db.refresh(flaky)
    db.refresh(fine)
    assert flaky.reminder_sent is False
    assert fine.reminder_sent is True

    retry = RecordingNotifier()
    second = await TaskSweeper(retry, session_factory=TestingSession, clock=clock).run_reminder_sweep()
    assert second.sent == 1
    assert [s.task.task_id for s in retry.sent] == [flaky.task_id]


@pytest.mark.asyncio
async def test_unsuccessful_result_leaves_flag_unset(db, seed_users, clock):
    task = make_task(db, seed_users["alice"], seed_users["admin"])

    result = await TaskSweeper(
        FailingNotifier(), session_factory=TestingSession, clock=clock,
    ).run_reminder_sweep()

    assert result.sent == 0
    assert result.results[0].error == "mail server unavailable"
    db.refresh(task)
    assert task.reminder_sent is False


@pytest.mark.asyncio
async def test_sweep_load_failure_reports_without_side_effects(clock, notifier):
    def broken_session():
        raise RuntimeError("database is locked")

    result = await TaskSweeper(notifier, session_factory=broken_session, clock=clock).run_reminder_sweep()

    assert result.success is False
    assert result.error == "database is locked"
    assert result.count == 0
    assert notifier.sent == []


@pytest.mark.asyncio
async def test_concurrent_reminder_sweeps_notify_once(db, seed_users, sweeper, notifier):
    task = make_task(db, seed_users["alice"], seed_users["admin"], deadline=datetime(2025, 6, 11, 17, 0))

    first, second = await asyncio.gather(sweeper.run_reminder_sweep(), sweeper.run_reminder_sweep())

    assert first.sent + second.sent == 1
    assert len(notifier.sent) == 1
    assert notifier.sent[0].task.task_id == task.task_id
    db.refresh(task)
    assert task.reminder_sent is True


# ---- overdue sweep ----


@pytest.mark.asyncio
async def test_overdue_sweep_flags_without_writing_status(db, seed_users, sweeper, notifier):
    alice, admin = seed_users["alice"], seed_users["admin"]
    late = make_task(db, alice, admin, deadline=datetime(2025, 6, 9, 17, 0))
    make_task(db, alice, admin, deadline=datetime(2025, 6, 12, 17, 0))
    make_task(
        db, alice, admin,
        deadline=datetime(2025, 6, 8, 17, 0),
        status=TaskStatus.COMPLETED.value,
        submitted_at=datetime(2025, 6, 8, 12, 0),
        submission_file_id=5,
        score=1,
    )

    first = await sweeper.run_overdue_sweep()
    second = await sweeper.run_overdue_sweep()

    assert (first.count, first.sent) == (1, 1)
    assert second.count == 0
    assert notifier.kinds() == [NotificationKind.TASK_OVERDUE]
    db.refresh(late)
    assert late.overdue_notification_sent is True
    assert late.status == "Pending"


@pytest.mark.asyncio
async def test_overdue_requires_deadline_strictly_passed(db, seed_users, sweeper, notifier):
    make_task(db, seed_users["alice"], seed_users["admin"], deadline=NOW)
    result = await sweeper.run_overdue_sweep()
    assert result.count == 0


# ---- triggers ----


def test_daily_trigger_next_fire():
    trigger = DailyTrigger(8, 0)
    assert trigger.next_fire(datetime(2025, 6, 10, 7, 59)) == datetime(2025, 6, 10, 8, 0)
    assert trigger.next_fire(datetime(2025, 6, 10, 8, 0)) == datetime(2025, 6, 11, 8, 0)
    assert trigger.next_fire(datetime(2025, 6, 10, 23, 0)) == datetime(2025, 6, 11, 8, 0)


def test_interval_trigger_aligns_to_boundaries():
    trigger = IntervalTrigger(3600)
    assert trigger.next_fire(datetime(2025, 6, 10, 9, 15)) == datetime(2025, 6, 10, 10, 0)
    assert trigger.next_fire(datetime(2025, 6, 10, 10, 0)) == datetime(2025, 6, 10, 11, 0)
    assert trigger.next_fire(datetime(2025, 6, 10, 23, 30)) == datetime(2025, 6, 11, 0, 0)


def test_interval_trigger_keeps_even_gaps_across_midnight():
    trigger = IntervalTrigger(7 * 3600)
    fire = trigger.next_fire(datetime(2025, 6, 10, 12, 0))
    fires = []
    for _ in range(6):
        fires.append(fire)
        fire = trigger.next_fire(fire)
    gaps = {later - earlier for earlier, later in zip(fires, fires[1:])}
    assert gaps == {timedelta(hours=7)}
    assert fires[0].date() != fires[-1].date()


def test_triggers_reject_invalid_values():
    with pytest.raises(ValueError):
        DailyTrigger(24, 0)
    with pytest.raises(ValueError):
        IntervalTrigger(0)


# ---- job loop ----


@pytest.mark.asyncio
async def test_job_runs_when_clock_reaches_fire_time():
    clock = FixedClock(datetime(2025, 6, 10, 9, 0))
    scheduler = Scheduler(clock, max_sleep=0.01)
    runs = []

    async def job():
        runs.append(clock.now())

    scheduler.schedule("tick", IntervalTrigger(3600), job)
    scheduler.start()
    try:
        await asyncio.sleep(0.05)
        assert runs == []

        clock.advance(hours=1)
        await asyncio.sleep(0.05)
        assert runs == [datetime(2025, 6, 10, 10, 0)]
    finally:
        await scheduler.stop()


@pytest.mark.asyncio
async def test_failing_job_keeps_its_schedule():
    clock = FixedClock(datetime(2025, 6, 10, 9, 0))
    scheduler = Scheduler(clock, max_sleep=0.01)
    calls = []

    async def job():
        calls.append(1)
        raise RuntimeError("boom")

    scheduler.schedule("tick", IntervalTrigger(3600), job)
    scheduler.start()
    try:
        # let the runner compute its first fire time from 09:00
        await asyncio.sleep(0.05)
        clock.advance(hours=1)
        await asyncio.sleep(0.05)
        clock.advance(hours=1)
        await asyncio.sleep(0.05)
        assert len(calls) == 2
        assert scheduler.is_active("tick")
    finally:
        await scheduler.stop()


@pytest.mark.asyncio
async def test_engine_status_and_stop(sweeper, clock):
    engine = SchedulerEngine(sweeper, clock=clock)
    assert engine.scheduler_status().model_dump() == {"reminder_job": False, "overdue_job": False}

    engine.start()
    assert engine.scheduler.is_active(REMINDER_JOB)
    assert engine.scheduler.is_active(OVERDUE_JOB)
    assert engine.scheduler_status().model_dump() == {"reminder_job": True, "overdue_job": True}

    await engine.stop_scheduler()
    assert engine.scheduler_status().model_dump() == {"reminder_job": False, "overdue_job": False}
