"""Seed the database with demo users and a few tasks."""
import sys
import os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from datetime import timedelta
from autotask.clock import system_clock
from autotask.database import SessionLocal, engine, Base
import autotask.models  # noqa: F401

from autotask.models.user import User
from autotask.models.task import Task, TaskStatus, Priority
from autotask.services.scoring_service import score_submission


def seed():
    Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    try:
        if db.query(User).count() > 0:
            print("Database already seeded. Skipping.")
            return

        users = [
            User(email="admin@example.com", name="Admin", role="admin"),
            User(email="user@example.com", name="Demo User", role="user"),
            User(email="dev@example.com", name="Dev", role="user"),
        ]
        db.add_all(users)
        db.flush()
        admin, demo, dev = users

        now = system_clock.now().replace(second=0, microsecond=0)
        submitted_at = now - timedelta(days=2)
        done_deadline = now - timedelta(days=1)
        tasks = [
            Task(title="Draft onboarding guide", description="First version for new hires",
                 assignee_id=demo.user_id, assigner_id=admin.user_id, priority=int(Priority.HIGH),
                 deadline=now + timedelta(hours=20), status=TaskStatus.PENDING.value,
                 created_at=now - timedelta(days=3), updated_at=now - timedelta(days=3)),
            Task(title="Update dependency report", description="",
                 assignee_id=dev.user_id, assigner_id=admin.user_id, priority=int(Priority.MEDIUM),
                 deadline=now - timedelta(hours=5), status=TaskStatus.PENDING.value,
                 created_at=now - timedelta(days=5), updated_at=now - timedelta(days=5)),
            Task(title="Review Q2 metrics", description="Summarize in one page",
                 assignee_id=demo.user_id, assigner_id=admin.user_id, priority=int(Priority.LOW),
                 deadline=done_deadline, status=TaskStatus.COMPLETED.value,
                 created_at=now - timedelta(days=7), updated_at=now - timedelta(days=1),
                 submitted_at=submitted_at, submission_file_id=1,
                 submission_score=score_submission(done_deadline, submitted_at),
                 score=score_submission(done_deadline, submitted_at)),
        ]
        db.add_all(tasks)
        db.commit()
        print(f"Seeded {len(users)} users and {len(tasks)} tasks.")
    except Exception as e:
        db.rollback()
        print(f"Error seeding data: {e}")
        raise
    finally:
        db.close()


if __name__ == "__main__":
    seed()
