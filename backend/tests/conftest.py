import pytest
from datetime import datetime
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from autotask.clock import get_clock
from autotask.database import Base, get_db
from autotask.main import app
from autotask.models.task import Task, TaskStatus, Priority
from autotask.models.user import User
from autotask.services.notification_service import get_notifier
from autotask.services.scheduler_service import SchedulerEngine, TaskSweeper, get_scheduler_engine
from tests.fakes import FixedClock, RecordingNotifier

TEST_DB_URL = "sqlite:///./test_autotask.db"

engine = create_engine(TEST_DB_URL, connect_args={"check_same_thread": False})
TestingSession = sessionmaker(autocommit=False, autoflush=False, bind=engine)

NOW = datetime(2025, 6, 10, 9, 0)


def override_get_db():
    db = TestingSession()
    try:
        yield db
    finally:
        db.close()


app.dependency_overrides[get_db] = override_get_db


@pytest.fixture(autouse=True)
def setup_db():
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db():
    db = TestingSession()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def clock():
    clock = FixedClock(NOW)
    app.dependency_overrides[get_clock] = lambda: clock
    yield clock
    app.dependency_overrides.pop(get_clock, None)


@pytest.fixture
def notifier():
    notifier = RecordingNotifier()
    app.dependency_overrides[get_notifier] = lambda: notifier
    yield notifier
    app.dependency_overrides.pop(get_notifier, None)


@pytest.fixture
def sweeper(clock, notifier):
    return TaskSweeper(notifier, session_factory=TestingSession, clock=clock)


@pytest.fixture
def scheduler_engine(sweeper, clock):
    sched = SchedulerEngine(sweeper, clock=clock)
    app.dependency_overrides[get_scheduler_engine] = lambda: sched
    yield sched
    app.dependency_overrides.pop(get_scheduler_engine, None)


@pytest.fixture
def client(clock, notifier):
    return TestClient(app)


@pytest.fixture
def seed_users(db):
    users = {
        "admin": User(email="admin@example.com", name="Admin", role="admin"),
        "alice": User(email="alice@example.com", name="Alice", role="user"),
        "bob": User(email="bob@example.com", name="Bob", role="user"),
    }
    for u in users.values():
        db.add(u)
    db.commit()
    for u in users.values():
        db.refresh(u)
    return users


def make_task(db, assignee, assigner, **fields) -> Task:
    """Insert a task row directly, bypassing the service layer."""
    values = dict(
        title="Quarterly report",
        description="",
        assignee_id=assignee.user_id,
        assigner_id=assigner.user_id,
        priority=int(Priority.MEDIUM),
        deadline=datetime(2025, 6, 11, 17, 0),
        status=TaskStatus.PENDING.value,
        created_at=datetime(2025, 6, 1, 9, 0),
        reminder_sent=False,
        overdue_notification_sent=False,
    )
    values.update(fields)
    task = Task(**values)
    db.add(task)
    db.commit()
    db.refresh(task)
    return task


def get_token(client, email: str) -> str:
    resp = client.post("/api/auth/login", json={"email": email})
    assert resp.status_code == 200, resp.text
    return resp.json()["access_token"]


def auth_headers(client, email: str) -> dict:
    return {"Authorization": f"Bearer {get_token(client, email)}"}
