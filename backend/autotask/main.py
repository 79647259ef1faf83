"""FastAPI application entry point. Registers middleware, API routers and the background scheduler."""

import logging
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from autotask.config import settings
from autotask.database import Base, engine
from autotask.logging_setup import setup_logging
import autotask.models  # noqa: F401 - registers models on the metadata
from autotask.routers import auth, tasks, users, notifications, scheduler
from autotask.services.scheduler_service import get_scheduler_engine

setup_logging(settings.LOG_LEVEL)
logger = logging.getLogger(__name__)

app = FastAPI(
    title="AutoTask",
    description="Task assignment, submission scoring and deadline reminders",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(auth.router)
app.include_router(tasks.router)
app.include_router(users.router)
app.include_router(notifications.router)
app.include_router(scheduler.router)


@app.on_event("startup")
async def startup():
    Base.metadata.create_all(bind=engine)
    if settings.SCHEDULER_ENABLED:
        get_scheduler_engine().start()
        logger.info("[scheduler] background jobs started")
    else:
        logger.info("[scheduler] disabled by configuration")


@app.on_event("shutdown")
async def shutdown():
    await get_scheduler_engine().stop_scheduler()


@app.get("/api/health")
def health_check():
    return {"status": "ok", "service": "AutoTask"}
