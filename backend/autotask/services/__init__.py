"""Service layer package."""

from autotask.services import (
    scoring_service,
    status_service,
    listing_service,
    stats_service,
    notification_service,
    user_service,
    auth_service,
    task_service,
    scheduler_service,
)
