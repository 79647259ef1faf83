"""Users API router: user listing with task statistics and the monthly ranking."""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from typing import List
from autotask.clock import get_clock
from autotask.database import get_db
from autotask.schemas.user import RankingEntry, UserStats, UserWithStats
from autotask.services import user_service
from autotask.middleware.auth_middleware import get_current_user
from autotask.models.user import User

router = APIRouter(prefix="/api/users", tags=["users"])


@router.get("", response_model=List[UserWithStats])
def list_users(db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    return user_service.list_users_with_stats(db)


@router.get("/ranking", response_model=List[RankingEntry])
def ranking(
    db: Session = Depends(get_db),
    clock=Depends(get_clock),
    current_user: User = Depends(get_current_user),
):
    return user_service.get_ranking(db, clock.now())


@router.get("/{user_id}/stats", response_model=UserStats)
def user_stats(user_id: int, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    return user_service.get_user_stats(db, user_id)
