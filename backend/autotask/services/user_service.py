"""User directory lookups and the statistics views built on top of them."""

from datetime import datetime
from typing import List, Optional

from sqlalchemy.orm import Session

from autotask.errors import NotFoundError
from autotask.models.user import User
from autotask.repositories.task_repository import TaskRepository
from autotask.schemas.user import RankingEntry, UserOut, UserStats, UserWithStats
from autotask.services import stats_service


class UserDirectory:
    """Resolves user ids to active users for a given session."""

    def __init__(self, db: Session) -> None:
        self.db = db

    def find_user(self, user_id: int) -> Optional[User]:
        if user_id is None:
            return None
        return (
            self.db.query(User)
            .filter(User.user_id == user_id, User.is_active == True)
            .first()
        )


def find_user(db: Session, user_id: int) -> Optional[User]:
    return UserDirectory(db).find_user(user_id)


def get_user(db: Session, user_id: int) -> User:
    user = find_user(db, user_id)
    if not user:
        raise NotFoundError(f"User {user_id} not found")
    return user


def list_users(db: Session) -> List[User]:
    return db.query(User).filter(User.is_active == True).order_by(User.user_id).all()


def get_user_stats(db: Session, user_id: int) -> UserStats:
    get_user(db, user_id)
    tasks = TaskRepository(db).list_for_assignee(user_id)
    return stats_service.user_stats(user_id, tasks)


def list_users_with_stats(db: Session) -> List[UserWithStats]:
    tasks = TaskRepository(db).list_all()
    out = []
    for user in list_users(db):
        base = UserOut.model_validate(user).model_dump()
        out.append(UserWithStats(**base, stats=stats_service.user_stats(user.user_id, tasks)))
    return out


def get_ranking(db: Session, now: datetime) -> List[RankingEntry]:
    return stats_service.rank_users(list_users(db), TaskRepository(db).list_all(), now)
