"""Pydantic request/response contracts for users, login and statistics."""

from pydantic import BaseModel
from typing import Optional


class LoginRequest(BaseModel):
    email: str


class UserOut(BaseModel):
    user_id: int
    email: str
    name: Optional[str] = None
    display_name: str
    role: str
    is_admin: bool

    model_config = {"from_attributes": True}


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user: UserOut


class UserStats(BaseModel):
    user_id: int
    total_assigned: int = 0
    total_completed: int = 0
    average_score: float = 0.0
    on_time: int = 0
    late: int = 0


class UserWithStats(UserOut):
    stats: UserStats


class RankingEntry(BaseModel):
    user_id: int
    display_name: str
    monthly_score: int
