"""Auth API router: mock SSO login by email and the current-user lookup."""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from autotask.database import get_db
from autotask.schemas.user import LoginRequest, TokenResponse, UserOut
from autotask.services.auth_service import create_access_token, mock_sso_login
from autotask.middleware.auth_middleware import get_current_user
from autotask.models.user import User

router = APIRouter(prefix="/api/auth", tags=["auth"])


@router.post("/login", response_model=TokenResponse)
def login(request: LoginRequest, db: Session = Depends(get_db)):
    user = mock_sso_login(db, request.email)
    token = create_access_token(user.user_id)
    return TokenResponse(access_token=token, user=UserOut.model_validate(user))


@router.get("/me", response_model=UserOut)
def me(current_user: User = Depends(get_current_user)):
    return current_user
