"""Registration, login and profile routes"""
from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session
from shop_service.api.dependencies import get_current_user, get_settings
from shop_service.config import Settings
from shop_service.db.database import get_db
from shop_service.exceptions import AuthenticationFailed
from shop_service.models.schemas import LoginRequest, LoginResponse, UserCreate, UserResponse, UserUpdate
from shop_service.models.user import User
from shop_service.services.auth import create_access_token
from shop_service.services.user_service import UserService
from datetime import timedelta
import logging

logger = logging.getLogger(__name__)

router = APIRouter(tags=["auth"])


@router.post("/auth/register", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
def register_user(user: UserCreate, db: Session = Depends(get_db)):
    """Register a new user with the default ``user`` role"""
    return UserService.create_user(db, user)


@router.post("/auth/login", response_model=LoginResponse)
def login(
    credentials: LoginRequest,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings)
):
    """Login user and return JWT token"""
    user = UserService.authenticate_user(db, credentials.email, credentials.password)
    if not user:
        raise AuthenticationFailed("invalid email or password")

    access_token = create_access_token(
        data={"sub": str(user.id), "email": user.email},
        secret_key=settings.jwt_secret,
        algorithm=settings.jwt_algorithm,
        expires_delta=timedelta(hours=settings.jwt_expire_hours)
    )

    return LoginResponse(access_token=access_token, user=UserResponse.model_validate(user))


@router.get("/user/profile", response_model=UserResponse)
def get_profile(user: User = Depends(get_current_user)):
    return user


@router.put("/user/profile", response_model=UserResponse)
def update_profile(
    user_data: UserUpdate,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    return UserService.update_user(db, user.id, user_data)


@router.get("/user/{user_id}", response_model=UserResponse)
def get_user(
    user_id: int,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Look up another user's public profile"""
    return UserService.get_user(db, user_id)
