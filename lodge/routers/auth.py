import logging
from datetime import datetime
from fastapi import APIRouter, Depends, status
from sqlalchemy import or_
from sqlalchemy.orm import Session
from typing import List
from lodge.config import Settings
from lodge.db import get_db
from lodge.models import User
from lodge.schemas.base import MessageResponse
from lodge.schemas.user import (
    LoginRequest,
    LoginResponse,
    ProfileResponse,
    PasswordChange,
    UserCreate,
    UserUpdate,
    UserResponse,
)
from lodge.utils.auth import (
    ADMIN_ONLY,
    create_access_token,
    get_current_user,
    get_password_hash,
    get_settings,
    verify_password,
)
from lodge.utils.errors import Unauthenticated, ValidationFailed, NotFound


logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/auth",
    tags=["auth"],
)


def get_user_or_404(db: Session, user_id: int) -> User:
    user = db.get(User, user_id)
    if not user:
        raise NotFound("User not found")
    return user


def ensure_unique(db: Session, username=None, email=None, user_id=None):
    for field, column, value in (("username", User.username, username), ("email", User.email, email)):
        if value is None:
            continue
        query = db.query(User.id).filter(column == value)
        if user_id is not None:
            query = query.filter(User.id != user_id)
        if query.first():
            raise ValidationFailed(f"{field} already exists")


@router.post("/login", response_model=LoginResponse)
def login(
    credentials: LoginRequest,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    """
    Exchange a username (or email) and password for a Bearer token.
    """
    user = (
        db.query(User)
        .filter(
            or_(User.username == credentials.username, User.email == credentials.username),
            User.is_active.is_(True),
        )
        .first()
    )
    if not user or not verify_password(credentials.password, user.hashed_password):
        logger.info(f"Failed login for {credentials.username}")
        raise Unauthenticated("Invalid credentials")

    user.last_login = datetime.now()
    db.commit()
    db.refresh(user)
    logger.info(f"User {user.username} logged in")
    return {
        "message": "Login successful",
        "token": create_access_token(user, settings),
        "user": user,
    }


@router.get("/profile", response_model=ProfileResponse)
def get_profile(current_user: User = Depends(get_current_user)):
    return {"user": current_user}


@router.post("/change-password", response_model=MessageResponse)
def change_password(
    change: PasswordChange,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    if not verify_password(change.current_password, current_user.hashed_password):
        raise ValidationFailed("Current password is incorrect")

    current_user.hashed_password = get_password_hash(change.new_password)
    db.commit()
    logger.info(f"User {current_user.username} changed password")
    return {"message": "Password changed successfully"}


@router.post(
    "/users",
    response_model=UserResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(ADMIN_ONLY)],
)
def create_user(user: UserCreate, db: Session = Depends(get_db)):
    """
    Create a staff or admin account.
    Requires admin.
    """
    ensure_unique(db, username=user.username, email=user.email)
    db_user = User(
        username=user.username,
        email=user.email,
        hashed_password=get_password_hash(user.password),
        first_name=user.first_name,
        last_name=user.last_name,
        role=user.role,
    )
    db.add(db_user)
    db.commit()
    db.refresh(db_user)
    logger.info(f"Created {db_user.role.value} user {db_user.username}")
    return db_user


@router.get("/users", response_model=List[UserResponse], dependencies=[Depends(ADMIN_ONLY)])
def get_users(db: Session = Depends(get_db)):
    return db.query(User).order_by(User.created_at.desc(), User.id.desc()).all()


@router.get("/users/{user_id}", response_model=UserResponse, dependencies=[Depends(ADMIN_ONLY)])
def get_user(user_id: int, db: Session = Depends(get_db)):
    return get_user_or_404(db, user_id)


@router.put("/users/{user_id}", response_model=UserResponse, dependencies=[Depends(ADMIN_ONLY)])
def update_user(user_id: int, user_update: UserUpdate, db: Session = Depends(get_db)):
    """
    Update an account. A new password is hashed before it is stored.
    Requires admin.
    """
    db_user = get_user_or_404(db, user_id)
    update_data = {k: v for k, v in user_update.model_dump(exclude_unset=True).items() if v is not None}
    ensure_unique(db, update_data.get("username"), update_data.get("email"), user_id)

    password = update_data.pop("password", None)
    if password:
        db_user.hashed_password = get_password_hash(password)
    for key, value in update_data.items():
        setattr(db_user, key, value)

    db.commit()
    db.refresh(db_user)
    return db_user


@router.delete("/users/{user_id}", response_model=MessageResponse, dependencies=[Depends(ADMIN_ONLY)])
def deactivate_user(user_id: int, db: Session = Depends(get_db)):
    """
    Deactivate an account. Users are never deleted.
    Requires admin.
    """
    db_user = get_user_or_404(db, user_id)
    db_user.is_active = False
    db.commit()
    logger.info(f"Deactivated user {db_user.username}")
    return {"message": "User deactivated successfully"}
