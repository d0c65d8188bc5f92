import logging
from datetime import datetime, timedelta, timezone
from fastapi import Depends, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import JWTError, jwt
from passlib.context import CryptContext
from sqlalchemy.orm import Session
from lodge.config import Settings
from lodge.db import get_db
from lodge.models import User, UserRole
from lodge.utils.errors import Unauthenticated, Forbidden


logger = logging.getLogger(__name__)

# Password hashing
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

# HTTP Bearer scheme for JWT token; a missing header is reported by get_current_user
bearer_scheme = HTTPBearer(
    scheme_name="JWT",
    description="Enter 'Bearer <your_jwt_token>'. Obtain the token via /auth/login.",
    auto_error=False,
)


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def verify_password(plain_password, hashed_password):
    """Verify a plain password against a hashed password."""
    return pwd_context.verify(plain_password, hashed_password)


def get_password_hash(password):
    """Hash a password for storage."""
    return pwd_context.hash(password)


def create_access_token(user: User, settings: Settings):
    """Create a JWT access token carrying the user id and role."""
    expire = datetime.now(timezone.utc) + timedelta(minutes=settings.access_token_expire_minutes)
    to_encode = {
        "sub": str(user.id),
        "username": user.username,
        "role": user.role.value,
        "exp": expire,
    }
    return jwt.encode(to_encode, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(bearer_scheme),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
) -> User:
    """
    Resolve the Bearer token to an active user.

    A missing token is 401; a bad, expired or orphaned token and an inactive
    user are 403.
    """
    if credentials is None or not credentials.credentials:
        raise Unauthenticated("Access token required")

    try:
        payload = jwt.decode(credentials.credentials, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
        user_id = int(payload.get("sub"))
    except (JWTError, TypeError, ValueError) as e:
        logger.debug(f"Rejected token: {e}")
        raise Forbidden("Invalid token")

    user = db.get(User, user_id)
    if user is None or not user.is_active:
        raise Forbidden("Invalid or inactive user")
    return user


class RoleGate:
    """Route dependency admitting only users whose role is in `roles`."""

    def __init__(self, roles, message="Access denied"):
        self.roles = frozenset(roles)
        self.message = message

    def __call__(self, user: User = Depends(get_current_user)) -> User:
        if user.role not in self.roles:
            logger.debug(f"User {user.username} with role {user.role.value} refused by {sorted(r.value for r in self.roles)}")
            raise Forbidden(self.message)
        return user


ADMIN_ONLY = RoleGate({UserRole.ADMIN}, "Admin access required")
STAFF_OR_ADMIN = RoleGate({UserRole.ADMIN, UserRole.STAFF}, "Staff access required")
