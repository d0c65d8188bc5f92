from datetime import datetime
from pydantic import EmailStr, Field, field_validator
from typing import Optional
from lodge.models import UserRole
from lodge.schemas.base import CamelModel
from lodge.utils.validation_helpers import validate_password_strength, validate_username


class LoginRequest(CamelModel):
    username: str = Field(min_length=1)
    password: str = Field(min_length=1)

    @field_validator("username")
    @classmethod
    def strip_username(cls, value):
        return value.strip()


class UserResponse(CamelModel):
    id: int
    username: str
    email: str
    first_name: str
    last_name: str
    role: UserRole
    is_active: bool
    last_login: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime


class LoginResponse(CamelModel):
    message: str
    token: str
    user: UserResponse


class ProfileResponse(CamelModel):
    user: UserResponse


class PasswordChange(CamelModel):
    current_password: str = Field(min_length=1)
    new_password: str

    @field_validator("new_password")
    @classmethod
    def check_new_password(cls, value):
        return validate_password_strength(value, 6)


def _role(value):
    if isinstance(value, str):
        return value.strip().upper()
    return value


class UserCreate(CamelModel):
    username: str
    email: EmailStr
    password: str
    first_name: str = Field(min_length=1, max_length=50)
    last_name: str = Field(min_length=1, max_length=50)
    role: UserRole = UserRole.STAFF

    @field_validator("username")
    @classmethod
    def check_username(cls, value):
        return validate_username(value)

    @field_validator("password")
    @classmethod
    def check_password(cls, value):
        return validate_password_strength(value, 8)

    @field_validator("role", mode="before")
    @classmethod
    def check_role(cls, value):
        return _role(value)


class UserUpdate(CamelModel):
    username: Optional[str] = None
    email: Optional[EmailStr] = None
    password: Optional[str] = None
    first_name: Optional[str] = Field(default=None, min_length=1, max_length=50)
    last_name: Optional[str] = Field(default=None, min_length=1, max_length=50)
    role: Optional[UserRole] = None
    is_active: Optional[bool] = None

    @field_validator("username")
    @classmethod
    def check_username(cls, value):
        return validate_username(value) if value is not None else value

    @field_validator("password")
    @classmethod
    def check_password(cls, value):
        return validate_password_strength(value, 8) if value is not None else value

    @field_validator("role", mode="before")
    @classmethod
    def check_role(cls, value):
        return _role(value)
