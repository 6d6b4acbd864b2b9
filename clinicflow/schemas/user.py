from typing import Literal, Optional
from datetime import date, datetime
from pydantic import BaseModel, EmailStr, Field, field_validator

from clinicflow.models.user import Role


def not_blank(value: Optional[str]) -> Optional[str]:
    if value is None:
        return value
    value = value.strip()
    if not value:
        raise ValueError("must not be empty")
    return value


class UserBase(BaseModel):
    email: EmailStr
    first_name: str
    last_name: str
    phone: Optional[str] = None

    @field_validator("first_name", "last_name")
    @classmethod
    def names_not_blank(cls, v: Optional[str]) -> Optional[str]:
        return not_blank(v)


class RegisterRequest(UserBase):
    password: str = Field(..., min_length=8)
    # Admin accounts are created by operators, never through public registration
    role: Literal["patient", "doctor"] = "patient"

    # Patient profile fields
    date_of_birth: Optional[date] = None
    gender: Optional[Literal["male", "female", "other"]] = None

    # Doctor profile fields
    specialization: Optional[str] = None
    license_number: Optional[str] = None


class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1)


class RefreshTokenRequest(BaseModel):
    refresh_token: str


class ProfileUpdate(BaseModel):
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    phone: Optional[str] = None

    @field_validator("first_name", "last_name")
    @classmethod
    def names_not_blank(cls, v: Optional[str]) -> Optional[str]:
        return not_blank(v)


class PasswordChange(BaseModel):
    current_password: str
    new_password: str = Field(..., min_length=8)


class User(BaseModel):
    id: str
    email: EmailStr
    first_name: str
    last_name: str
    phone: Optional[str] = None
    role: Role
    is_active: bool
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class AuthResponse(BaseModel):
    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    expires_in: int
    user: User


class AccessTokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    expires_in: int
