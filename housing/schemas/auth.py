"""
Pydantic schemas for authentication, sessions and user profiles.
"""

from enum import Enum
from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator
from typing import Optional, Dict, Any
from datetime import datetime
import uuid


class UserRole(str, Enum):
    """Roles stored on a profile."""
    LANDLORD = "landlord"
    STUDENT = "student"


class AuthUser(BaseModel):
    """Authenticated user as reported by the backend auth service."""

    model_config = ConfigDict(extra="ignore")

    id: uuid.UUID
    email: Optional[str] = None
    user_metadata: Dict[str, Any] = Field(default_factory=dict)


class AuthSession(BaseModel):
    """Access/refresh token pair issued by the backend."""

    model_config = ConfigDict(extra="ignore")

    access_token: str
    refresh_token: Optional[str] = None
    token_type: str = "bearer"
    expires_in: Optional[int] = None
    user: AuthUser


class Profile(BaseModel):
    """Profile row: landlord/user contact details and role."""

    model_config = ConfigDict(extra="ignore", from_attributes=True)

    id: uuid.UUID
    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    role: UserRole = UserRole.STUDENT
    created_at: Optional[datetime] = None

    @property
    def is_landlord(self) -> bool:
        return self.role == UserRole.LANDLORD


class LoginRequest(BaseModel):
    """Schema for login request."""

    email: EmailStr = Field(..., description="User email address", examples=["landlord@example.com"])
    password: str = Field(..., min_length=1, description="User password")


class SignUpRequest(BaseModel):
    """Schema for account registration."""

    email: EmailStr = Field(..., description="User email address")
    password: str = Field(..., min_length=8, description="Password (at least 8 characters)")
    name: str = Field(..., min_length=1, max_length=255, description="Display name")
    phone: Optional[str] = Field(None, max_length=50, description="Contact phone number")
    role: UserRole = Field(UserRole.STUDENT, description="Account role")

    @field_validator("name")
    @classmethod
    def validate_name(cls, v):
        if not v.strip():
            raise ValueError("Name cannot be empty")
        return v.strip()

    @field_validator("phone")
    @classmethod
    def empty_phone_is_none(cls, v):
        if v is not None and not v.strip():
            return None
        return v


class TokenResponse(BaseModel):
    """Tokens returned by the login and signup endpoints."""

    access_token: str
    refresh_token: Optional[str] = None
    token_type: str = "bearer"
    expires_in: Optional[int] = None
    user: AuthUser

    @classmethod
    def from_session(cls, session: AuthSession) -> "TokenResponse":
        return cls(**session.model_dump())


class CurrentUserResponse(BaseModel):
    """Current user with profile information."""

    user: AuthUser
    profile: Optional[Profile] = None
