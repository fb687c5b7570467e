"""Authentication schemas."""

from datetime import datetime
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field, model_validator

from app.schemas.common import PHONE_PATTERN

UserRole = Literal["admin", "patient"]


class Token(BaseModel):
    """JWT token response schema."""

    access_token: str
    refresh_token: str
    token_type: str = "bearer"


class TokenRefresh(BaseModel):
    """Token refresh request schema."""

    refresh_token: str


class SignUpRequest(BaseModel):
    """
    Account registration.

    Admins register together with a new clinic; patients join the clinic
    configured for public bookings.
    """

    email: EmailStr
    password: str = Field(..., min_length=8, max_length=72)
    first_name: str = Field(..., min_length=2, max_length=50)
    last_name: str = Field(..., min_length=2, max_length=50)
    phone: str | None = Field(None, pattern=PHONE_PATTERN)
    role: UserRole = "patient"
    clinic_name: str | None = Field(None, min_length=2, max_length=100)

    @model_validator(mode="after")
    def require_clinic_for_admin(self) -> "SignUpRequest":
        """Admins must name the clinic they are creating."""
        if self.role == "admin" and not self.clinic_name:
            raise ValueError("clinic_name is required for admin accounts")
        return self


class SignInRequest(BaseModel):
    """Email/password sign-in request."""

    email: EmailStr
    password: str


class ChangePasswordRequest(BaseModel):
    """Password change for the signed-in user."""

    current_password: str
    new_password: str = Field(..., min_length=8, max_length=72)


class ProfileUpdate(BaseModel):
    """Editable profile fields."""

    full_name: str | None = Field(None, min_length=2, max_length=100)


class UserResponse(BaseModel):
    """User response schema."""

    id: UUID
    clinic_id: UUID
    email: str
    full_name: str | None = None
    role: UserRole
    is_active: bool = True
    created_at: datetime
    last_login_at: datetime | None = None

    model_config = {"from_attributes": True}


class LoginResponse(BaseModel):
    """Login response with tokens and user info."""

    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    user: UserResponse
