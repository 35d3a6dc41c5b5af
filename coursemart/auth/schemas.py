"""Pydantic schemas for authentication, accounts and password reset."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, EmailStr, Field, model_validator

from coursemart.auth.permissions import UserRole


PASSWORD_MIN_LENGTH = 8


# ==============================================================================
# Request Schemas
# ==============================================================================


class RegisterRequest(BaseModel):
    """Account creation request."""

    email: EmailStr = Field(..., description="Email address")
    name: str = Field(..., min_length=2, max_length=100, description="Full name")
    password: str = Field(..., min_length=PASSWORD_MIN_LENGTH, description="Password")
    role: UserRole = Field(
        default=UserRole.STUDENT,
        description="student or instructor (admin cannot be self-assigned)",
    )

    @model_validator(mode="after")
    def reject_admin_signup(self) -> "RegisterRequest":
        if self.role == UserRole.ADMIN:
            msg = "Admin accounts cannot be self-registered"
            raise ValueError(msg)
        self.name = self.name.strip()
        return self


class LoginRequest(BaseModel):
    email: EmailStr = Field(..., description="Email address")
    password: str = Field(..., description="Password")


class PasswordResetRequest(BaseModel):
    """Ask for a reset link to be emailed."""

    email: EmailStr = Field(..., description="Account email address")


class PasswordResetConfirm(BaseModel):
    """Spend a reset token and set a new password."""

    token: str = Field(..., min_length=1, description="Token from the reset email")
    password: str = Field(..., min_length=PASSWORD_MIN_LENGTH)
    confirm_password: str = Field(..., min_length=PASSWORD_MIN_LENGTH)

    @model_validator(mode="after")
    def passwords_match(self) -> "PasswordResetConfirm":
        if self.password != self.confirm_password:
            msg = "Password and confirm password do not match"
            raise ValueError(msg)
        return self


# ==============================================================================
# Response Schemas
# ==============================================================================


class UserResponse(BaseModel):
    """Authenticated user as seen by route handlers."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    email: str
    name: str = ""
    role: UserRole
    created_at: datetime | None = None


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "Bearer"
    expires_in: int = Field(..., description="Token expiration in seconds")


class MessageResponse(BaseModel):
    success: bool = True
    message: str
