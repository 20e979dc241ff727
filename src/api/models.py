"""
API request and response models.

Pydantic models for FastAPI endpoint validation and OpenAPI schema generation.
Input is deliberately loose here: email and password rules live in the
domain so that rejections carry domain error codes.
"""

from datetime import datetime

from pydantic import BaseModel, Field

from src.domain.verification import VerifiedUser


class RegisterRequest(BaseModel):
    """Request model for guest registration."""

    email: str = Field(..., description="Email address to register")
    password: str = Field(
        ..., description="Password (min 8 characters, letters and digits)"
    )
    password_confirmation: str = Field(..., description="Must equal password")


class RegisterResponse(BaseModel):
    """Response model for successful registration."""

    message: str
    expires_at: datetime


class VerifyRequest(BaseModel):
    """Request model for email verification."""

    token: str = Field(..., description="Secret from the verification link")


class UserResponse(BaseModel):
    """Public projection of a verified user."""

    id: str
    email: str
    name: str | None = None
    bio: str | None = None
    is_active: bool
    email_verified_at: datetime
    last_login_at: datetime | None = None
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_verified(cls, user: VerifiedUser) -> "UserResponse":
        return cls(
            id=user.id,
            email=user.email,
            name=user.name,
            bio=user.bio,
            is_active=user.is_active,
            email_verified_at=user.email_verified_at,
            last_login_at=user.last_login_at,
            created_at=user.created_at,
            updated_at=user.updated_at,
        )


class VerifyResponse(BaseModel):
    """Response model for successful verification."""

    message: str
    auth_token: str
    user: UserResponse


class ErrorDetailModel(BaseModel):
    """Field-level error component."""

    field: str
    code: str
    message: str


class ErrorResponse(BaseModel):
    """Standard error response model."""

    code: str
    message: str
    details: list[ErrorDetailModel] = Field(default_factory=list)
    request_id: str = ""


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    checked_at: datetime
