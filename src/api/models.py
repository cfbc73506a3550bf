"""
API request and response models.

Pydantic models for FastAPI endpoint validation and OpenAPI schema generation.
"""

import re
from typing import Annotated

from pydantic import BaseModel, EmailStr, Field, field_validator

PASSWORD_MIN_LENGTH = 8

# bcrypt only accepts inputs up to this many bytes
PASSWORD_MAX_BYTES = 72

OtpCode = Annotated[
    str,
    Field(
        min_length=6,
        max_length=6,
        pattern=r"^\d{6}$",
        description="6-digit OTP code from the email",
    ),
]


def check_password_size(password: str) -> str:
    if len(password.encode("utf-8")) > PASSWORD_MAX_BYTES:
        raise ValueError(f"Password must be at most {PASSWORD_MAX_BYTES} bytes")
    return password


def check_password_strength(password: str) -> str:
    """Require uppercase, lowercase and a digit within the bcrypt size limit."""
    check_password_size(password)
    if not re.search(r"[A-Z]", password):
        raise ValueError("Password must contain an uppercase letter")
    if not re.search(r"[a-z]", password):
        raise ValueError("Password must contain a lowercase letter")
    if not re.search(r"\d", password):
        raise ValueError("Password must contain a number")
    return password


class RegisterRequest(BaseModel):
    """Request model for starting a signup."""

    name: str = Field(..., min_length=1, max_length=100, description="Display name")
    email: EmailStr
    password: str = Field(
        ...,
        min_length=PASSWORD_MIN_LENGTH,
        description="At least 8 characters, including uppercase, lowercase and numbers",
    )

    @field_validator("name")
    @classmethod
    def name_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("Name must not be blank")
        return value.strip()

    @field_validator("password")
    @classmethod
    def password_strength(cls, value: str) -> str:
        return check_password_strength(value)


class EmailRequest(BaseModel):
    """Request model carrying only an email (resend OTP, request reset)."""

    email: EmailStr


class VerifyOtpRequest(BaseModel):
    """Request model for verifying a signup OTP."""

    email: EmailStr
    otp: OtpCode


class ResetPasswordRequest(BaseModel):
    """Request model for committing a password reset."""

    email: EmailStr
    otp: OtpCode
    password: str = Field(
        ...,
        min_length=PASSWORD_MIN_LENGTH,
        description="New password, same rules as signup",
    )

    @field_validator("password")
    @classmethod
    def password_strength(cls, value: str) -> str:
        return check_password_strength(value)


class SignInRequest(BaseModel):
    """Request model for a credential check."""

    email: EmailStr
    password: str = Field(..., min_length=1)

    @field_validator("password")
    @classmethod
    def password_size(cls, value: str) -> str:
        return check_password_size(value)


class MessageResponse(BaseModel):
    """Response model for successful operations."""

    message: str


class SignInResponse(BaseModel):
    """Response model for a successful credential check."""

    message: str
    name: str
    email: str


class ErrorResponse(BaseModel):
    """Standard error response model."""

    error: str
