"""
Authentication Pydantic schemas.
Registration, login, email verification and password reset payloads.
"""
from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field, field_validator

from app.core.security import validate_password_strength
from app.schemas.user import NAME_MAX_LENGTH, NormalizedEmail, UserSummary


# ── Registration ──────────────────────────────────────────────────────────────

class RegisterRequest(BaseModel):
    name: str = Field(min_length=1, max_length=NAME_MAX_LENGTH)
    email: NormalizedEmail
    password: str = Field(max_length=128)

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Name must not be blank")
        return v

    @field_validator("password")
    @classmethod
    def validate_password(cls, v: str) -> str:
        return validate_password_strength(v)


class RegisterAdminRequest(RegisterRequest):
    admin_secret_key: str = Field(min_length=1)


class RegisterResponse(BaseModel):
    message: str
    email: str
    email_sent: bool


# ── Login ─────────────────────────────────────────────────────────────────────

class LoginRequest(BaseModel):
    email: NormalizedEmail
    password: str


class AuthResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    expires_at: datetime
    user: UserSummary


class TokenIntrospection(BaseModel):
    message: str = "Token is valid"
    user_id: int
    email: str
    name: str
    role: str
    expires_at: datetime


# ── Password reset ────────────────────────────────────────────────────────────

class ForgotPasswordRequest(BaseModel):
    email: NormalizedEmail


class ResetPasswordRequest(BaseModel):
    token: str = Field(min_length=1)
    new_password: str = Field(max_length=128)

    @field_validator("new_password")
    @classmethod
    def validate_new_password(cls, v: str) -> str:
        return validate_password_strength(v)


class MessageResponse(BaseModel):
    message: str
