"""
User Pydantic schemas.
Covers admin reads/updates, role changes, list filters and statistics.
"""
from __future__ import annotations

from datetime import datetime
from typing import Annotated

from pydantic import AfterValidator, BaseModel, EmailStr, Field, field_validator

from app.models.enums import UserRole
from app.schemas.pagination import normalize_page, normalize_page_size

# Emails compare case-insensitively: always store and look up lower-cased.
NormalizedEmail = Annotated[EmailStr, AfterValidator(lambda v: v.strip().lower())]

NAME_MAX_LENGTH = 100


# ── Read ──────────────────────────────────────────────────────────────────────

class UserRead(BaseModel):
    id: int
    name: str
    email: str
    role: UserRole
    is_email_verified: bool
    created_at: datetime
    updated_at: datetime | None

    model_config = {"from_attributes": True}


class UserSummary(BaseModel):
    """Identity summary returned alongside a bearer token."""

    id: int
    name: str
    email: str
    role: UserRole

    model_config = {"from_attributes": True}


# ── Admin update ──────────────────────────────────────────────────────────────

class UserAdminUpdate(BaseModel):
    name: str | None = Field(default=None, max_length=NAME_MAX_LENGTH)
    email: NormalizedEmail | None = None
    is_email_verified: bool | None = None


class UserRoleUpdate(BaseModel):
    role: UserRole


# ── Filter ────────────────────────────────────────────────────────────────────

class UserFilter(BaseModel):
    """Query parameters for the admin user list."""

    role: UserRole | None = None
    is_email_verified: bool | None = None
    search: str | None = Field(default=None, max_length=200)
    page: int = 1
    size: int = 10

    @field_validator("page")
    @classmethod
    def clamp_page(cls, v: int) -> int:
        return normalize_page(v)

    @field_validator("size")
    @classmethod
    def clamp_size(cls, v: int) -> int:
        return normalize_page_size(v)


# ── Stats ─────────────────────────────────────────────────────────────────────

class UserStats(BaseModel):
    total_users: int = 0
    total_admins: int = 0
    verified_users: int = 0
    unverified_users: int = 0
    new_users_this_month: int = 0
