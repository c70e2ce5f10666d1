"""
Security utilities: JWT creation/verification, password hashing and
single-use tokens for email verification and password reset.
Passwords are hashed with bcrypt via passlib. Tokens use python-jose.
"""
from __future__ import annotations

import hashlib
import secrets
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING, Any

from jose import JWTError, jwt
from passlib.context import CryptContext

from app.core.config import settings

if TYPE_CHECKING:
    from app.models.user import User

# ── Password hashing ──────────────────────────────────────────────────────────
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

MIN_PASSWORD_LENGTH = 6


def hash_password(plain_password: str) -> str:
    """Return bcrypt hash of the given plain-text password."""
    return pwd_context.hash(plain_password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Return True if plain_password matches the stored hash."""
    return pwd_context.verify(plain_password, hashed_password)


# ── Bearer tokens ─────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class IssuedToken:
    token: str
    expires_at: datetime


def create_access_token(user: "User") -> IssuedToken:
    """
    Create a signed access token for the given user.
    Carries identity, display name and role so clients can render
    without a profile round-trip.
    """
    now = datetime.now(timezone.utc)
    expires_at = now + timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    payload: dict[str, Any] = {
        "sub": str(user.id),
        "email": user.email,
        "name": user.name,
        "role": user.role.value,
        "jti": str(uuid.uuid4()),
        "iat": now,
        "exp": expires_at,
        "iss": settings.JWT_ISSUER,
        "aud": settings.JWT_AUDIENCE,
    }
    token = jwt.encode(payload, settings.JWT_SECRET_KEY, algorithm=settings.JWT_ALGORITHM)
    return IssuedToken(token=token, expires_at=expires_at)


def decode_access_token(token: str) -> dict[str, Any]:
    """
    Decode and validate an access token (signature, expiry, issuer, audience).
    Raises JWTError on failure.
    """
    payload = jwt.decode(
        token,
        settings.JWT_SECRET_KEY,
        algorithms=[settings.JWT_ALGORITHM],
        audience=settings.JWT_AUDIENCE,
        issuer=settings.JWT_ISSUER,
    )
    if not payload.get("sub"):
        raise JWTError("Token has no subject")
    return payload


# ── Single-use tokens ─────────────────────────────────────────────────────────

def generate_one_time_token() -> str:
    """Return a URL-safe random token for email links."""
    return secrets.token_urlsafe(32)


def hash_token(token: str) -> str:
    """Return a SHA-256 hex digest of a token for safe DB storage."""
    return hashlib.sha256(token.encode()).hexdigest()


def is_token_expired(expires_at: datetime | None, now: datetime | None = None) -> bool:
    """
    True when the expiry is missing or in the past.
    Naive datetimes (as returned by SQLite) are treated as UTC.
    """
    if expires_at is None:
        return True
    if expires_at.tzinfo is None:
        expires_at = expires_at.replace(tzinfo=timezone.utc)
    return expires_at <= (now or datetime.now(timezone.utc))


# ── Password policy ───────────────────────────────────────────────────────────

def validate_password_strength(password: str) -> str:
    """
    Enforce password policy:
    - Minimum 6 characters
    - Not only whitespace
    Returns the password unchanged if valid, raises ValueError otherwise.
    """
    if len(password) < MIN_PASSWORD_LENGTH:
        raise ValueError(
            f"Password must be at least {MIN_PASSWORD_LENGTH} characters long"
        )
    if not password.strip():
        raise ValueError("Password must not be blank")
    return password
