"""
User ORM model.
Stores authentication credentials, profile data, role and the
single-use token state for email verification and password reset.
"""
from __future__ import annotations

from datetime import datetime

from sqlalchemy import Boolean, DateTime, Enum, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from app.db.base import Base, TimestampMixin
from app.models.enums import UserRole


class User(TimestampMixin, Base):
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    email: Mapped[str] = mapped_column(
        String(255),
        unique=True,
        nullable=False,
        index=True,
    )
    hashed_password: Mapped[str] = mapped_column(String(255), nullable=False)
    role: Mapped[UserRole] = mapped_column(
        Enum(
            UserRole,
            name="user_role_enum",
            values_callable=lambda enum_cls: [m.value for m in enum_cls],
        ),
        nullable=False,
        default=UserRole.USER,
    )
    is_email_verified: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False
    )
    email_verification_token_hash: Mapped[str | None] = mapped_column(
        String(64), nullable=True, index=True
    )
    email_verification_token_expires_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    password_reset_token_hash: Mapped[str | None] = mapped_column(
        String(64), nullable=True, index=True
    )
    password_reset_token_expires_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    __table_args__ = (
        Index("ix_users_role", "role"),
        Index("ix_users_created_at", "created_at"),
    )

    def set_email_verification_token(self, token_hash: str, expires_at: datetime) -> None:
        self.email_verification_token_hash = token_hash
        self.email_verification_token_expires_at = expires_at

    def clear_email_verification_token(self) -> None:
        self.email_verification_token_hash = None
        self.email_verification_token_expires_at = None

    def set_password_reset_token(self, token_hash: str, expires_at: datetime) -> None:
        self.password_reset_token_hash = token_hash
        self.password_reset_token_expires_at = expires_at

    def clear_password_reset_token(self) -> None:
        self.password_reset_token_hash = None
        self.password_reset_token_expires_at = None

    def mark_email_verified(self) -> None:
        self.is_email_verified = True
        self.clear_email_verification_token()

    def __repr__(self) -> str:
        return f"<User id={self.id} email={self.email} role={self.role.value}>"
