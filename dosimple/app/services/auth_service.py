"""
Authentication service.
Handles registration, login, email verification and password reset.
Business logic lives here; routes only call these methods.
"""
from __future__ import annotations

import logging
import secrets

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.exceptions import (
    BadRequestException,
    ConflictException,
    EmailNotVerifiedException,
    ForbiddenException,
    UnauthorizedException,
)
from app.core.security import (
    create_access_token,
    generate_one_time_token,
    hash_password,
    hash_token,
    is_token_expired,
    verify_password,
)
from app.crud.user import crud_user
from app.db.base import utcnow
from app.models.enums import UserRole
from app.models.user import User
from app.schemas.auth import (
    AuthResponse,
    RegisterAdminRequest,
    RegisterRequest,
    RegisterResponse,
)
from app.schemas.user import UserSummary
from app.services.email_service import email_service

logger = logging.getLogger(__name__)

FORGOT_PASSWORD_MESSAGE = (
    "If an account with that email exists, a password reset link has been sent"
)


class AuthService:

    async def register_user(
        self, db: AsyncSession, *, user_in: RegisterRequest
    ) -> RegisterResponse:
        """
        Register a regular user.
        The account starts unverified with a fresh verification token; the
        verification email is best-effort and its outcome is reported back.
        """
        await self._ensure_email_free(db, user_in.email)

        token = generate_one_time_token()
        user = User(
            name=user_in.name,
            email=user_in.email,
            hashed_password=hash_password(user_in.password),
            role=UserRole.USER,
            is_email_verified=False,
        )
        user.set_email_verification_token(
            hash_token(token), utcnow() + settings.email_verification_token_lifetime
        )
        user = await self._insert_user(db, user)
        logger.info("Registered user %s (%s)", user.id, user.email)

        email_sent = await email_service.send_email_verification(
            to_email=user.email, name=user.name, token=token
        )
        if not email_sent:
            logger.warning("Verification email to %s could not be sent", user.email)
            message = (
                "Registration successful, but the verification email could not be sent. "
                "Please contact support."
            )
        else:
            message = "Registration successful. Please check your email to verify your account."
        return RegisterResponse(message=message, email=user.email, email_sent=email_sent)

    async def register_admin(
        self, db: AsyncSession, *, user_in: RegisterAdminRequest
    ) -> User:
        """Create a pre-verified Admin account when the shared secret matches."""
        if not secrets.compare_digest(
            user_in.admin_secret_key.encode(), settings.ADMIN_SECRET_KEY.encode()
        ):
            logger.warning("Rejected admin registration for %s: bad secret", user_in.email)
            raise ForbiddenException("Invalid admin secret key")

        await self._ensure_email_free(db, user_in.email)

        user = await self._insert_user(
            db,
            User(
                name=user_in.name,
                email=user_in.email,
                hashed_password=hash_password(user_in.password),
                role=UserRole.ADMIN,
                is_email_verified=True,
            ),
        )
        logger.info("Registered admin %s (%s)", user.id, user.email)
        return user

    async def authenticate_user(
        self, db: AsyncSession, *, email: str, password: str
    ) -> AuthResponse:
        """Verify credentials and issue a bearer token for a verified account."""
        user = await crud_user.get_by_email(db, email)
        if user is None or not verify_password(password, user.hashed_password):
            logger.info("Failed login for %s", email)
            raise UnauthorizedException("Invalid email or password")
        if not user.is_email_verified:
            raise EmailNotVerifiedException()

        issued = create_access_token(user)
        logger.info("User %s logged in", user.id)
        return AuthResponse(
            access_token=issued.token,
            expires_at=issued.expires_at,
            user=UserSummary.model_validate(user),
        )

    async def verify_email(self, db: AsyncSession, *, token: str) -> User:
        """Consume an email verification token."""
        user = await crud_user.get_by_verification_token_hash(db, hash_token(token))
        if user is None or is_token_expired(user.email_verification_token_expires_at):
            raise BadRequestException("Invalid or expired verification token")

        user.mark_email_verified()
        user.touch()
        await db.flush()
        logger.info("User %s verified their email", user.id)
        return user

    async def forgot_password(self, db: AsyncSession, *, email: str) -> str:
        """
        Issue a password reset token if the account exists.
        The response is identical either way so callers cannot probe for emails.
        """
        user = await crud_user.get_by_email(db, email)
        if user is None:
            logger.info("Password reset requested for unknown email")
            return FORGOT_PASSWORD_MESSAGE

        token = generate_one_time_token()
        user.set_password_reset_token(
            hash_token(token), utcnow() + settings.password_reset_token_lifetime
        )
        await db.flush()

        sent = await email_service.send_password_reset_email(
            to_email=user.email, name=user.name, token=token
        )
        if not sent:
            logger.warning("Password reset email to user %s could not be sent", user.id)
        return FORGOT_PASSWORD_MESSAGE

    async def reset_password(
        self, db: AsyncSession, *, token: str, new_password: str
    ) -> None:
        user = await crud_user.get_by_reset_token_hash(db, hash_token(token))
        if user is None or is_token_expired(user.password_reset_token_expires_at):
            raise BadRequestException("Invalid or expired password reset token")

        user.hashed_password = hash_password(new_password)
        user.clear_password_reset_token()
        user.touch()
        await db.flush()
        logger.info("User %s reset their password", user.id)

        await email_service.send_password_changed_confirmation(
            to_email=user.email, name=user.name
        )

    async def _ensure_email_free(self, db: AsyncSession, email: str) -> None:
        if await crud_user.email_taken(db, email):
            raise ConflictException("A user with this email already exists")

    async def _insert_user(self, db: AsyncSession, user: User) -> User:
        # The unique index settles concurrent registrations for one email.
        try:
            return await crud_user.add(db, user)
        except IntegrityError as exc:
            await db.rollback()
            logger.warning("Registration for %s lost a duplicate-email race", user.email)
            raise ConflictException("A user with this email already exists") from exc


auth_service = AuthService()
