"""
Authentication routes.
POST /auth/register, /auth/register-admin, /auth/login, /auth/forgot-password,
/auth/reset-password; GET /auth/verify-email, /auth/verify
"""
from __future__ import annotations

from datetime import datetime, timezone

from fastapi import APIRouter, Query, Request, status

from app.core.config import settings
from app.core.dependencies import CurrentUser, DBSession, TokenClaims
from app.core.rate_limit import limiter
from app.schemas.auth import (
    AuthResponse,
    ForgotPasswordRequest,
    LoginRequest,
    MessageResponse,
    RegisterAdminRequest,
    RegisterRequest,
    RegisterResponse,
    ResetPasswordRequest,
    TokenIntrospection,
)
from app.schemas.user import UserRead
from app.services.auth_service import auth_service

router = APIRouter(prefix="/auth", tags=["Authentication"])


@router.post(
    "/register",
    response_model=RegisterResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register a new user account",
)
async def register(
    user_in: RegisterRequest,
    db: DBSession,
) -> RegisterResponse:
    return await auth_service.register_user(db, user_in=user_in)


@router.post(
    "/register-admin",
    response_model=UserRead,
    status_code=status.HTTP_201_CREATED,
    summary="Register an administrator using the shared admin secret",
)
async def register_admin(
    user_in: RegisterAdminRequest,
    db: DBSession,
) -> UserRead:
    user = await auth_service.register_admin(db, user_in=user_in)
    return UserRead.model_validate(user)


@router.post(
    "/login",
    response_model=AuthResponse,
    summary="Authenticate and receive a bearer token",
)
@limiter.limit(settings.RATE_LIMIT_LOGIN)
async def login(
    request: Request,
    credentials: LoginRequest,
    db: DBSession,
) -> AuthResponse:
    return await auth_service.authenticate_user(
        db, email=credentials.email, password=credentials.password
    )


@router.get(
    "/verify-email",
    response_model=MessageResponse,
    summary="Confirm an email address with the emailed token",
)
async def verify_email(
    db: DBSession,
    token: str = Query(min_length=1),
) -> MessageResponse:
    await auth_service.verify_email(db, token=token)
    return MessageResponse(message="Email verified successfully. You can now log in.")


@router.post(
    "/forgot-password",
    response_model=MessageResponse,
    summary="Request a password reset email",
)
async def forgot_password(
    body: ForgotPasswordRequest,
    db: DBSession,
) -> MessageResponse:
    message = await auth_service.forgot_password(db, email=body.email)
    return MessageResponse(message=message)


@router.post(
    "/reset-password",
    response_model=MessageResponse,
    summary="Set a new password with a reset token",
)
async def reset_password(
    body: ResetPasswordRequest,
    db: DBSession,
) -> MessageResponse:
    await auth_service.reset_password(db, token=body.token, new_password=body.new_password)
    return MessageResponse(message="Password has been reset successfully")


@router.get(
    "/verify",
    response_model=TokenIntrospection,
    summary="Validate the current bearer token",
)
async def verify_token(
    claims: TokenClaims,
    current_user: CurrentUser,
) -> TokenIntrospection:
    return TokenIntrospection(
        user_id=current_user.id,
        email=claims.get("email", current_user.email),
        name=claims.get("name", current_user.name),
        role=claims.get("role", current_user.role.value),
        expires_at=datetime.fromtimestamp(claims["exp"], tz=timezone.utc),
    )
