"""
FastAPI dependency injection functions.
Provides get_db, get_current_user, get_principal and require_admin.
"""
from __future__ import annotations

from typing import Annotated, Any

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import ForbiddenException, InvalidTokenException, UnauthorizedException
from app.core.permissions import Principal
from app.core.security import decode_access_token
from app.crud.user import crud_user
from app.db.session import get_db
from app.models.user import User

# Re-export get_db so routes can import from one place
__all__ = [
    "get_db",
    "get_current_user",
    "get_principal",
    "require_admin",
    "DBSession",
    "CurrentUser",
    "CurrentPrincipal",
    "AdminUser",
    "TokenClaims",
]

bearer_scheme = HTTPBearer(auto_error=False)


async def get_token_claims(
    credentials: Annotated[
        HTTPAuthorizationCredentials | None, Depends(bearer_scheme)
    ] = None,
) -> dict[str, Any]:
    """Decode the bearer token from the Authorization header."""
    if credentials is None:
        raise UnauthorizedException("Missing authentication token")

    try:
        return decode_access_token(credentials.credentials)
    except JWTError:
        raise InvalidTokenException("Invalid or expired access token")


async def get_current_user(
    db: Annotated[AsyncSession, Depends(get_db)],
    claims: Annotated[dict[str, Any], Depends(get_token_claims)],
) -> User:
    """
    Resolve the token subject to a stored user.
    The role is taken from the database, not from the token, so role
    changes apply on the next request.
    """
    try:
        user_id = int(claims["sub"])
    except (KeyError, TypeError, ValueError):
        raise InvalidTokenException("Malformed token: invalid subject format")

    user = await crud_user.get(db, user_id)
    if user is None:
        raise UnauthorizedException("User not found")

    return user


async def get_principal(
    current_user: Annotated[User, Depends(get_current_user)],
) -> Principal:
    return Principal.from_user(current_user)


async def require_admin(
    current_user: Annotated[User, Depends(get_current_user)],
) -> User:
    """Dependency that requires an Admin or SuperAdmin caller."""
    if not current_user.role.is_admin:
        raise ForbiddenException("Admin privileges required")
    return current_user


# Convenience type aliases for route signatures
DBSession = Annotated[AsyncSession, Depends(get_db)]
TokenClaims = Annotated[dict[str, Any], Depends(get_token_claims)]
CurrentUser = Annotated[User, Depends(get_current_user)]
CurrentPrincipal = Annotated[Principal, Depends(get_principal)]
AdminUser = Annotated[User, Depends(require_admin)]
