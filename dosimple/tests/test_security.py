"""
Credential helper tests: password hashing, bearer tokens, single-use
tokens and pagination normalisation.
"""
from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone

import pytest
from jose import JWTError, jwt

from app.core.config import settings
from app.core.logging_setup import configure_logging
from app.core.security import (
    create_access_token,
    decode_access_token,
    generate_one_time_token,
    hash_password,
    hash_token,
    is_token_expired,
    validate_password_strength,
    verify_password,
)
from app.models.enums import UserRole
from app.models.user import User
from app.schemas.pagination import PaginatedResponse, normalize_page, normalize_page_size


def _user() -> User:
    return User(id=7, name="Alice", email="alice@example.com", role=UserRole.ADMIN)


class TestPasswords:
    def test_hash_and_verify(self) -> None:
        hashed = hash_password("secret123")
        assert hashed != "secret123"
        assert verify_password("secret123", hashed)
        assert not verify_password("wrong-password", hashed)

    def test_strength(self) -> None:
        assert validate_password_strength("abcdef") == "abcdef"
        with pytest.raises(ValueError):
            validate_password_strength("abc")
        with pytest.raises(ValueError):
            validate_password_strength("      ")


class TestAccessTokens:
    def test_round_trip_claims(self) -> None:
        issued = create_access_token(_user())
        claims = decode_access_token(issued.token)
        assert claims["sub"] == "7"
        assert claims["email"] == "alice@example.com"
        assert claims["name"] == "Alice"
        assert claims["role"] == "Admin"
        assert claims["iss"] == settings.JWT_ISSUER
        assert claims["aud"] == settings.JWT_AUDIENCE
        assert claims["jti"]
        assert issued.expires_at > datetime.now(timezone.utc)

    def test_each_token_has_unique_id(self) -> None:
        first = decode_access_token(create_access_token(_user()).token)
        second = decode_access_token(create_access_token(_user()).token)
        assert first["jti"] != second["jti"]

    def test_wrong_audience_rejected(self) -> None:
        now = datetime.now(timezone.utc)
        token = jwt.encode(
            {
                "sub": "7",
                "iat": now,
                "exp": now + timedelta(minutes=5),
                "iss": settings.JWT_ISSUER,
                "aud": "someone-else",
            },
            settings.JWT_SECRET_KEY,
            algorithm=settings.JWT_ALGORITHM,
        )
        with pytest.raises(JWTError):
            decode_access_token(token)

    def test_expired_token_rejected(self) -> None:
        past = datetime.now(timezone.utc) - timedelta(hours=2)
        token = jwt.encode(
            {
                "sub": "7",
                "iat": past,
                "exp": past + timedelta(minutes=5),
                "iss": settings.JWT_ISSUER,
                "aud": settings.JWT_AUDIENCE,
            },
            settings.JWT_SECRET_KEY,
            algorithm=settings.JWT_ALGORITHM,
        )
        with pytest.raises(JWTError):
            decode_access_token(token)

    def test_bad_signature_rejected(self) -> None:
        token = create_access_token(_user()).token
        with pytest.raises(JWTError):
            decode_access_token(token[:-4] + "abcd")


class TestOneTimeTokens:
    def test_tokens_are_random_and_hashed(self) -> None:
        first, second = generate_one_time_token(), generate_one_time_token()
        assert first != second
        assert len(hash_token(first)) == 64
        assert hash_token(first) == hash_token(first)

    def test_expiry(self) -> None:
        now = datetime(2026, 1, 1, 12, tzinfo=timezone.utc)
        assert is_token_expired(None, now)
        assert is_token_expired(now - timedelta(seconds=1), now)
        assert not is_token_expired(now + timedelta(hours=1), now)

    def test_naive_expiry_is_utc(self) -> None:
        now = datetime(2026, 1, 1, 12, tzinfo=timezone.utc)
        assert not is_token_expired(datetime(2026, 1, 1, 13), now)
        assert is_token_expired(datetime(2026, 1, 1, 11), now)


class TestPagination:
    @pytest.mark.parametrize(("raw", "expected"), [(None, 1), (-3, 1), (0, 1), (1, 1), (7, 7)])
    def test_page(self, raw: int | None, expected: int) -> None:
        assert normalize_page(raw) == expected

    @pytest.mark.parametrize(
        ("raw", "expected"), [(None, 10), (0, 10), (-5, 10), (1, 1), (50, 50), (500, 100)]
    )
    def test_size(self, raw: int | None, expected: int) -> None:
        assert normalize_page_size(raw) == expected

    def test_total_pages(self) -> None:
        page = PaginatedResponse[int](items=[], total=21, page=1, size=10)
        assert page.pages == 3
        assert PaginatedResponse[int](items=[], total=0, page=1, size=10).pages == 0


class TestLoggingSetup:
    def test_configure_is_idempotent(self) -> None:
        configure_logging("DEBUG")
        configure_logging("INFO")
        root = logging.getLogger()
        ours = [h for h in root.handlers if h.get_name() == "dosimple-console"]
        assert len(ours) == 1
        assert root.level == logging.INFO
        assert logging.getLogger("sqlalchemy.engine").level == logging.WARNING

    def test_credentials_are_masked(self) -> None:
        configure_logging("INFO")
        handler = next(
            h for h in logging.getLogger().handlers if h.get_name() == "dosimple-console"
        )
        record = logging.LogRecord(
            "app.test", logging.INFO, __file__, 1, "login password=%s for %s", ("hunter2", "ann"), None
        )
        assert handler.filter(record)
        assert record.getMessage() == "login password=*** for ann"

    def test_plain_messages_are_untouched(self) -> None:
        configure_logging("INFO")
        handler = next(
            h for h in logging.getLogger().handlers if h.get_name() == "dosimple-console"
        )
        record = logging.LogRecord(
            "app.test", logging.INFO, __file__, 1, "Task %s created by %s", (4, 7), None
        )
        assert handler.filter(record)
        assert record.getMessage() == "Task 4 created by 7"
        assert record.args == (4, 7)
