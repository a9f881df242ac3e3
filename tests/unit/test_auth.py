"""Unit tests for password hashing, session tokens and session dependencies."""

import base64
import json
import time

import pytest
from fastapi import HTTPException
from starlette.requests import Request

from backend.app.api.auth import get_current_user, require_admin, require_paid_plan
from backend.app.auth import (
    TOKEN_TTL_SECONDS,
    create_token,
    hash_password,
    is_valid_email,
    validate_password,
    verify_password,
    verify_token,
)
from backend.app.models.common import Plan, Role
from backend.app.models.users import User


def _user(**fields: object) -> User:
    return User(email="writer@example.com", password_hash="x", **fields)


def _request() -> Request:
    return Request({"type": "http", "method": "GET", "path": "/", "headers": []})


class TestPasswords:
    """Test bcrypt hashing helpers."""

    def test_hash_roundtrip(self) -> None:
        """A hash verifies the original password and rejects others."""
        hashed = hash_password("Secret1234", rounds=4)

        assert hashed.startswith("$2")
        assert verify_password("Secret1234", hashed)
        assert not verify_password("secret1234", hashed)

    def test_malformed_hash_never_matches(self) -> None:
        """A corrupt stored hash is rejected rather than raising."""
        assert verify_password("Secret1234", "not-a-bcrypt-hash") is False

    def test_validate_password_reports_every_rule(self) -> None:
        """A weak password lists all violated rules."""
        errors = validate_password("abc")

        assert "Password must be at least 8 characters" in errors
        assert "Password must contain uppercase letter" in errors
        assert "Password must contain number" in errors
        assert "Password must contain lowercase letter" not in errors

    def test_validate_password_accepts_strong_password(self) -> None:
        """A compliant password has no violations."""
        assert validate_password("Strong1234") == []

    def test_validate_password_rejects_over_72_bytes(self) -> None:
        """Passwords beyond the bcrypt input limit are refused."""
        errors = validate_password("Aa1" + "x" * 80)

        assert any("72 bytes" in e for e in errors)

    @pytest.mark.parametrize(
        "email,valid",
        [
            ("a@b.co", True),
            ("first.last@example.org", True),
            ("no-at-sign.com", False),
            ("with space@example.com", False),
            ("missing@tld", False),
        ],
    )
    def test_email_shape(self, email: str, valid: bool) -> None:
        """Only something@something.tld without spaces passes."""
        assert is_valid_email(email) is valid


class TestTokens:
    """Test HMAC session tokens."""

    def test_token_roundtrip(self) -> None:
        """A fresh token verifies and carries the user's claims."""
        user = _user(plan=Plan.PRO_MONTHLY)
        payload = verify_token(create_token(user))

        assert payload is not None
        assert payload.user_id == user.id
        assert payload.email == user.email
        assert payload.plan == Plan.PRO_MONTHLY
        assert payload.exp - payload.iat == TOKEN_TTL_SECONDS

    def test_tampered_payload_is_rejected(self) -> None:
        """Changing any claim invalidates the signature."""
        token = create_token(_user())
        header, body, signature = token.split(".")

        claims = json.loads(base64.urlsafe_b64decode(body + "=" * (-len(body) % 4)))
        claims["plan"] = "PRO_YEARLY"
        forged = base64.urlsafe_b64encode(json.dumps(claims).encode()).rstrip(b"=").decode()

        assert verify_token(f"{header}.{forged}.{signature}") is None

    def test_tampered_signature_is_rejected(self) -> None:
        """A modified signature fails verification."""
        token = create_token(_user())
        last = "A" if token[-1] != "A" else "B"

        assert verify_token(token[:-1] + last) is None

    def test_expired_token_is_rejected(self) -> None:
        """Tokens older than seven days are refused."""
        issued = int(time.time()) - TOKEN_TTL_SECONDS - 10
        token = create_token(_user(), now=issued)

        assert verify_token(token) is None
        assert verify_token(token, now=issued + 60) is not None

    @pytest.mark.parametrize("token", ["", "abc", "a.b", "a.b.c.d"])
    def test_malformed_token_is_rejected(self, token: str) -> None:
        """Tokens without three parts return None."""
        assert verify_token(token) is None


class TestSessionDependencies:
    """Test the FastAPI session guards."""

    @pytest.mark.asyncio
    async def test_missing_token_raises_401(self) -> None:
        """No cookie and no header means 401."""
        with pytest.raises(HTTPException) as exc_info:
            await get_current_user(_request(), token=None, authorization=None)

        assert exc_info.value.status_code == 401
        assert exc_info.value.detail == "Authentication required"

    @pytest.mark.asyncio
    async def test_bearer_header_is_accepted(self) -> None:
        """Bearer tokens work when no cookie is present."""
        user = _user()
        request = _request()

        payload = await get_current_user(request, token=None, authorization=f"Bearer {create_token(user)}")

        assert payload.user_id == user.id
        assert request.state.user_id == user.id

    @pytest.mark.asyncio
    async def test_invalid_token_raises_401(self) -> None:
        """A bad token is rejected with 401."""
        with pytest.raises(HTTPException) as exc_info:
            await get_current_user(_request(), token="a.b.c", authorization=None)

        assert exc_info.value.status_code == 401

    @pytest.mark.asyncio
    async def test_require_admin(self) -> None:
        """Only admins pass the admin guard."""
        admin = _user(role=Role.admin)
        assert await require_admin(admin) is admin

        with pytest.raises(HTTPException) as exc_info:
            await require_admin(_user())
        assert exc_info.value.status_code == 403
        assert exc_info.value.detail == "FORBIDDEN_ADMIN_ONLY"

    @pytest.mark.asyncio
    async def test_require_paid_plan(self) -> None:
        """FREE users are refused by the paid-plan guard."""
        with pytest.raises(HTTPException) as exc_info:
            await require_paid_plan(_user())

        assert exc_info.value.status_code == 403
        assert exc_info.value.detail == "PAID_PLAN_REQUIRED"
