"""Password hashing and signed session tokens.

Tokens have the familiar three-part ``header.payload.signature`` shape, each
part base64url-encoded without padding, signed with HMAC-SHA256 over
``header.payload`` using ``JWT_SECRET``. They expire a fixed 7 days after
issue; there is no refresh or revocation, so a plan change only reaches the
session when a new token is issued.
"""

import base64
import hashlib
import hmac
import json
import logging
import re
import time

import bcrypt
from pydantic import ValidationError

from backend.app.config import get_settings
from backend.app.models.users import TokenPayload, User

logger = logging.getLogger(__name__)

TOKEN_TTL_SECONDS = 7 * 24 * 60 * 60
TOKEN_COOKIE_NAME = "token"

_EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
_TOKEN_HEADER = {"alg": "HS256", "typ": "JWT"}

# bcrypt only looks at the first 72 bytes of a password
BCRYPT_MAX_BYTES = 72


def _b64url_encode(raw: bytes) -> str:
    return base64.urlsafe_b64encode(raw).rstrip(b"=").decode("ascii")


def _b64url_decode(value: str) -> bytes:
    padding = "=" * (-len(value) % 4)
    return base64.urlsafe_b64decode(value + padding)


def _sign(signing_input: str, secret: str) -> str:
    digest = hmac.new(secret.encode("utf-8"), signing_input.encode("utf-8"), hashlib.sha256)
    return _b64url_encode(digest.digest())


def hash_password(password: str, rounds: int | None = None) -> str:
    """Hash a password with bcrypt.

    Args:
        password: Plain-text password
        rounds: Cost factor (defaults to BCRYPT_ROUNDS setting)

    Returns:
        bcrypt hash as a string
    """
    cost = rounds if rounds is not None else get_settings().bcrypt_rounds
    salt = bcrypt.gensalt(rounds=cost)
    return bcrypt.hashpw(password.encode("utf-8")[:BCRYPT_MAX_BYTES], salt).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    """Check a password against a bcrypt hash. Malformed hashes never match."""
    try:
        return bcrypt.checkpw(
            password.encode("utf-8")[:BCRYPT_MAX_BYTES], password_hash.encode("utf-8")
        )
    except ValueError:
        logger.warning("Rejected malformed password hash")
        return False


def create_token(user: User, *, now: int | None = None) -> str:
    """Issue a signed session token for a user.

    Args:
        user: Authenticated user
        now: Issue time as a unix timestamp (for testing)

    Returns:
        ``header.payload.signature`` token string
    """
    issued_at = now if now is not None else int(time.time())
    payload = TokenPayload(
        user_id=user.id,
        email=user.email,
        plan=user.plan,
        iat=issued_at,
        exp=issued_at + TOKEN_TTL_SECONDS,
    )

    header_part = _b64url_encode(json.dumps(_TOKEN_HEADER, separators=(",", ":")).encode())
    body_part = _b64url_encode(payload.model_dump_json(by_alias=True).encode())
    signing_input = f"{header_part}.{body_part}"
    return f"{signing_input}.{_sign(signing_input, get_settings().jwt_secret)}"


def verify_token(token: str, *, now: int | None = None) -> TokenPayload | None:
    """Verify a token's signature and expiry.

    Args:
        token: Token string from cookie or bearer header
        now: Current unix timestamp (for testing)

    Returns:
        Decoded payload, or None when the token is malformed, tampered or expired
    """
    parts = token.split(".")
    if len(parts) != 3:
        return None

    header_part, body_part, signature = parts
    expected = _sign(f"{header_part}.{body_part}", get_settings().jwt_secret)
    if not hmac.compare_digest(signature.encode("utf-8"), expected.encode("utf-8")):
        return None

    try:
        payload = TokenPayload.model_validate_json(_b64url_decode(body_part))
    except (ValueError, ValidationError):
        return None

    current = now if now is not None else int(time.time())
    if payload.exp < current:
        return None

    return payload


def is_valid_email(email: str) -> bool:
    """Loose email shape check: something@something.tld without spaces."""
    return bool(_EMAIL_RE.match(email))


def validate_password(password: str) -> list[str]:
    """Return the password strength violations (empty when acceptable)."""
    errors: list[str] = []
    if len(password) < 8:
        errors.append("Password must be at least 8 characters")
    if len(password.encode("utf-8")) > BCRYPT_MAX_BYTES:
        errors.append(f"Password must be at most {BCRYPT_MAX_BYTES} bytes")
    if not re.search(r"[A-Z]", password):
        errors.append("Password must contain uppercase letter")
    if not re.search(r"[a-z]", password):
        errors.append("Password must contain lowercase letter")
    if not re.search(r"[0-9]", password):
        errors.append("Password must contain number")
    return errors
