"""Security utilities for JWT session tokens and password hashing."""

import re
from datetime import datetime, timedelta, timezone
from uuid import UUID

import bcrypt
import jwt

from app.core.config import settings


# =============================================================================
# Session Token (JWT in cookie or Authorization header)
# =============================================================================

def create_session_token(
    user_id: UUID,
    role: str,
    token_version: int,
) -> str:
    """
    Create signed session JWT.

    Always signs with current secret (JWT_SECRET).
    Token contains user identity, role, and revocation version.
    """
    now = datetime.now(timezone.utc)
    payload = {
        "sub": str(user_id),
        "role": role,
        "token_version": token_version,
        "iat": now,
        "exp": now + timedelta(hours=settings.JWT_EXPIRES_HOURS),
    }
    return jwt.encode(payload, settings.JWT_SECRET, algorithm="HS256")


def decode_session_token(token: str) -> dict:
    """
    Decode and verify session JWT.

    Tries current secret first, then previous (for rotation support).

    Raises:
        jwt.InvalidTokenError: If token invalid with all secrets
    """
    last_error = None
    for secret in settings.jwt_secrets:
        try:
            return jwt.decode(token, secret, algorithms=["HS256"])
        except jwt.InvalidTokenError as e:
            last_error = e
            continue
    raise last_error  # type: ignore


# =============================================================================
# Passwords
# =============================================================================

# bcrypt only looks at the first 72 bytes
BCRYPT_MAX_BYTES = 72

PASSWORD_SPECIALS = "@$!%*?&"
STRONG_PASSWORD_MIN_LENGTH = 12
WORKER_PASSWORD_MIN_LENGTH = 8


def hash_password(password: str) -> str:
    """Hash a password with a fresh bcrypt salt."""
    hashed = bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt())
    return hashed.decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    """Check a plaintext password against a stored bcrypt hash."""
    if not password or not password_hash:
        return False
    encoded = password.encode("utf-8")
    if len(encoded) > BCRYPT_MAX_BYTES:
        return False
    try:
        return bcrypt.checkpw(encoded, password_hash.encode("utf-8"))
    except ValueError:
        return False


def validate_password_strength(password: str) -> str:
    """
    Enforce the account password policy.

    12+ characters with upper, lower, digit and one of @$!%*?&.

    Raises:
        ValueError: describing the first failed rule
    """
    if len(password.encode("utf-8")) > BCRYPT_MAX_BYTES:
        raise ValueError(f"Password must be at most {BCRYPT_MAX_BYTES} bytes")
    if len(password) < STRONG_PASSWORD_MIN_LENGTH:
        raise ValueError(f"Password must be at least {STRONG_PASSWORD_MIN_LENGTH} characters long")
    if not re.search(r"[a-z]", password):
        raise ValueError("Password must contain at least one lowercase letter")
    if not re.search(r"[A-Z]", password):
        raise ValueError("Password must contain at least one uppercase letter")
    if not re.search(r"\d", password):
        raise ValueError("Password must contain at least one number")
    if not any(ch in PASSWORD_SPECIALS for ch in password):
        raise ValueError(f"Password must contain at least one special character ({PASSWORD_SPECIALS})")
    return password


def validate_worker_password(password: str) -> str:
    """Team-leader-created worker accounts: 8+ characters with upper, lower and digit."""
    if len(password.encode("utf-8")) > BCRYPT_MAX_BYTES:
        raise ValueError(f"Password must be at most {BCRYPT_MAX_BYTES} bytes")
    if len(password) < WORKER_PASSWORD_MIN_LENGTH:
        raise ValueError(f"Password must be at least {WORKER_PASSWORD_MIN_LENGTH} characters")
    if not (re.search(r"[a-z]", password) and re.search(r"[A-Z]", password) and re.search(r"\d", password)):
        raise ValueError(
            "Password must contain at least one uppercase letter, one lowercase letter, and one number"
        )
    return password
