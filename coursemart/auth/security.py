"""Security utilities for authentication.

Provides:
- Password hashing with Argon2id (OWASP recommended)
- JWT access token creation and validation
- One-time token generation and hashing for password resets
"""

import hashlib
import secrets
from datetime import UTC, datetime, timedelta
from typing import Any

from argon2 import PasswordHasher
from argon2.exceptions import VerifyMismatchError
from jose import JWTError, jwt

from coursemart.config.settings import get_settings


# Argon2id configuration (OWASP recommended parameters)
_password_hasher = PasswordHasher(
    time_cost=2,
    memory_cost=19456,  # 19 MiB
    parallelism=1,
    hash_len=32,
    salt_len=16,
)

RESET_TOKEN_BYTES = 32


def hash_password(password: str) -> str:
    """Hash a password using Argon2id.

    Example:
        >>> hash_password("my-secure-password").startswith("$argon2id$")
        True
    """
    return _password_hasher.hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    try:
        return _password_hasher.verify(password_hash, password)
    except VerifyMismatchError:
        return False


def create_access_token(
    data: dict[str, Any],
    expires_delta: timedelta | None = None,
) -> str:
    """Create a JWT access token.

    Args:
        data: Claims, typically ``{"sub": user_id, "email": email, "role": role}``
        expires_delta: Token lifetime (default from settings)

    Returns:
        Encoded JWT string with ``exp``, ``iat`` and ``type="access"`` added.
    """
    settings = get_settings()

    now = datetime.now(UTC)
    to_encode = data.copy()
    to_encode.update(
        {
            "exp": now
            + (
                expires_delta
                or timedelta(minutes=settings.auth_access_token_expire_minutes)
            ),
            "iat": now,
            "type": "access",
        }
    )

    return jwt.encode(
        to_encode,
        settings.auth_secret_key,
        algorithm=settings.auth_algorithm,
    )


def decode_access_token(token: str) -> dict[str, Any]:
    """Decode and validate an access token.

    Raises:
        JWTError: If token is invalid, expired, or not an access token
    """
    settings = get_settings()

    payload = jwt.decode(
        token,
        settings.auth_secret_key,
        algorithms=[settings.auth_algorithm],
    )

    if payload.get("type") != "access":
        msg = "Invalid token type: expected 'access'"
        raise JWTError(msg)

    return payload


def generate_reset_token() -> str:
    """Random URL-safe token sent to the user by email."""
    return secrets.token_urlsafe(RESET_TOKEN_BYTES)


def hash_reset_token(token: str) -> str:
    """SHA-256 hex digest; only this is ever stored."""
    return hashlib.sha256(token.encode()).hexdigest()
