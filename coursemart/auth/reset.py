"""Password reset state machine.

A user is either in ``NoResetPending`` or ``ResetPending``. The transitions
below are pure functions; persistence is handled by ``UserService``. Only
the SHA-256 of the token is ever held in state.
"""

import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta

from coursemart.auth.security import generate_reset_token, hash_reset_token
from coursemart.core.errors import ValidationError


class InvalidResetToken(ValidationError):
    def __init__(self, message: str = "Reset token is invalid"):
        super().__init__(message, code="invalid_reset_token")


class ResetTokenExpired(ValidationError):
    def __init__(self, message: str = "Reset token has expired, request a new one"):
        super().__init__(message, code="reset_token_expired")


@dataclass(frozen=True)
class NoResetPending:
    pass


@dataclass(frozen=True)
class ResetPending:
    token_hash: str
    expires_at: datetime

    def is_expired(self, now: datetime) -> bool:
        return now >= self.expires_at


ResetState = NoResetPending | ResetPending


def from_columns(token_hash: str | None, expires_at: datetime | None) -> ResetState:
    """Rebuild state from the nullable user columns.

    Half-populated columns are treated as no pending reset.
    """
    if token_hash and expires_at:
        return ResetPending(token_hash=token_hash, expires_at=expires_at)
    return NoResetPending()


def issue(now: datetime, ttl: timedelta) -> tuple[str, ResetPending]:
    """Start a reset from any state, replacing a previous pending token.

    Returns:
        The plain token (to email) and the new pending state.
    """
    token = generate_reset_token()
    return token, ResetPending(token_hash=hash_reset_token(token), expires_at=now + ttl)


def consume(state: ResetState, token: str, now: datetime) -> NoResetPending:
    """Spend a token.

    Raises:
        InvalidResetToken: No reset pending or the token does not match
        ResetTokenExpired: The token matched but its lifetime is over
    """
    if not isinstance(state, ResetPending):
        raise InvalidResetToken
    if not secrets.compare_digest(state.token_hash, hash_reset_token(token)):
        raise InvalidResetToken
    if state.is_expired(now):
        raise ResetTokenExpired
    return NoResetPending()


def expire(state: ResetState, now: datetime) -> ResetState:
    if isinstance(state, ResetPending) and state.is_expired(now):
        return NoResetPending()
    return state
