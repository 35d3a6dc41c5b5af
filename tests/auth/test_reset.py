"""Tests for the password reset state machine."""

from datetime import timedelta

import pytest

from coursemart.auth import reset
from coursemart.auth.security import hash_reset_token
from coursemart.core.timeutils import utcnow


TTL = timedelta(minutes=5)


class TestFromColumns:
    def test_empty_columns(self) -> None:
        assert reset.from_columns(None, None) == reset.NoResetPending()

    def test_half_populated_is_not_pending(self) -> None:
        assert reset.from_columns("abc", None) == reset.NoResetPending()
        assert reset.from_columns(None, utcnow()) == reset.NoResetPending()

    def test_pending(self) -> None:
        expires = utcnow()
        assert reset.from_columns("abc", expires) == reset.ResetPending("abc", expires)


class TestIssue:
    def test_only_hash_is_kept(self) -> None:
        now = utcnow()
        token, pending = reset.issue(now, TTL)

        assert pending.token_hash == hash_reset_token(token)
        assert token not in pending.token_hash
        assert pending.expires_at == now + TTL

    def test_tokens_are_unique(self) -> None:
        now = utcnow()
        assert reset.issue(now, TTL)[0] != reset.issue(now, TTL)[0]


class TestConsume:
    def test_valid_token(self) -> None:
        now = utcnow()
        token, pending = reset.issue(now, TTL)

        assert reset.consume(pending, token, now + timedelta(minutes=4)) == (
            reset.NoResetPending()
        )

    def test_nothing_pending(self) -> None:
        with pytest.raises(reset.InvalidResetToken):
            reset.consume(reset.NoResetPending(), "token", utcnow())

    def test_wrong_token(self) -> None:
        now = utcnow()
        _, pending = reset.issue(now, TTL)

        with pytest.raises(reset.InvalidResetToken):
            reset.consume(pending, "not-the-token", now)

    def test_expired_token(self) -> None:
        now = utcnow()
        token, pending = reset.issue(now, TTL)

        with pytest.raises(reset.ResetTokenExpired) as exc_info:
            reset.consume(pending, token, now + TTL)
        assert exc_info.value.status_code == 400

    def test_replaced_token_is_invalid(self) -> None:
        now = utcnow()
        old_token, _ = reset.issue(now, TTL)
        _, newer = reset.issue(now, TTL)

        with pytest.raises(reset.InvalidResetToken):
            reset.consume(newer, old_token, now)


class TestExpire:
    def test_expired_becomes_no_reset(self) -> None:
        now = utcnow()
        _, pending = reset.issue(now, TTL)
        assert reset.expire(pending, now + TTL) == reset.NoResetPending()

    def test_live_token_kept(self) -> None:
        now = utcnow()
        _, pending = reset.issue(now, TTL)
        assert reset.expire(pending, now) is pending
