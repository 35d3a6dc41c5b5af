"""Tests for user registration and password reset persistence."""

from datetime import timedelta
from uuid import uuid4

import pytest
from helpers import executed_queries, result, row

from coursemart.auth import reset
from coursemart.auth.security import hash_password, hash_reset_token, verify_password
from coursemart.auth.service import (
    EmailAlreadyRegisteredError,
    InvalidCredentialsError,
    UserService,
)
from coursemart.core.timeutils import utcnow


@pytest.fixture
def user_service(mock_session) -> UserService:
    return UserService(
        session=mock_session,
        keyspace="test_ks",
        reset_token_ttl=timedelta(minutes=5),
    )


def user_row(**overrides):
    now = utcnow()
    fields = {
        "id": uuid4(),
        "email": "student@test.com",
        "name": "Test Student",
        "password_hash": hash_password("old-password"),
        "role": "student",
        "course_ids": None,
        "progress_record_ids": None,
        "reset_token_hash": None,
        "reset_token_expires_at": None,
        "created_at": now,
        "updated_at": now,
    }
    fields.update(overrides)
    return row(**fields)


class TestRegister:
    @pytest.mark.asyncio
    async def test_registers_with_lowercased_email(
        self, user_service, mock_session
    ) -> None:
        user = await user_service.register_user(
            email="New@Test.com", name="New User", password="password123"
        )

        assert user.email == "new@test.com"
        assert verify_password("password123", user.password_hash)
        queries = executed_queries(mock_session)
        assert "users_by_email" in queries[0]
        assert "IF NOT EXISTS" in queries[0]

    @pytest.mark.asyncio
    async def test_duplicate_email(self, user_service, mock_session) -> None:
        mock_session.aexecute.return_value = result(was_applied=False)

        with pytest.raises(EmailAlreadyRegisteredError):
            await user_service.register_user(
                email="taken@test.com", name="Someone", password="password123"
            )
        assert mock_session.aexecute.await_count == 1


class TestAuthenticate:
    @pytest.mark.asyncio
    async def test_wrong_password(self, user_service, mock_session) -> None:
        stored = user_row()
        mock_session.aexecute.side_effect = [
            result([row(user_id=stored.id)]),
            result([stored]),
        ]

        with pytest.raises(InvalidCredentialsError) as exc_info:
            await user_service.authenticate(stored.email, "nope")
        assert exc_info.value.status_code == 401


class TestPasswordReset:
    @pytest.mark.asyncio
    async def test_unknown_email_returns_none(self, user_service, mock_session):
        mock_session.aexecute.return_value = result()

        assert await user_service.request_password_reset("ghost@test.com") is None

    @pytest.mark.asyncio
    async def test_request_stores_hash_with_ttl(
        self, user_service, mock_session
    ) -> None:
        stored = user_row()
        mock_session.aexecute.side_effect = [
            result([row(user_id=stored.id)]),
            result([stored]),
            result(),
            result(),
        ]

        user, token = await user_service.request_password_reset(stored.email)

        assert user.id == stored.id
        set_state, insert_lookup = mock_session.aexecute.call_args_list[2:]
        assert set_state.args[1][0] == hash_reset_token(token)
        assert insert_lookup.args[1] == [hash_reset_token(token), stored.id, 300]

    @pytest.mark.asyncio
    async def test_new_request_drops_live_token(
        self, user_service, mock_session
    ) -> None:
        stored = user_row(
            reset_token_hash="old-hash",
            reset_token_expires_at=utcnow() + timedelta(minutes=3),
        )
        mock_session.aexecute.side_effect = [
            result([row(user_id=stored.id)]),
            result([stored]),
            result(),
            result(),
            result(),
        ]

        await user_service.request_password_reset(stored.email)

        delete_lookup = mock_session.aexecute.call_args_list[2]
        assert "DELETE FROM test_ks.password_resets" in (
            delete_lookup.args[0].query_string
        )
        assert delete_lookup.args[1] == ["old-hash"]

    @pytest.mark.asyncio
    async def test_confirm_sets_new_password(self, user_service, mock_session):
        now = utcnow()
        token, pending = reset.issue(now, timedelta(minutes=5))
        stored = user_row(
            reset_token_hash=pending.token_hash,
            reset_token_expires_at=pending.expires_at,
        )
        mock_session.aexecute.side_effect = [
            result([row(user_id=stored.id)]),
            result([stored]),
            result(),
            result(),
        ]

        user = await user_service.confirm_password_reset(token, "new-password")

        assert verify_password("new-password", user.password_hash)
        queries = executed_queries(mock_session)
        assert "reset_token_hash = null" in queries[2]
        assert "DELETE FROM test_ks.password_resets" in queries[3]

    @pytest.mark.asyncio
    async def test_confirm_unknown_token(self, user_service, mock_session) -> None:
        mock_session.aexecute.return_value = result()

        with pytest.raises(reset.InvalidResetToken):
            await user_service.confirm_password_reset("bogus", "new-password")

    @pytest.mark.asyncio
    async def test_confirm_expired_token_clears_state(
        self, user_service, mock_session
    ) -> None:
        token, pending = reset.issue(
            utcnow() - timedelta(minutes=10), timedelta(minutes=5)
        )
        stored = user_row(
            reset_token_hash=pending.token_hash,
            reset_token_expires_at=pending.expires_at,
        )
        mock_session.aexecute.side_effect = [
            result([row(user_id=stored.id)]),
            result([stored]),
            result(),
            result(),
        ]

        with pytest.raises(reset.ResetTokenExpired):
            await user_service.confirm_password_reset(token, "new-password")

        clear_state = mock_session.aexecute.call_args_list[2]
        assert clear_state.args[1][:2] == [None, None]
