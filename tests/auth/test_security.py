"""Tests for password hashing and access tokens."""

from datetime import timedelta
from uuid import uuid4

import pytest
from jose import JWTError

from coursemart.auth.permissions import (
    UserRole,
    can_manage_course,
    has_permission,
    is_admin,
)
from coursemart.auth.security import (
    create_access_token,
    decode_access_token,
    generate_reset_token,
    hash_password,
    hash_reset_token,
    verify_password,
)


class TestPasswords:
    def test_hash_and_verify(self) -> None:
        hashed = hash_password("correct horse")
        assert hashed.startswith("$argon2id$")
        assert verify_password("correct horse", hashed) is True
        assert verify_password("wrong horse", hashed) is False


class TestAccessTokens:
    def test_roundtrip_claims(self) -> None:
        user_id = str(uuid4())
        token = create_access_token(
            {"sub": user_id, "email": "a@test.com", "role": "student"}
        )

        payload = decode_access_token(token)

        assert payload["sub"] == user_id
        assert payload["type"] == "access"

    def test_expired_token_rejected(self) -> None:
        token = create_access_token({"sub": "x"}, expires_delta=timedelta(seconds=-1))
        with pytest.raises(JWTError):
            decode_access_token(token)


class TestResetTokens:
    def test_hash_is_sha256_hex(self) -> None:
        token = generate_reset_token()
        digest = hash_reset_token(token)
        assert len(digest) == 64
        assert digest == hash_reset_token(token)


class TestPermissions:
    @pytest.mark.parametrize(
        ("role", "required", "expected"),
        [
            (UserRole.ADMIN, UserRole.INSTRUCTOR, True),
            (UserRole.INSTRUCTOR, UserRole.INSTRUCTOR, True),
            (UserRole.STUDENT, UserRole.INSTRUCTOR, False),
            ("unknown", UserRole.STUDENT, False),
        ],
    )
    def test_has_permission(self, role, required, expected) -> None:
        assert has_permission(role, required) is expected

    def test_is_admin(self) -> None:
        assert is_admin("admin") is True
        assert is_admin(UserRole.INSTRUCTOR) is False

    def test_can_manage_course(self) -> None:
        owner = uuid4()
        assert can_manage_course(UserRole.INSTRUCTOR, owner, owner) is True
        assert can_manage_course(UserRole.INSTRUCTOR, uuid4(), owner) is False
        assert can_manage_course(UserRole.ADMIN, uuid4(), owner) is True
