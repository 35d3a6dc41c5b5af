"""User accounts service layer.

Business logic for:
- Registration and authentication
- Enrollment bookkeeping on the user record (course and progress ids)
- Password reset persistence around the ``reset`` state machine
"""

from datetime import timedelta
from typing import TYPE_CHECKING
from uuid import UUID

import structlog

from coursemart.auth import reset
from coursemart.auth.models import User
from coursemart.auth.permissions import UserRole
from coursemart.auth.security import hash_password, hash_reset_token, verify_password
from coursemart.core.errors import AuthorizationError, ConflictError, NotFoundError
from coursemart.core.timeutils import utcnow


if TYPE_CHECKING:
    from cassandra.cluster import Session

logger = structlog.get_logger(__name__)


# ==============================================================================
# Custom Exceptions
# ==============================================================================


class UserNotFoundError(NotFoundError):
    def __init__(self, message: str = "User not found"):
        super().__init__(message, "user_not_found")


class EmailAlreadyRegisteredError(ConflictError):
    def __init__(self, message: str = "Email is already registered"):
        super().__init__(message, "email_taken")


class InvalidCredentialsError(AuthorizationError):
    status_code = 401

    def __init__(self, message: str = "Invalid email or password"):
        super().__init__(message, "invalid_credentials")


# ==============================================================================
# User Service
# ==============================================================================


class UserService:
    """Service for user records."""

    def __init__(
        self,
        session: "Session",
        keyspace: str,
        reset_token_ttl: timedelta = timedelta(minutes=5),
    ):
        self.session = session
        self.keyspace = keyspace
        self.reset_token_ttl = reset_token_ttl
        self._prepare_statements()

    def _prepare_statements(self) -> None:
        self._get_user = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.users WHERE id = ?
        """)

        self._get_user_id_by_email = self.session.prepare(f"""
            SELECT user_id FROM {self.keyspace}.users_by_email WHERE email = ?
        """)

        # Lightweight transaction: the email row is the uniqueness guard
        self._claim_email = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.users_by_email (email, user_id)
            VALUES (?, ?) IF NOT EXISTS
        """)

        self._insert_user = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.users
            (id, email, name, password_hash, role, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?)
        """)

        self._add_course = self.session.prepare(f"""
            UPDATE {self.keyspace}.users SET course_ids = course_ids + ?
            WHERE id = ?
        """)

        self._remove_course = self.session.prepare(f"""
            UPDATE {self.keyspace}.users SET course_ids = course_ids - ?
            WHERE id = ?
        """)

        self._add_progress_record = self.session.prepare(f"""
            UPDATE {self.keyspace}.users
            SET progress_record_ids = progress_record_ids + ?
            WHERE id = ?
        """)

        self._remove_progress_record = self.session.prepare(f"""
            UPDATE {self.keyspace}.users
            SET progress_record_ids = progress_record_ids - ?
            WHERE id = ?
        """)

        self._set_reset_state = self.session.prepare(f"""
            UPDATE {self.keyspace}.users
            SET reset_token_hash = ?, reset_token_expires_at = ?, updated_at = ?
            WHERE id = ?
        """)

        self._set_password = self.session.prepare(f"""
            UPDATE {self.keyspace}.users
            SET password_hash = ?, reset_token_hash = null,
                reset_token_expires_at = null, updated_at = ?
            WHERE id = ?
        """)

        self._insert_reset_lookup = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.password_resets (token_hash, user_id)
            VALUES (?, ?) USING TTL ?
        """)

        self._get_reset_lookup = self.session.prepare(f"""
            SELECT user_id FROM {self.keyspace}.password_resets WHERE token_hash = ?
        """)

        self._delete_reset_lookup = self.session.prepare(f"""
            DELETE FROM {self.keyspace}.password_resets WHERE token_hash = ?
        """)

        self._delete_user = self.session.prepare(f"""
            DELETE FROM {self.keyspace}.users WHERE id = ?
        """)

        self._delete_email = self.session.prepare(f"""
            DELETE FROM {self.keyspace}.users_by_email WHERE email = ?
        """)

    # ==========================================================================
    # Queries
    # ==========================================================================

    async def get_user(self, user_id: UUID) -> User | None:
        result = await self.session.aexecute(self._get_user, [user_id])
        row = result.one()
        return User.from_row(row) if row else None

    async def require_user(self, user_id: UUID) -> User:
        user = await self.get_user(user_id)
        if user is None:
            raise UserNotFoundError
        return user

    async def get_user_by_email(self, email: str) -> User | None:
        result = await self.session.aexecute(
            self._get_user_id_by_email, [email.lower()]
        )
        row = result.one()
        return await self.get_user(row.user_id) if row else None

    # ==========================================================================
    # Registration / Login
    # ==========================================================================

    async def register_user(
        self,
        email: str,
        name: str,
        password: str,
        role: UserRole = UserRole.STUDENT,
    ) -> User:
        """Create a user.

        Raises:
            EmailAlreadyRegisteredError: If the email is already claimed
        """
        user = User(
            email=email.lower(),
            name=name,
            password_hash=hash_password(password),
            role=role.value,
        )

        result = await self.session.aexecute(self._claim_email, [user.email, user.id])
        if not result.was_applied:
            raise EmailAlreadyRegisteredError

        await self.session.aexecute(
            self._insert_user,
            [
                user.id,
                user.email,
                user.name,
                user.password_hash,
                user.role,
                user.created_at,
                user.updated_at,
            ],
        )

        logger.info("user_registered", user_id=str(user.id), role=user.role)
        return user

    async def authenticate(self, email: str, password: str) -> User:
        """Raises InvalidCredentialsError for unknown email or wrong password."""
        user = await self.get_user_by_email(email)
        if user is None or not verify_password(password, user.password_hash):
            raise InvalidCredentialsError
        return user

    # ==========================================================================
    # Enrollment bookkeeping (set semantics, repeated adds are no-ops)
    # ==========================================================================

    async def add_course(self, user_id: UUID, course_id: UUID) -> None:
        await self.session.aexecute(self._add_course, [{course_id}, user_id])

    async def remove_course(self, user_id: UUID, course_id: UUID) -> None:
        await self.session.aexecute(self._remove_course, [{course_id}, user_id])

    async def add_progress_record(self, user_id: UUID, record_id: UUID) -> None:
        await self.session.aexecute(self._add_progress_record, [{record_id}, user_id])

    async def remove_progress_record(self, user_id: UUID, record_id: UUID) -> None:
        await self.session.aexecute(
            self._remove_progress_record, [{record_id}, user_id]
        )

    async def delete_user_record(self, user: User) -> None:
        """Delete the user row and its email claim (no cascade)."""
        await self.session.aexecute(self._delete_user, [user.id])
        await self.session.aexecute(self._delete_email, [user.email])

    # ==========================================================================
    # Password Reset
    # ==========================================================================

    async def request_password_reset(self, email: str) -> tuple[User, str] | None:
        """Issue a reset token for ``email``.

        Returns:
            (user, plain token) to email, or None when no such account exists.
            Callers must not reveal which case happened.
        """
        user = await self.get_user_by_email(email)
        if user is None:
            logger.info("password_reset_unknown_email")
            return None

        now = utcnow()
        token, pending = reset.issue(now, self.reset_token_ttl)

        # Drop the lookup for a still-live token this one replaces
        previous = reset.expire(
            reset.from_columns(user.reset_token_hash, user.reset_token_expires_at),
            now,
        )
        if isinstance(previous, reset.ResetPending):
            await self.session.aexecute(
                self._delete_reset_lookup, [previous.token_hash]
            )

        await self.session.aexecute(
            self._set_reset_state,
            [pending.token_hash, pending.expires_at, now, user.id],
        )
        await self.session.aexecute(
            self._insert_reset_lookup,
            [pending.token_hash, user.id, int(self.reset_token_ttl.total_seconds())],
        )

        logger.info("password_reset_issued", user_id=str(user.id))
        return user, token

    async def confirm_password_reset(self, token: str, new_password: str) -> User:
        """Spend a reset token and store the new password hash.

        Raises:
            InvalidResetToken: Unknown or mismatched token
            ResetTokenExpired: Token lifetime is over (pending state is cleared)
        """
        token_hash = hash_reset_token(token)
        result = await self.session.aexecute(self._get_reset_lookup, [token_hash])
        row = result.one()
        if row is None:
            raise reset.InvalidResetToken

        user = await self.get_user(row.user_id)
        if user is None:
            raise reset.InvalidResetToken

        now = utcnow()
        state = reset.from_columns(user.reset_token_hash, user.reset_token_expires_at)
        try:
            reset.consume(state, token, now)
        except reset.ResetTokenExpired:
            await self.session.aexecute(
                self._set_reset_state, [None, None, now, user.id]
            )
            await self.session.aexecute(self._delete_reset_lookup, [token_hash])
            raise

        user.password_hash = hash_password(new_password)
        await self.session.aexecute(
            self._set_password, [user.password_hash, now, user.id]
        )
        await self.session.aexecute(self._delete_reset_lookup, [token_hash])

        logger.info("password_reset_completed", user_id=str(user.id))
        return user
