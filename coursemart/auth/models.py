"""Database models for users.

Cassandra table definitions for:
- Users: Main user table, including enrolled courses and progress records
- UsersByEmail: Lookup table that doubles as the email uniqueness guard
- PasswordResets: Token-hash lookup for the password reset flow
"""

from datetime import datetime
from typing import Any
from uuid import UUID, uuid4

from coursemart.auth.permissions import UserRole
from coursemart.core.timeutils import ensure_utc_aware, utcnow


# course_ids holds enrolled courses for students and authored courses for
# instructors. Sets make repeated adds no-ops.
USER_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.users (
    id UUID PRIMARY KEY,
    email TEXT,
    name TEXT,
    password_hash TEXT,
    role TEXT,
    course_ids SET<UUID>,
    progress_record_ids SET<UUID>,
    reset_token_hash TEXT,
    reset_token_expires_at TIMESTAMP,
    created_at TIMESTAMP,
    updated_at TIMESTAMP
)
"""

USERS_BY_EMAIL_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.users_by_email (
    email TEXT PRIMARY KEY,
    user_id UUID
)
"""

PASSWORD_RESETS_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.password_resets (
    token_hash TEXT PRIMARY KEY,
    user_id UUID
)
"""

AUTH_TABLES_CQL = [
    USER_TABLE_CQL,
    USERS_BY_EMAIL_TABLE_CQL,
    PASSWORD_RESETS_TABLE_CQL,
]


class User:
    """User entity.

    Attributes:
        id: Unique identifier
        email: Unique, lower-cased email address
        name: Display name
        password_hash: Argon2id hash
        role: student, instructor or admin
        course_ids: Enrolled (student) or authored (instructor) course ids
        progress_record_ids: Ids of the user's course progress records
        reset_token_hash: SHA-256 of a pending reset token, if any
        reset_token_expires_at: Expiry of the pending reset token
    """

    def __init__(
        self,
        id: UUID | None = None,
        email: str = "",
        name: str = "",
        password_hash: str = "",
        role: str = UserRole.STUDENT.value,
        course_ids: set[UUID] | None = None,
        progress_record_ids: set[UUID] | None = None,
        reset_token_hash: str | None = None,
        reset_token_expires_at: datetime | None = None,
        created_at: datetime | None = None,
        updated_at: datetime | None = None,
    ):
        self.id = id or uuid4()
        self.email = email
        self.name = name
        self.password_hash = password_hash
        self.role = role
        self.course_ids = set(course_ids or ())
        self.progress_record_ids = set(progress_record_ids or ())
        self.reset_token_hash = reset_token_hash
        self.reset_token_expires_at = ensure_utc_aware(reset_token_expires_at)
        self.created_at = ensure_utc_aware(created_at) or utcnow()
        self.updated_at = ensure_utc_aware(updated_at) or self.created_at

    def is_enrolled_in(self, course_id: UUID) -> bool:
        return course_id in self.course_ids

    @classmethod
    def from_row(cls, row: Any) -> "User":
        """Create User instance from Cassandra row (null sets come back as None)."""
        return cls(
            id=row.id,
            email=row.email,
            name=row.name or "",
            password_hash=row.password_hash or "",
            role=row.role or UserRole.STUDENT.value,
            course_ids=row.course_ids,
            progress_record_ids=row.progress_record_ids,
            reset_token_hash=row.reset_token_hash,
            reset_token_expires_at=row.reset_token_expires_at,
            created_at=row.created_at,
            updated_at=row.updated_at,
        )

    def to_dict(self) -> dict[str, Any]:
        """Public fields only (no hashes)."""
        return {
            "id": self.id,
            "email": self.email,
            "name": self.name,
            "role": self.role,
            "course_ids": sorted(self.course_ids, key=str),
            "created_at": self.created_at,
        }

    def __repr__(self) -> str:
        return f"<User {self.email} ({self.role})>"
