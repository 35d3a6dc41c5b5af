"""Database models for student progress tracking.

One ``course_progress`` row per (student, course) pair. The composite
partition key is the pair itself, so ``INSERT ... IF NOT EXISTS`` makes
creation unique even across concurrent webhook deliveries.
"""

from datetime import datetime
from typing import Any
from uuid import UUID, uuid4

from coursemart.core.timeutils import ensure_utc_aware, utcnow


COURSE_PROGRESS_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.course_progress (
    user_id UUID,
    course_id UUID,
    id UUID,
    completed_lesson_ids SET<UUID>,
    created_at TIMESTAMP,
    updated_at TIMESTAMP,
    PRIMARY KEY ((user_id, course_id))
)
"""

PROGRESS_TABLES_CQL = [
    COURSE_PROGRESS_TABLE_CQL,
]


class ProgressRecord:
    """Lessons a student has completed in one course.

    Attributes:
        id: Record identifier, referenced from the user's progress_record_ids
        user_id: Student UUID
        course_id: Course UUID
        completed_lesson_ids: Set of completed lesson ids (grows only)
    """

    def __init__(
        self,
        user_id: UUID,
        course_id: UUID,
        id: UUID | None = None,
        completed_lesson_ids: set[UUID] | None = None,
        created_at: datetime | None = None,
        updated_at: datetime | None = None,
    ):
        self.id = id or uuid4()
        self.user_id = user_id
        self.course_id = course_id
        self.completed_lesson_ids = set(completed_lesson_ids or ())
        self.created_at = ensure_utc_aware(created_at) or utcnow()
        self.updated_at = ensure_utc_aware(updated_at) or self.created_at

    def has_completed(self, lesson_id: UUID) -> bool:
        return lesson_id in self.completed_lesson_ids

    @classmethod
    def from_row(cls, row: Any) -> "ProgressRecord":
        return cls(
            id=row.id,
            user_id=row.user_id,
            course_id=row.course_id,
            completed_lesson_ids=row.completed_lesson_ids,
            created_at=row.created_at,
            updated_at=row.updated_at,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "course_id": self.course_id,
            "completed_lesson_ids": sorted(self.completed_lesson_ids, key=str),
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }

    def __repr__(self) -> str:
        return (
            f"<ProgressRecord user={self.user_id} course={self.course_id} "
            f"completed={len(self.completed_lesson_ids)}>"
        )
