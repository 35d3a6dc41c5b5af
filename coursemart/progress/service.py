"""Student progress tracking service layer.

Business logic for:
- Progress record creation (one per student and course, race-safe)
- Marking lessons complete
- Completion percentage over the course's current structure
"""

from decimal import ROUND_HALF_UP, Decimal
from typing import TYPE_CHECKING
from uuid import UUID

import structlog

from coursemart.core.errors import ConflictError, NotFoundError
from coursemart.core.timeutils import utcnow

from .models import ProgressRecord
from .schemas import CourseProgressResponse


if TYPE_CHECKING:
    from cassandra.cluster import Session

    from coursemart.courses.service import CourseService

logger = structlog.get_logger(__name__)

TWO_PLACES = Decimal("0.01")


# ==============================================================================
# Custom Exceptions
# ==============================================================================


class NotEnrolledError(NotFoundError):
    """No progress record exists for the (student, course) pair."""

    def __init__(self, message: str = "Student is not enrolled in this course"):
        super().__init__(message, "not_enrolled")


class LessonNotInCourseError(NotFoundError):
    def __init__(self, message: str = "Lesson does not belong to this course"):
        super().__init__(message, "lesson_not_in_course")


class AlreadyCompletedError(ConflictError):
    def __init__(self, message: str = "Lesson already completed"):
        super().__init__(message, "already_completed")


def compute_percentage(completed: int, total: int) -> Decimal:
    """Completion percentage rounded half-up to two decimals.

    A course without lessons is 0% complete.

    Examples:
        >>> compute_percentage(2, 3)
        Decimal('66.67')
        >>> compute_percentage(0, 0)
        Decimal('0')
    """
    if total <= 0:
        return Decimal(0)
    ratio = Decimal(completed) * 100 / Decimal(total)
    return ratio.quantize(TWO_PLACES, rounding=ROUND_HALF_UP)


# ==============================================================================
# Progress Tracker
# ==============================================================================


class ProgressTracker:
    """Service for per-course lesson completion."""

    def __init__(self, session: "Session", keyspace: str, courses: "CourseService"):
        self.session = session
        self.keyspace = keyspace
        self.courses = courses
        self._prepare_statements()

    def _prepare_statements(self) -> None:
        self._get_record = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.course_progress
            WHERE user_id = ? AND course_id = ?
        """)

        # Lightweight transaction: the storage-level uniqueness guard
        self._create_record = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.course_progress
            (user_id, course_id, id, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?)
            IF NOT EXISTS
        """)

        self._add_completed = self.session.prepare(f"""
            UPDATE {self.keyspace}.course_progress
            SET completed_lesson_ids = completed_lesson_ids + ?, updated_at = ?
            WHERE user_id = ? AND course_id = ?
        """)

        self._delete_record = self.session.prepare(f"""
            DELETE FROM {self.keyspace}.course_progress
            WHERE user_id = ? AND course_id = ?
        """)

    # ==========================================================================
    # Records
    # ==========================================================================

    async def get_record(self, user_id: UUID, course_id: UUID) -> ProgressRecord | None:
        result = await self.session.aexecute(self._get_record, [user_id, course_id])
        row = result.one()
        return ProgressRecord.from_row(row) if row else None

    async def require_record(self, user_id: UUID, course_id: UUID) -> ProgressRecord:
        record = await self.get_record(user_id, course_id)
        if record is None:
            raise NotEnrolledError
        return record

    async def create_record(
        self, user_id: UUID, course_id: UUID
    ) -> tuple[ProgressRecord, bool]:
        """Create the progress record for a pair unless one already exists.

        Losing the race to a concurrent delivery is the normal idempotent
        path: the existing record is returned instead.

        Returns:
            (record, created) where ``created`` is False if it already existed
        """
        record = ProgressRecord(user_id=user_id, course_id=course_id)
        result = await self.session.aexecute(
            self._create_record,
            [user_id, course_id, record.id, record.created_at, record.updated_at],
        )

        if result.was_applied:
            logger.info(
                "progress_record_created",
                user_id=str(user_id),
                course_id=str(course_id),
                progress_record_id=str(record.id),
            )
            return record, True

        existing = await self.get_record(user_id, course_id)
        if existing is None:
            # LWT reported a conflicting row that is no longer readable
            msg = "Progress record vanished after conditional insert"
            raise RuntimeError(msg)
        logger.info(
            "progress_record_exists",
            user_id=str(user_id),
            course_id=str(course_id),
            progress_record_id=str(existing.id),
        )
        return existing, False

    async def delete_record(self, user_id: UUID, course_id: UUID) -> None:
        await self.session.aexecute(self._delete_record, [user_id, course_id])

    # ==========================================================================
    # Completion
    # ==========================================================================

    async def mark_lesson_complete(
        self, user_id: UUID, course_id: UUID, lesson_id: UUID
    ) -> ProgressRecord:
        """Add a lesson to the student's completed set.

        Raises:
            NotEnrolledError: No progress record for the pair
            CourseNotFoundError: Course no longer exists
            LessonNotInCourseError: Lesson is not part of the course
            AlreadyCompletedError: Lesson was already completed
        """
        record = await self.require_record(user_id, course_id)

        structure = await self.courses.get_course_structure(course_id)
        if lesson_id not in structure.lesson_ids:
            raise LessonNotInCourseError

        if record.has_completed(lesson_id):
            raise AlreadyCompletedError

        now = utcnow()
        await self.session.aexecute(
            self._add_completed, [{lesson_id}, now, user_id, course_id]
        )
        record.completed_lesson_ids.add(lesson_id)
        record.updated_at = now

        logger.info(
            "lesson_completed",
            user_id=str(user_id),
            course_id=str(course_id),
            lesson_id=str(lesson_id),
            completed=len(record.completed_lesson_ids),
        )
        return record

    async def _measure(
        self, user_id: UUID, course_id: UUID
    ) -> tuple[ProgressRecord, int, int, Decimal]:
        record = await self.require_record(user_id, course_id)
        structure = await self.courses.get_course_structure(course_id)

        # Ids no longer reachable through the course are ignored, keeping
        # the percentage within [0, 100]
        completed = len(record.completed_lesson_ids & structure.lesson_ids)
        total = structure.total_lessons
        return record, completed, total, compute_percentage(completed, total)

    async def get_progress_percentage(self, user_id: UUID, course_id: UUID) -> Decimal:
        """Completion percentage. Read-only, and stable across repeated calls.

        Raises:
            NotEnrolledError: No progress record for the pair
        """
        _, _, _, percentage = await self._measure(user_id, course_id)
        return percentage

    async def get_course_progress(
        self, user_id: UUID, course_id: UUID
    ) -> CourseProgressResponse:
        record, completed, total, percentage = await self._measure(user_id, course_id)
        return CourseProgressResponse(
            course_id=course_id,
            progress_record_id=record.id,
            completed_lesson_ids=sorted(record.completed_lesson_ids, key=str),
            completed_lessons=completed,
            total_lessons=total,
            progress_percentage=float(percentage),
        )
