"""Ratings and reviews service layer."""

from decimal import ROUND_HALF_UP, Decimal
from typing import TYPE_CHECKING
from uuid import UUID

import structlog

from coursemart.core.errors import ConflictError
from coursemart.progress.service import NotEnrolledError

from .models import RatingAndReview


if TYPE_CHECKING:
    from cassandra.cluster import Session

    from coursemart.courses.service import CourseService

logger = structlog.get_logger(__name__)

TWO_PLACES = Decimal("0.01")


class AlreadyReviewedError(ConflictError):
    def __init__(self, message: str = "Course is already reviewed by this user"):
        super().__init__(message, "already_reviewed")


class ReviewService:
    """Service for course ratings and reviews."""

    def __init__(self, session: "Session", keyspace: str, courses: "CourseService"):
        self.session = session
        self.keyspace = keyspace
        self.courses = courses
        self._prepare_statements()

    def _prepare_statements(self) -> None:
        self._insert_review = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.course_reviews
            (course_id, user_id, id, rating, review, created_at)
            VALUES (?, ?, ?, ?, ?, ?)
            IF NOT EXISTS
        """)

        self._list_reviews = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.course_reviews WHERE course_id = ?
        """)

        self._get_review = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.course_reviews
            WHERE course_id = ? AND user_id = ?
        """)

        self._rating_stats = self.session.prepare(f"""
            SELECT COUNT(*) AS review_count, SUM(rating) AS rating_sum
            FROM {self.keyspace}.course_reviews WHERE course_id = ?
        """)

        self._delete_course_reviews = self.session.prepare(f"""
            DELETE FROM {self.keyspace}.course_reviews WHERE course_id = ?
        """)

        self._delete_review = self.session.prepare(f"""
            DELETE FROM {self.keyspace}.course_reviews
            WHERE course_id = ? AND user_id = ?
        """)

    async def create_review(
        self, user_id: UUID, course_id: UUID, rating: int, review: str
    ) -> RatingAndReview:
        """Create the student's review of a course.

        Raises:
            CourseNotFoundError: Course does not exist
            NotEnrolledError: Student is not enrolled in the course
            AlreadyReviewedError: Student already reviewed this course
        """
        course = await self.courses.require_course(course_id)
        if not course.is_student_enrolled(user_id):
            raise NotEnrolledError

        entry = RatingAndReview(
            course_id=course_id, user_id=user_id, rating=rating, review=review
        )
        result = await self.session.aexecute(
            self._insert_review,
            [
                entry.course_id,
                entry.user_id,
                entry.id,
                entry.rating,
                entry.review,
                entry.created_at,
            ],
        )
        if not result.was_applied:
            raise AlreadyReviewedError

        await self.courses.add_review_id(course_id, entry.id)

        logger.info(
            "review_created",
            course_id=str(course_id),
            user_id=str(user_id),
            rating=rating,
        )
        return entry

    async def list_reviews(self, course_id: UUID) -> list[RatingAndReview]:
        rows = await self.session.aexecute(self._list_reviews, [course_id])
        return [RatingAndReview.from_row(row) for row in rows]

    async def get_average_rating(self, course_id: UUID) -> tuple[Decimal, int]:
        """Average rating and review count from one partition aggregate.

        Returns ``(0, 0)`` for a course without reviews.
        """
        result = await self.session.aexecute(self._rating_stats, [course_id])
        row = result.one()
        count = row.review_count if row else 0
        if not count:
            return Decimal(0), 0
        average = Decimal(row.rating_sum) / Decimal(count)
        return average.quantize(TWO_PLACES, rounding=ROUND_HALF_UP), count

    async def delete_course_reviews(self, course_id: UUID) -> None:
        await self.session.aexecute(self._delete_course_reviews, [course_id])

    async def delete_user_review(self, course_id: UUID, user_id: UUID) -> None:
        """Remove a student's review and its reference on the course, if any."""
        result = await self.session.aexecute(self._get_review, [course_id, user_id])
        row = result.one()
        if row is None:
            return
        await self.session.aexecute(self._delete_review, [course_id, user_id])
        await self.courses.remove_review_id(course_id, row.id)
