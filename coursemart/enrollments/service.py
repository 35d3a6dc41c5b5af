"""Enrollment fulfillment.

Turns a verified payment into enrollment state. Every step checks before
it writes, so replaying the whole sequence (a webhook retry, a duplicate
delivery, a concurrent delivery, or a retry after a partial failure)
converges on the same final state:

1. student in ``course.enrolled_student_ids``
2. course in ``user.course_ids``
3. exactly one progress record for the pair (conditional insert)
4. record id in ``user.progress_record_ids``
5. confirmation email, best-effort

There is no multi-record transaction; the processor's retries finish any
sequence interrupted between steps.
"""

from dataclasses import dataclass
from typing import TYPE_CHECKING
from uuid import UUID

import structlog

from coursemart.auth.service import UserNotFoundError
from coursemart.core.errors import AppError
from coursemart.courses.service import CourseNotFoundError


if TYPE_CHECKING:
    from coursemart.auth.models import User
    from coursemart.auth.service import UserService
    from coursemart.courses.models import Course
    from coursemart.courses.service import CourseService
    from coursemart.email.service import EmailService
    from coursemart.progress.service import ProgressTracker

logger = structlog.get_logger(__name__)


class FulfillmentError(AppError):
    """A required fulfillment step failed; the webhook must be retried."""

    default_code = "fulfillment_failed"

    def __init__(self, message: str = "Enrollment processing failed"):
        super().__init__(message)


@dataclass(frozen=True)
class FulfillmentResult:
    course_id: UUID
    user_id: UUID
    progress_record_id: UUID
    already_enrolled: bool
    email_sent: bool = False


class EnrollmentFulfiller:
    """Apply a verified (course, student) purchase idempotently."""

    def __init__(
        self,
        courses: "CourseService",
        users: "UserService",
        progress: "ProgressTracker",
        email_service: "EmailService | None" = None,
        frontend_url: str = "",
    ):
        self.courses = courses
        self.users = users
        self.progress = progress
        self.email_service = email_service
        self.frontend_url = frontend_url.rstrip("/")

    async def fulfill(self, course_id: UUID, user_id: UUID) -> FulfillmentResult:
        """Enroll ``user_id`` in ``course_id``.

        Raises:
            FulfillmentError: Any of steps 1-4 failed (including a missing
                course or user). Nothing is rolled back.
        """
        log = logger.bind(course_id=str(course_id), user_id=str(user_id))

        try:
            course = await self.courses.get_course(course_id)
            if course is None:
                raise CourseNotFoundError
            user = await self.users.get_user(user_id)
            if user is None:
                raise UserNotFoundError

            added_to_course = False
            if not course.is_student_enrolled(user_id):
                await self.courses.add_enrolled_student(course_id, user_id)
                added_to_course = True

            if not user.is_enrolled_in(course_id):
                await self.users.add_course(user_id, course_id)

            record, record_created = await self.progress.create_record(
                user_id, course_id
            )

            if record.id not in user.progress_record_ids:
                await self.users.add_progress_record(user_id, record.id)

        except AppError as e:
            log.error("enrollment_fulfillment_failed", code=e.code, error=e.message)
            raise FulfillmentError from e
        except Exception as e:
            log.exception("enrollment_fulfillment_failed", error_type=type(e).__name__)
            raise FulfillmentError from e

        already_enrolled = not (added_to_course or record_created)
        email_sent = False
        if not already_enrolled:
            email_sent = await self._send_confirmation(user, course)

        log.info(
            "enrollment_fulfilled",
            progress_record_id=str(record.id),
            already_enrolled=already_enrolled,
            email_sent=email_sent,
        )
        return FulfillmentResult(
            course_id=course_id,
            user_id=user_id,
            progress_record_id=record.id,
            already_enrolled=already_enrolled,
            email_sent=email_sent,
        )

    async def _send_confirmation(self, user: "User", course: "Course") -> bool:
        """Best-effort email; never fails the enrollment."""
        if self.email_service is None:
            return False
        try:
            response = await self.email_service.send_enrollment_confirmation(
                to=user.email,
                user_name=user.name or user.email,
                course_title=course.title,
                course_link=f"{self.frontend_url}/courses/{course.id}",
            )
        except Exception:
            logger.exception(
                "enrollment_email_failed",
                course_id=str(course.id),
                user_id=str(user.id),
            )
            return False

        if not response.success:
            logger.warning(
                "enrollment_email_failed",
                course_id=str(course.id),
                user_id=str(user.id),
                error=response.error,
            )
        return response.success
