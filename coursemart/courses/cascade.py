"""Cascading deletes across courses, users, progress and reviews.

Deleting a course or a user must not leave ids pointing at records that
no longer exist. Every step is idempotent, so a failed cascade can simply
be re-run. References that already dangle are logged and skipped; they are
never "repaired" by writing to a missing row, since a Cassandra UPDATE
would resurrect it. Keyed deletes of the pair's progress record still run.
"""

from typing import TYPE_CHECKING
from uuid import UUID

import structlog

from coursemart.auth.permissions import UserRole
from coursemart.auth.schemas import UserResponse
from coursemart.core.errors import IntegrityError


if TYPE_CHECKING:
    from coursemart.auth.service import UserService
    from coursemart.progress.service import ProgressTracker
    from coursemart.reviews.service import ReviewService

    from .service import CourseService

logger = structlog.get_logger(__name__)


def _log_dangling(kind: str, ref_id: UUID, owner: str, owner_id: UUID) -> None:
    error = IntegrityError(f"{owner} {owner_id} references missing {kind} {ref_id}")
    logger.error(
        "dangling_reference",
        code=error.code,
        kind=kind,
        ref_id=str(ref_id),
        owner=owner,
        owner_id=str(owner_id),
    )


class CascadeService:
    def __init__(
        self,
        courses: "CourseService",
        users: "UserService",
        progress: "ProgressTracker",
        reviews: "ReviewService",
    ):
        self.courses = courses
        self.users = users
        self.progress = progress
        self.reviews = reviews

    async def delete_course(self, course_id: UUID, actor: UserResponse) -> None:
        """Delete a course and everything that references it.

        Raises:
            CourseNotFoundError: Course does not exist
            NotCourseOwnerError: Actor is neither the instructor nor an admin
        """
        structure = await self.courses.get_course_structure(course_id)
        course = structure.course
        self.courses.ensure_can_manage(course, actor)

        for student_id in sorted(course.enrolled_student_ids, key=str):
            await self._unenroll(student_id, course_id)

        await self.reviews.delete_course_reviews(course_id)

        if course.instructor_id is not None:
            instructor = await self.users.get_user(course.instructor_id)
            if instructor is None:
                _log_dangling("user", course.instructor_id, "course", course_id)
            else:
                await self.users.remove_course(instructor.id, course_id)

        await self.courses.delete_content(structure)

        logger.info(
            "course_deleted",
            course_id=str(course_id),
            students=len(course.enrolled_student_ids),
            sections=len(structure.sections),
        )

    async def _unenroll(self, student_id: UUID, course_id: UUID) -> None:
        student = await self.users.get_user(student_id)
        if student is None:
            _log_dangling("user", student_id, "course", course_id)
            # Keyed delete, safe on a missing row
            await self.progress.delete_record(student_id, course_id)
            return

        await self.users.remove_course(student_id, course_id)
        record = await self.progress.get_record(student_id, course_id)
        if record is not None:
            await self.progress.delete_record(student_id, course_id)
            await self.users.remove_progress_record(student_id, record.id)

    async def delete_user(self, user_id: UUID) -> None:
        """Delete an account and its enrollments, progress, reviews and courses.

        Instructors' authored courses are deleted with the full course cascade.

        Raises:
            UserNotFoundError: User does not exist
        """
        user = await self.users.require_user(user_id)

        for course_id in sorted(user.course_ids, key=str):
            course = await self.courses.get_course(course_id)
            if course is None:
                _log_dangling("course", course_id, "user", user_id)
                await self.progress.delete_record(user_id, course_id)
                continue

            if course.instructor_id == user_id:
                actor = UserResponse(
                    id=user_id, email=user.email, role=UserRole(user.role)
                )
                await self.delete_course(course_id, actor)
                continue

            await self.courses.remove_enrolled_student(course_id, user_id)
            await self.reviews.delete_user_review(course_id, user_id)
            await self.progress.delete_record(user_id, course_id)

        await self.users.delete_user_record(user)
        logger.info("user_deleted", user_id=str(user_id), role=user.role)
