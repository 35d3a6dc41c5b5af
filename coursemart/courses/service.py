"""Course content service layer.

Business logic for:
- Instructor authoring (course, section, lesson)
- Course structure reads used by the progress tracker
- Enrolled-student and review bookkeeping on the course record
"""

from typing import TYPE_CHECKING
from uuid import UUID

import structlog

from coursemart.auth.permissions import can_manage_course
from coursemart.core.errors import AuthorizationError, NotFoundError
from coursemart.core.timeutils import utcnow

from .models import Course, CourseStructure, Lesson, Section
from .schemas import (
    CreateCourseRequest,
    CreateLessonRequest,
    CreateSectionRequest,
    UpdateLessonRequest,
    UpdateSectionRequest,
)


if TYPE_CHECKING:
    from cassandra.cluster import Session

    from coursemart.auth.schemas import UserResponse
    from coursemart.auth.service import UserService

logger = structlog.get_logger(__name__)


# ==============================================================================
# Custom Exceptions
# ==============================================================================


class CourseNotFoundError(NotFoundError):
    def __init__(self, message: str = "Course not found"):
        super().__init__(message, "course_not_found")


class SectionNotFoundError(NotFoundError):
    def __init__(self, message: str = "Section not found in this course"):
        super().__init__(message, "section_not_found")


class LessonNotFoundError(NotFoundError):
    def __init__(self, message: str = "Lesson not found in this section"):
        super().__init__(message, "lesson_not_found")


class NotCourseOwnerError(AuthorizationError):
    def __init__(self, message: str = "Only the course instructor can do this"):
        super().__init__(message, "not_course_owner")


# ==============================================================================
# Course Service
# ==============================================================================


class CourseService:
    """Service for courses, sections and lessons."""

    def __init__(self, session: "Session", keyspace: str, users: "UserService"):
        self.session = session
        self.keyspace = keyspace
        self.users = users
        self._prepare_statements()

    def _prepare_statements(self) -> None:
        # Courses
        self._get_course = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.courses WHERE id = ?
        """)

        self._insert_course = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.courses
            (id, title, description, thumbnail_url, instructor_id, price,
             created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?)
        """)

        self._append_section = self.session.prepare(f"""
            UPDATE {self.keyspace}.courses
            SET section_ids = section_ids + ?, updated_at = ?
            WHERE id = ?
        """)

        self._remove_section = self.session.prepare(f"""
            UPDATE {self.keyspace}.courses
            SET section_ids = section_ids - ?, updated_at = ?
            WHERE id = ?
        """)

        self._add_student = self.session.prepare(f"""
            UPDATE {self.keyspace}.courses
            SET enrolled_student_ids = enrolled_student_ids + ?
            WHERE id = ?
        """)

        self._remove_student = self.session.prepare(f"""
            UPDATE {self.keyspace}.courses
            SET enrolled_student_ids = enrolled_student_ids - ?
            WHERE id = ?
        """)

        self._append_review = self.session.prepare(f"""
            UPDATE {self.keyspace}.courses SET review_ids = review_ids + ?
            WHERE id = ?
        """)

        self._remove_review = self.session.prepare(f"""
            UPDATE {self.keyspace}.courses SET review_ids = review_ids - ?
            WHERE id = ?
        """)

        self._delete_course = self.session.prepare(f"""
            DELETE FROM {self.keyspace}.courses WHERE id = ?
        """)

        # Sections
        self._get_sections = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.sections WHERE id IN ?
        """)

        self._get_section = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.sections WHERE id = ?
        """)

        self._insert_section = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.sections (id, course_id, title, created_at)
            VALUES (?, ?, ?, ?)
        """)

        self._append_lesson = self.session.prepare(f"""
            UPDATE {self.keyspace}.sections SET lesson_ids = lesson_ids + ?
            WHERE id = ?
        """)

        self._remove_lesson_from_section = self.session.prepare(f"""
            UPDATE {self.keyspace}.sections SET lesson_ids = lesson_ids - ?
            WHERE id = ?
        """)

        self._rename_section = self.session.prepare(f"""
            UPDATE {self.keyspace}.sections SET title = ? WHERE id = ?
        """)

        self._delete_section = self.session.prepare(f"""
            DELETE FROM {self.keyspace}.sections WHERE id = ?
        """)

        # Lessons
        self._get_lessons = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.lessons WHERE id IN ?
        """)

        self._insert_lesson = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.lessons
            (id, section_id, title, description, video_url, duration_seconds,
             created_at)
            VALUES (?, ?, ?, ?, ?, ?, ?)
        """)

        self._get_lesson = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.lessons WHERE id = ?
        """)

        self._update_lesson = self.session.prepare(f"""
            UPDATE {self.keyspace}.lessons
            SET title = ?, description = ?, video_url = ?, duration_seconds = ?
            WHERE id = ?
        """)

        self._delete_lesson = self.session.prepare(f"""
            DELETE FROM {self.keyspace}.lessons WHERE id = ?
        """)

    # ==========================================================================
    # Reads
    # ==========================================================================

    async def get_course(self, course_id: UUID) -> Course | None:
        result = await self.session.aexecute(self._get_course, [course_id])
        row = result.one()
        return Course.from_row(row) if row else None

    async def require_course(self, course_id: UUID) -> Course:
        course = await self.get_course(course_id)
        if course is None:
            raise CourseNotFoundError
        return course

    async def get_sections(self, course: Course) -> list[Section]:
        """Sections in the course's display order."""
        if not course.section_ids:
            return []
        rows = await self.session.aexecute(self._get_sections, [course.section_ids])
        by_id = {row.id: Section.from_row(row) for row in rows}
        return [by_id[sid] for sid in course.section_ids if sid in by_id]

    async def get_lessons(self, section: Section) -> list[Lesson]:
        if not section.lesson_ids:
            return []
        rows = await self.session.aexecute(self._get_lessons, [section.lesson_ids])
        by_id = {row.id: Lesson.from_row(row) for row in rows}
        return [by_id[lid] for lid in section.lesson_ids if lid in by_id]

    async def get_course_structure(
        self, course_id: UUID, include_lessons: bool = False
    ) -> CourseStructure:
        """Load a course with its sections and, optionally, lesson rows.

        Lesson ids are always available through the sections; lesson rows
        are only fetched for display.

        Raises:
            CourseNotFoundError: If the course does not exist
        """
        course = await self.require_course(course_id)
        sections = await self.get_sections(course)
        structure = CourseStructure(course=course, sections=sections)
        if include_lessons:
            for section in structure.sections:
                structure.lessons[section.id] = await self.get_lessons(section)
        return structure

    # ==========================================================================
    # Authoring
    # ==========================================================================

    async def create_course(
        self, data: CreateCourseRequest, instructor_id: UUID
    ) -> Course:
        course = Course(
            title=data.title,
            description=data.description,
            thumbnail_url=str(data.thumbnail_url) if data.thumbnail_url else None,
            instructor_id=instructor_id,
            price=data.price,
        )

        await self.session.aexecute(
            self._insert_course,
            [
                course.id,
                course.title,
                course.description,
                course.thumbnail_url,
                course.instructor_id,
                course.price,
                course.created_at,
                course.updated_at,
            ],
        )
        await self.users.add_course(instructor_id, course.id)

        logger.info(
            "course_created", course_id=str(course.id), instructor_id=str(instructor_id)
        )
        return course

    def ensure_can_manage(self, course: Course, user: "UserResponse") -> None:
        if not can_manage_course(user.role, user.id, course.instructor_id):
            raise NotCourseOwnerError

    async def add_section(
        self, course_id: UUID, data: CreateSectionRequest, user: "UserResponse"
    ) -> Section:
        course = await self.require_course(course_id)
        self.ensure_can_manage(course, user)

        section = Section(course_id=course.id, title=data.title)
        await self.session.aexecute(
            self._insert_section,
            [section.id, section.course_id, section.title, section.created_at],
        )
        await self.session.aexecute(
            self._append_section, [[section.id], section.created_at, course.id]
        )

        logger.info(
            "section_created", course_id=str(course.id), section_id=str(section.id)
        )
        return section

    async def add_lesson(
        self,
        course_id: UUID,
        section_id: UUID,
        data: CreateLessonRequest,
        user: "UserResponse",
    ) -> Lesson:
        course = await self.require_course(course_id)
        self.ensure_can_manage(course, user)

        await self._require_section(course, section_id)

        lesson = Lesson(
            section_id=section_id,
            title=data.title,
            description=data.description,
            video_url=str(data.video_url),
            duration_seconds=data.duration_seconds,
        )
        await self.session.aexecute(
            self._insert_lesson,
            [
                lesson.id,
                lesson.section_id,
                lesson.title,
                lesson.description,
                lesson.video_url,
                lesson.duration_seconds,
                lesson.created_at,
            ],
        )
        await self.session.aexecute(self._append_lesson, [[lesson.id], section_id])

        logger.info(
            "lesson_created",
            course_id=str(course.id),
            section_id=str(section_id),
            lesson_id=str(lesson.id),
        )
        return lesson

    async def _require_section(self, course: Course, section_id: UUID) -> Section:
        result = await self.session.aexecute(self._get_section, [section_id])
        row = result.one()
        if row is None or row.course_id != course.id:
            raise SectionNotFoundError
        return Section.from_row(row)

    async def _require_lesson(self, section: Section, lesson_id: UUID) -> Lesson:
        result = await self.session.aexecute(self._get_lesson, [lesson_id])
        row = result.one()
        if row is None or row.section_id != section.id:
            raise LessonNotFoundError
        return Lesson.from_row(row)

    async def update_section(
        self,
        course_id: UUID,
        section_id: UUID,
        data: UpdateSectionRequest,
        user: "UserResponse",
    ) -> Section:
        course = await self.require_course(course_id)
        self.ensure_can_manage(course, user)
        section = await self._require_section(course, section_id)

        section.title = data.title.strip()
        await self.session.aexecute(self._rename_section, [section.title, section.id])
        return section

    async def delete_section(
        self, course_id: UUID, section_id: UUID, user: "UserResponse"
    ) -> None:
        """Delete a section with its lessons and unlink it from the course.

        Completed ids of the deleted lessons stay in progress records; the
        percentage only counts lessons still reachable through the course.
        """
        course = await self.require_course(course_id)
        self.ensure_can_manage(course, user)
        section = await self._require_section(course, section_id)

        for lesson_id in section.lesson_ids:
            await self.session.aexecute(self._delete_lesson, [lesson_id])
        await self.session.aexecute(self._delete_section, [section.id])
        await self.session.aexecute(
            self._remove_section, [[section.id], utcnow(), course.id]
        )

        logger.info(
            "section_deleted",
            course_id=str(course.id),
            section_id=str(section.id),
            lessons=len(section.lesson_ids),
        )

    async def update_lesson(
        self,
        course_id: UUID,
        section_id: UUID,
        lesson_id: UUID,
        data: UpdateLessonRequest,
        user: "UserResponse",
    ) -> Lesson:
        course = await self.require_course(course_id)
        self.ensure_can_manage(course, user)
        section = await self._require_section(course, section_id)
        lesson = await self._require_lesson(section, lesson_id)

        if data.title is not None:
            lesson.title = data.title.strip()
        if data.description is not None:
            lesson.description = data.description
        if data.video_url is not None:
            lesson.video_url = str(data.video_url)
        if data.duration_seconds is not None:
            lesson.duration_seconds = data.duration_seconds

        await self.session.aexecute(
            self._update_lesson,
            [
                lesson.title,
                lesson.description,
                lesson.video_url,
                lesson.duration_seconds,
                lesson.id,
            ],
        )
        return lesson

    async def delete_lesson(
        self,
        course_id: UUID,
        section_id: UUID,
        lesson_id: UUID,
        user: "UserResponse",
    ) -> None:
        course = await self.require_course(course_id)
        self.ensure_can_manage(course, user)
        section = await self._require_section(course, section_id)
        lesson = await self._require_lesson(section, lesson_id)

        await self.session.aexecute(self._delete_lesson, [lesson.id])
        await self.session.aexecute(
            self._remove_lesson_from_section, [[lesson.id], section.id]
        )

        logger.info(
            "lesson_deleted",
            course_id=str(course.id),
            section_id=str(section.id),
            lesson_id=str(lesson.id),
        )

    # ==========================================================================
    # Enrollment / review bookkeeping (set and list appends)
    # ==========================================================================

    async def add_enrolled_student(self, course_id: UUID, user_id: UUID) -> None:
        await self.session.aexecute(self._add_student, [{user_id}, course_id])

    async def remove_enrolled_student(self, course_id: UUID, user_id: UUID) -> None:
        await self.session.aexecute(self._remove_student, [{user_id}, course_id])

    async def add_review_id(self, course_id: UUID, review_id: UUID) -> None:
        await self.session.aexecute(self._append_review, [[review_id], course_id])

    async def remove_review_id(self, course_id: UUID, review_id: UUID) -> None:
        await self.session.aexecute(self._remove_review, [[review_id], course_id])

    async def delete_content(self, structure: CourseStructure) -> None:
        """Delete lessons, sections and the course row (no cross-entity cascade)."""
        for section in structure.sections:
            for lesson_id in section.lesson_ids:
                await self.session.aexecute(self._delete_lesson, [lesson_id])
            await self.session.aexecute(self._delete_section, [section.id])
        await self.session.aexecute(self._delete_course, [structure.course.id])
