"""Shared fixtures.

Database-backed services are tested against ``Mock(spec=Session)`` with an
``AsyncMock`` ``aexecute``. Cross-service flows (fulfillment, cascades,
HTTP) use the in-memory services below, which keep the same method names
and set semantics as the Cassandra-backed ones.
"""

import os
import tempfile
from decimal import Decimal
from typing import Any
from unittest.mock import AsyncMock, Mock
from uuid import UUID, uuid4

import pytest


os.environ.setdefault("ENVIRONMENT", "testing")
os.environ.setdefault("LOG_DIR", tempfile.mkdtemp(prefix="coursemart-logs-"))
os.environ.setdefault("LOG_LEVEL", "WARNING")
os.environ.setdefault("PAYMENT_WEBHOOK_SECRET", "test-webhook-secret")

from cassandra.cluster import Session  # noqa: E402

from coursemart.auth.models import User  # noqa: E402
from coursemart.auth.permissions import UserRole  # noqa: E402
from coursemart.auth.service import UserNotFoundError  # noqa: E402
from coursemart.courses.models import Course, CourseStructure, Section  # noqa: E402
from coursemart.courses.service import CourseNotFoundError  # noqa: E402
from coursemart.progress.models import ProgressRecord  # noqa: E402
from coursemart.progress.service import ProgressTracker  # noqa: E402
from helpers import result  # noqa: E402


# ==============================================================================
# Cassandra mocks
# ==============================================================================


@pytest.fixture
def mock_session():
    """Mock Cassandra session; prepared statements remember their CQL."""
    session = Mock(spec=Session)
    session.prepare = Mock(
        side_effect=lambda cql: Mock(query_string=" ".join(cql.split()))
    )
    # Make aexecute awaitable (cassandra-asyncio-driver)
    session.aexecute = AsyncMock(return_value=result())
    return session


# ==============================================================================
# In-memory services
# ==============================================================================


class InMemoryUsers:
    """Users with set-valued enrollment columns."""

    def __init__(self):
        self.rows: dict[UUID, User] = {}
        self.fail_on: set[str] = set()

    def _maybe_fail(self, op: str) -> None:
        if op in self.fail_on:
            msg = f"simulated failure in {op}"
            raise ConnectionError(msg)

    def put(self, user: User) -> User:
        self.rows[user.id] = user
        return user

    async def get_user(self, user_id: UUID) -> User | None:
        stored = self.rows.get(user_id)
        if stored is None:
            return None
        return User(
            id=stored.id,
            email=stored.email,
            name=stored.name,
            role=stored.role,
            course_ids=set(stored.course_ids),
            progress_record_ids=set(stored.progress_record_ids),
        )

    async def require_user(self, user_id: UUID) -> User:
        user = await self.get_user(user_id)
        if user is None:
            raise UserNotFoundError
        return user

    async def add_course(self, user_id: UUID, course_id: UUID) -> None:
        self._maybe_fail("add_course")
        self.rows[user_id].course_ids.add(course_id)

    async def remove_course(self, user_id: UUID, course_id: UUID) -> None:
        self.rows[user_id].course_ids.discard(course_id)

    async def add_progress_record(self, user_id: UUID, record_id: UUID) -> None:
        self._maybe_fail("add_progress_record")
        self.rows[user_id].progress_record_ids.add(record_id)

    async def remove_progress_record(self, user_id: UUID, record_id: UUID) -> None:
        self.rows[user_id].progress_record_ids.discard(record_id)

    async def delete_user_record(self, user: User) -> None:
        self.rows.pop(user.id, None)


class InMemoryCourses:
    """Courses, sections and lesson ids."""

    def __init__(self):
        self.rows: dict[UUID, Course] = {}
        self.sections: dict[UUID, list[Section]] = {}
        self.fail_on: set[str] = set()
        self.deleted: list[UUID] = []

    def put(self, course: Course, lessons_per_section: list[int] = ()) -> Course:
        self.rows[course.id] = course
        sections = [
            Section(course_id=course.id, lesson_ids=[uuid4() for _ in range(n)])
            for n in lessons_per_section
        ]
        course.section_ids = [s.id for s in sections]
        self.sections[course.id] = sections
        return course

    def lesson_ids(self, course_id: UUID) -> list[UUID]:
        return [lid for s in self.sections[course_id] for lid in s.lesson_ids]

    async def get_course(self, course_id: UUID) -> Course | None:
        stored = self.rows.get(course_id)
        if stored is None:
            return None
        return Course(
            id=stored.id,
            title=stored.title,
            description=stored.description,
            instructor_id=stored.instructor_id,
            price=stored.price,
            section_ids=list(stored.section_ids),
            enrolled_student_ids=set(stored.enrolled_student_ids),
            review_ids=list(stored.review_ids),
        )

    async def require_course(self, course_id: UUID) -> Course:
        course = await self.get_course(course_id)
        if course is None:
            raise CourseNotFoundError
        return course

    async def get_course_structure(
        self, course_id: UUID, include_lessons: bool = False
    ) -> CourseStructure:
        course = await self.require_course(course_id)
        return CourseStructure(course=course, sections=self.sections[course_id])

    def ensure_can_manage(self, course: Course, user: Any) -> None:
        from coursemart.auth.permissions import can_manage_course
        from coursemart.courses.service import NotCourseOwnerError

        if not can_manage_course(user.role, user.id, course.instructor_id):
            raise NotCourseOwnerError

    async def add_enrolled_student(self, course_id: UUID, user_id: UUID) -> None:
        self._maybe_fail("add_enrolled_student")
        self.rows[course_id].enrolled_student_ids.add(user_id)

    async def remove_enrolled_student(self, course_id: UUID, user_id: UUID) -> None:
        self.rows[course_id].enrolled_student_ids.discard(user_id)

    async def add_review_id(self, course_id: UUID, review_id: UUID) -> None:
        self.rows[course_id].review_ids.append(review_id)

    async def remove_review_id(self, course_id: UUID, review_id: UUID) -> None:
        ids = self.rows[course_id].review_ids
        self.rows[course_id].review_ids = [r for r in ids if r != review_id]

    async def delete_content(self, structure: CourseStructure) -> None:
        self.rows.pop(structure.course.id, None)
        self.sections.pop(structure.course.id, None)
        self.deleted.append(structure.course.id)

    def _maybe_fail(self, op: str) -> None:
        if op in self.fail_on:
            msg = f"simulated failure in {op}"
            raise ConnectionError(msg)


class InMemoryProgress(ProgressTracker):
    """Progress records keyed by (user_id, course_id).

    Completion and percentage logic is inherited; records are held by
    reference, so the tracker's in-place update is the stored state.
    """

    def __init__(self, courses: InMemoryCourses):
        self.courses = courses
        self.session = Mock(aexecute=AsyncMock())
        self._add_completed = Mock(query_string="add_completed")
        self.rows: dict[tuple[UUID, UUID], ProgressRecord] = {}

    async def get_record(self, user_id: UUID, course_id: UUID) -> ProgressRecord | None:
        return self.rows.get((user_id, course_id))

    async def create_record(
        self, user_id: UUID, course_id: UUID
    ) -> tuple[ProgressRecord, bool]:
        existing = self.rows.get((user_id, course_id))
        if existing is not None:
            return existing, False
        record = ProgressRecord(user_id=user_id, course_id=course_id)
        self.rows[(user_id, course_id)] = record
        return record, True

    async def delete_record(self, user_id: UUID, course_id: UUID) -> None:
        self.rows.pop((user_id, course_id), None)


class InMemoryReviews:
    def __init__(self, courses: InMemoryCourses):
        self.courses = courses
        self.rows: dict[tuple[UUID, UUID], UUID] = {}

    async def delete_course_reviews(self, course_id: UUID) -> None:
        for key in [k for k in self.rows if k[0] == course_id]:
            del self.rows[key]

    async def delete_user_review(self, course_id: UUID, user_id: UUID) -> None:
        review_id = self.rows.pop((course_id, user_id), None)
        if review_id is not None:
            await self.courses.remove_review_id(course_id, review_id)


@pytest.fixture
def users() -> InMemoryUsers:
    return InMemoryUsers()


@pytest.fixture
def courses() -> InMemoryCourses:
    return InMemoryCourses()


@pytest.fixture
def progress(courses: InMemoryCourses) -> InMemoryProgress:
    return InMemoryProgress(courses)


@pytest.fixture
def reviews(courses: InMemoryCourses) -> InMemoryReviews:
    return InMemoryReviews(courses)


@pytest.fixture
def student(users: InMemoryUsers) -> User:
    return users.put(
        User(email="student@test.com", name="Test Student", role=UserRole.STUDENT.value)
    )


@pytest.fixture
def instructor(users: InMemoryUsers) -> User:
    return users.put(
        User(
            email="instructor@test.com",
            name="Test Instructor",
            role=UserRole.INSTRUCTOR.value,
        )
    )


@pytest.fixture
def course(courses: InMemoryCourses, users: InMemoryUsers, instructor: User) -> Course:
    """A 500.00 course with three lessons over two sections."""
    created = courses.put(
        Course(title="Python Basics", instructor_id=instructor.id, price=Decimal(500)),
        lessons_per_section=[2, 1],
    )
    users.rows[instructor.id].course_ids.add(created.id)
    return created


@pytest.fixture
def mock_email_service():
    service = Mock()
    service.send_enrollment_confirmation = AsyncMock(
        return_value=Mock(success=True, error=None)
    )
    return service

