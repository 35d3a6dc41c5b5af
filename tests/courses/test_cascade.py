"""Tests for cascading course and account deletion."""

from decimal import Decimal
from uuid import uuid4

import pytest

from coursemart.auth.models import User
from coursemart.auth.permissions import UserRole
from coursemart.auth.schemas import UserResponse
from coursemart.auth.service import UserNotFoundError
from coursemart.courses.cascade import CascadeService
from coursemart.courses.models import Course
from coursemart.courses.service import NotCourseOwnerError


@pytest.fixture
def cascade(courses, users, progress, reviews) -> CascadeService:
    return CascadeService(
        courses=courses, users=users, progress=progress, reviews=reviews
    )


@pytest.fixture
async def enrolled_student(courses, users, progress, course, student):
    record, _ = await progress.create_record(student.id, course.id)
    courses.rows[course.id].enrolled_student_ids.add(student.id)
    users.rows[student.id].course_ids.add(course.id)
    users.rows[student.id].progress_record_ids.add(record.id)
    return student


def actor_for(user: User) -> UserResponse:
    return UserResponse(id=user.id, email=user.email, role=UserRole(user.role))


class TestDeleteCourse:
    @pytest.mark.asyncio
    async def test_removes_every_reference(
        self, cascade, courses, users, progress, reviews, course, instructor,
        enrolled_student,
    ) -> None:
        reviews.rows[(course.id, enrolled_student.id)] = uuid4()

        await cascade.delete_course(course.id, actor_for(instructor))

        assert course.id not in courses.rows
        assert course.id in courses.deleted
        assert course.id not in users.rows[enrolled_student.id].course_ids
        assert users.rows[enrolled_student.id].progress_record_ids == set()
        assert progress.rows == {}
        assert reviews.rows == {}
        assert course.id not in users.rows[instructor.id].course_ids

    @pytest.mark.asyncio
    async def test_only_owner_or_admin(
        self, cascade, courses, course, student
    ) -> None:
        with pytest.raises(NotCourseOwnerError):
            await cascade.delete_course(course.id, actor_for(student))
        assert course.id in courses.rows

    @pytest.mark.asyncio
    async def test_admin_may_delete(self, cascade, courses, users, course) -> None:
        admin = users.put(User(email="admin@test.com", role=UserRole.ADMIN.value))

        await cascade.delete_course(course.id, actor_for(admin))

        assert course.id not in courses.rows

    @pytest.mark.asyncio
    async def test_dangling_student_is_skipped(
        self, cascade, courses, course, instructor
    ) -> None:
        courses.rows[course.id].enrolled_student_ids.add(uuid4())

        await cascade.delete_course(course.id, actor_for(instructor))

        assert course.id not in courses.rows

    @pytest.mark.asyncio
    async def test_progress_of_missing_student_is_deleted(
        self, cascade, courses, users, progress, course, instructor,
        enrolled_student,
    ) -> None:
        del users.rows[enrolled_student.id]

        await cascade.delete_course(course.id, actor_for(instructor))

        assert course.id not in courses.rows
        assert (enrolled_student.id, course.id) not in progress.rows


class TestDeleteUser:
    @pytest.mark.asyncio
    async def test_student_account(
        self, cascade, courses, users, progress, reviews, course, enrolled_student
    ) -> None:
        reviews.rows[(course.id, enrolled_student.id)] = uuid4()

        await cascade.delete_user(enrolled_student.id)

        assert enrolled_student.id not in users.rows
        assert enrolled_student.id not in courses.rows[course.id].enrolled_student_ids
        assert progress.rows == {}
        assert reviews.rows == {}

    @pytest.mark.asyncio
    async def test_instructor_account_deletes_authored_courses(
        self, cascade, courses, users, progress, course, instructor,
        enrolled_student,
    ) -> None:
        await cascade.delete_user(instructor.id)

        assert instructor.id not in users.rows
        assert course.id not in courses.rows
        assert users.rows[enrolled_student.id].course_ids == set()
        assert progress.rows == {}

    @pytest.mark.asyncio
    async def test_dangling_course_reference_is_skipped(
        self, cascade, users, student
    ) -> None:
        users.rows[student.id].course_ids.add(uuid4())

        await cascade.delete_user(student.id)

        assert student.id not in users.rows

    @pytest.mark.asyncio
    async def test_progress_for_missing_course_is_deleted(
        self, cascade, users, progress, student
    ) -> None:
        missing_course_id = uuid4()
        users.rows[student.id].course_ids.add(missing_course_id)
        await progress.create_record(student.id, missing_course_id)

        await cascade.delete_user(student.id)

        assert (student.id, missing_course_id) not in progress.rows

    @pytest.mark.asyncio
    async def test_unknown_user(self, cascade) -> None:
        with pytest.raises(UserNotFoundError):
            await cascade.delete_user(uuid4())

    @pytest.mark.asyncio
    async def test_other_courses_untouched(
        self, cascade, courses, users, course, instructor, enrolled_student
    ) -> None:
        other = courses.put(
            Course(title="Other", instructor_id=instructor.id, price=Decimal(10)),
            lessons_per_section=[1],
        )

        await cascade.delete_user(enrolled_student.id)

        assert other.id in courses.rows
        assert course.id in courses.rows
