"""Tests for idempotent enrollment fulfillment."""

import asyncio
from uuid import uuid4

import pytest

from coursemart.enrollments.service import EnrollmentFulfiller, FulfillmentError


@pytest.fixture
def fulfiller(courses, users, progress, mock_email_service) -> EnrollmentFulfiller:
    return EnrollmentFulfiller(
        courses=courses,
        users=users,
        progress=progress,
        email_service=mock_email_service,
        frontend_url="https://app.test/",
    )


def assert_enrolled_once(courses, users, progress, course, student) -> None:
    stored_course = courses.rows[course.id]
    stored_user = users.rows[student.id]
    records = [r for key, r in progress.rows.items() if key == (student.id, course.id)]

    assert student.id in stored_course.enrolled_student_ids
    assert course.id in stored_user.course_ids
    assert len(records) == 1
    assert stored_user.progress_record_ids == {records[0].id}


class TestFulfill:
    @pytest.mark.asyncio
    async def test_first_delivery_enrolls(
        self, fulfiller, courses, users, progress, course, student, mock_email_service
    ) -> None:
        result = await fulfiller.fulfill(course.id, student.id)

        assert result.already_enrolled is False
        assert result.email_sent is True
        assert_enrolled_once(courses, users, progress, course, student)

        kwargs = mock_email_service.send_enrollment_confirmation.call_args.kwargs
        assert kwargs["to"] == student.email
        assert kwargs["course_title"] == "Python Basics"
        assert kwargs["course_link"] == f"https://app.test/courses/{course.id}"

    @pytest.mark.asyncio
    async def test_duplicate_deliveries_converge(
        self, fulfiller, courses, users, progress, course, student, mock_email_service
    ) -> None:
        first = await fulfiller.fulfill(course.id, student.id)
        for _ in range(4):
            again = await fulfiller.fulfill(course.id, student.id)
            assert again.already_enrolled is True
            assert again.progress_record_id == first.progress_record_id

        assert_enrolled_once(courses, users, progress, course, student)
        mock_email_service.send_enrollment_confirmation.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_concurrent_deliveries_create_one_record(
        self, fulfiller, courses, users, progress, course, student
    ) -> None:
        results = await asyncio.gather(
            *(fulfiller.fulfill(course.id, student.id) for _ in range(5))
        )

        assert len({r.progress_record_id for r in results}) == 1
        assert_enrolled_once(courses, users, progress, course, student)

    @pytest.mark.asyncio
    async def test_retry_after_partial_failure_completes(
        self, fulfiller, courses, users, progress, course, student
    ) -> None:
        users.fail_on.add("add_progress_record")

        with pytest.raises(FulfillmentError):
            await fulfiller.fulfill(course.id, student.id)

        # Steps before the failure are kept, nothing is rolled back
        assert student.id in courses.rows[course.id].enrolled_student_ids
        assert (student.id, course.id) in progress.rows
        assert users.rows[student.id].progress_record_ids == set()

        users.fail_on.clear()
        result = await fulfiller.fulfill(course.id, student.id)

        assert result.already_enrolled is True
        assert_enrolled_once(courses, users, progress, course, student)

    @pytest.mark.asyncio
    async def test_failure_in_first_step(
        self, fulfiller, courses, progress, course, student
    ) -> None:
        courses.fail_on.add("add_enrolled_student")

        with pytest.raises(FulfillmentError) as exc_info:
            await fulfiller.fulfill(course.id, student.id)

        assert exc_info.value.status_code == 500
        assert exc_info.value.code == "fulfillment_failed"
        assert progress.rows == {}

    @pytest.mark.asyncio
    async def test_unknown_course(self, fulfiller, progress, student) -> None:
        with pytest.raises(FulfillmentError):
            await fulfiller.fulfill(uuid4(), student.id)
        assert progress.rows == {}

    @pytest.mark.asyncio
    async def test_unknown_user(self, fulfiller, courses, course) -> None:
        with pytest.raises(FulfillmentError):
            await fulfiller.fulfill(course.id, uuid4())
        assert courses.rows[course.id].enrolled_student_ids == set()

    @pytest.mark.asyncio
    async def test_email_failure_does_not_fail_enrollment(
        self, fulfiller, courses, users, progress, course, student, mock_email_service
    ) -> None:
        mock_email_service.send_enrollment_confirmation.side_effect = RuntimeError(
            "smtp down"
        )

        result = await fulfiller.fulfill(course.id, student.id)

        assert result.email_sent is False
        assert_enrolled_once(courses, users, progress, course, student)

    @pytest.mark.asyncio
    async def test_without_email_service(
        self, courses, users, progress, course, student
    ) -> None:
        fulfiller = EnrollmentFulfiller(courses=courses, users=users, progress=progress)

        result = await fulfiller.fulfill(course.id, student.id)

        assert result.email_sent is False
        assert result.already_enrolled is False
