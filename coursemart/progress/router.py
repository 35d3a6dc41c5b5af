"""Progress API endpoints (student only)."""

from uuid import UUID

from fastapi import APIRouter, status

from coursemart.auth.dependencies import StudentUser

from .dependencies import ProgressTrackerDep
from .schemas import (
    CourseProgressResponse,
    MarkLessonCompleteRequest,
    ProgressPercentageResponse,
    ProgressRecordResponse,
)


router = APIRouter(prefix="/v1/progress", tags=["progress"])


@router.post(
    "/lessons/complete",
    response_model=ProgressRecordResponse,
    status_code=status.HTTP_200_OK,
    summary="Mark lesson as complete",
)
async def mark_lesson_complete(
    data: MarkLessonCompleteRequest,
    tracker: ProgressTrackerDep,
    user: StudentUser,
) -> ProgressRecordResponse:
    """Add a lesson to the student's completed set.

    Completing the same lesson twice is a 409.
    """
    record = await tracker.mark_lesson_complete(user.id, data.course_id, data.lesson_id)
    return ProgressRecordResponse(
        id=record.id,
        user_id=record.user_id,
        course_id=record.course_id,
        completed_lesson_ids=sorted(record.completed_lesson_ids, key=str),
        created_at=record.created_at,
        updated_at=record.updated_at,
    )


@router.get(
    "/courses/{course_id}",
    response_model=CourseProgressResponse,
    summary="Get course progress",
)
async def get_course_progress(
    course_id: UUID,
    tracker: ProgressTrackerDep,
    user: StudentUser,
) -> CourseProgressResponse:
    return await tracker.get_course_progress(user.id, course_id)


@router.get(
    "/courses/{course_id}/percentage",
    response_model=ProgressPercentageResponse,
    summary="Get course completion percentage",
)
async def get_progress_percentage(
    course_id: UUID,
    tracker: ProgressTrackerDep,
    user: StudentUser,
) -> ProgressPercentageResponse:
    percentage = await tracker.get_progress_percentage(user.id, course_id)
    return ProgressPercentageResponse(
        course_id=course_id, progress_percentage=float(percentage)
    )
