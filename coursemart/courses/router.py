"""Course authoring and catalog endpoints."""

from uuid import UUID

from fastapi import APIRouter, status

from coursemart.auth.dependencies import CurrentUser, InstructorUser

from .dependencies import CascadeServiceDep, CourseServiceDep
from .models import Course, CourseStructure, format_duration
from .schemas import (
    CourseDetailResponse,
    CourseResponse,
    CreateCourseRequest,
    CreateLessonRequest,
    CreateSectionRequest,
    LessonResponse,
    SectionResponse,
    UpdateLessonRequest,
    UpdateSectionRequest,
)


router = APIRouter(prefix="/v1/courses", tags=["courses"])


def _course_response(course: Course) -> CourseResponse:
    return CourseResponse(
        id=course.id,
        title=course.title,
        description=course.description,
        thumbnail_url=course.thumbnail_url,
        instructor_id=course.instructor_id,
        price=course.price,
        section_ids=course.section_ids,
        enrolled_count=len(course.enrolled_student_ids),
        created_at=course.created_at,
    )


def _detail_response(structure: CourseStructure) -> CourseDetailResponse:
    summary = _course_response(structure.course)
    sections = [
        SectionResponse(
            id=section.id,
            course_id=section.course_id,
            title=section.title,
            lesson_ids=section.lesson_ids,
            lessons=[
                LessonResponse.model_validate(lesson)
                for lesson in structure.lessons.get(section.id, [])
            ],
        )
        for section in structure.sections
    ]
    return CourseDetailResponse(
        **summary.model_dump(),
        sections=sections,
        total_lessons=structure.total_lessons,
        total_duration_seconds=structure.total_duration_seconds,
        total_duration=format_duration(structure.total_duration_seconds),
    )


# ==============================================================================
# Courses
# ==============================================================================


@router.post(
    "",
    response_model=CourseResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create course",
)
async def create_course(
    data: CreateCourseRequest,
    course_service: CourseServiceDep,
    user: InstructorUser,
) -> CourseResponse:
    course = await course_service.create_course(data, instructor_id=user.id)
    return _course_response(course)


@router.get(
    "/{course_id}",
    response_model=CourseDetailResponse,
    summary="Get course with sections and lessons",
)
async def get_course(
    course_id: UUID, course_service: CourseServiceDep
) -> CourseDetailResponse:
    structure = await course_service.get_course_structure(
        course_id, include_lessons=True
    )
    return _detail_response(structure)


@router.delete(
    "/{course_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete course",
)
async def delete_course(
    course_id: UUID,
    cascade: CascadeServiceDep,
    user: CurrentUser,
) -> None:
    """Delete a course and everything that references it.

    Only the course instructor or an admin may delete.
    """
    await cascade.delete_course(course_id, user)


# ==============================================================================
# Sections and Lessons
# ==============================================================================


@router.post(
    "/{course_id}/sections",
    response_model=SectionResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Add section",
)
async def add_section(
    course_id: UUID,
    data: CreateSectionRequest,
    course_service: CourseServiceDep,
    user: InstructorUser,
) -> SectionResponse:
    section = await course_service.add_section(course_id, data, user)
    return SectionResponse.model_validate(section)


@router.post(
    "/{course_id}/sections/{section_id}/lessons",
    response_model=LessonResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Add lesson",
)
async def add_lesson(
    course_id: UUID,
    section_id: UUID,
    data: CreateLessonRequest,
    course_service: CourseServiceDep,
    user: InstructorUser,
) -> LessonResponse:
    lesson = await course_service.add_lesson(course_id, section_id, data, user)
    return LessonResponse.model_validate(lesson)


@router.patch(
    "/{course_id}/sections/{section_id}",
    response_model=SectionResponse,
    summary="Rename section",
)
async def update_section(
    course_id: UUID,
    section_id: UUID,
    data: UpdateSectionRequest,
    course_service: CourseServiceDep,
    user: InstructorUser,
) -> SectionResponse:
    section = await course_service.update_section(course_id, section_id, data, user)
    return SectionResponse.model_validate(section)


@router.delete(
    "/{course_id}/sections/{section_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete section and its lessons",
)
async def delete_section(
    course_id: UUID,
    section_id: UUID,
    course_service: CourseServiceDep,
    user: InstructorUser,
) -> None:
    await course_service.delete_section(course_id, section_id, user)


@router.patch(
    "/{course_id}/sections/{section_id}/lessons/{lesson_id}",
    response_model=LessonResponse,
    summary="Update lesson",
)
async def update_lesson(
    course_id: UUID,
    section_id: UUID,
    lesson_id: UUID,
    data: UpdateLessonRequest,
    course_service: CourseServiceDep,
    user: InstructorUser,
) -> LessonResponse:
    lesson = await course_service.update_lesson(
        course_id, section_id, lesson_id, data, user
    )
    return LessonResponse.model_validate(lesson)


@router.delete(
    "/{course_id}/sections/{section_id}/lessons/{lesson_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete lesson",
)
async def delete_lesson(
    course_id: UUID,
    section_id: UUID,
    lesson_id: UUID,
    course_service: CourseServiceDep,
    user: InstructorUser,
) -> None:
    """Remove a lesson from its section.

    Progress records keep the completed id; percentages stop counting it.
    """
    await course_service.delete_lesson(course_id, section_id, lesson_id, user)
