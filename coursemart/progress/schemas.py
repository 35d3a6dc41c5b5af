"""Pydantic schemas for progress tracking."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class MarkLessonCompleteRequest(BaseModel):
    course_id: UUID = Field(..., description="Course the lesson belongs to")
    lesson_id: UUID = Field(..., description="Lesson being completed")


class ProgressRecordResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    user_id: UUID
    course_id: UUID
    completed_lesson_ids: list[UUID] = Field(default_factory=list)
    created_at: datetime | None = None
    updated_at: datetime | None = None


class ProgressPercentageResponse(BaseModel):
    course_id: UUID
    progress_percentage: float = Field(..., ge=0, le=100)


class CourseProgressResponse(BaseModel):
    """Progress record plus the derived percentage."""

    course_id: UUID
    progress_record_id: UUID
    completed_lesson_ids: list[UUID] = Field(default_factory=list)
    completed_lessons: int = 0
    total_lessons: int = 0
    progress_percentage: float = Field(default=0, ge=0, le=100)
