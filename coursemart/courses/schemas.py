"""Pydantic schemas for course authoring and course detail."""

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, HttpUrl


# ==============================================================================
# Request Schemas
# ==============================================================================


class CreateCourseRequest(BaseModel):
    title: str = Field(..., min_length=3, max_length=200, description="Course title")
    description: str = Field(default="", max_length=5000)
    price: Decimal = Field(
        ..., ge=0, max_digits=10, decimal_places=2, description="Price in major units"
    )
    thumbnail_url: HttpUrl | None = Field(None, description="Cover image URL")


class CreateSectionRequest(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)


class CreateLessonRequest(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    description: str = Field(default="", max_length=5000)
    video_url: HttpUrl = Field(..., description="Hosted video URL")
    duration_seconds: int = Field(default=0, ge=0, le=86400)


class UpdateSectionRequest(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)


class UpdateLessonRequest(BaseModel):
    """Partial update; omitted fields keep their stored value."""

    title: str | None = Field(None, min_length=1, max_length=200)
    description: str | None = Field(None, max_length=5000)
    video_url: HttpUrl | None = None
    duration_seconds: int | None = Field(None, ge=0, le=86400)


# ==============================================================================
# Response Schemas
# ==============================================================================


class LessonResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    section_id: UUID
    title: str
    description: str = ""
    video_url: str | None = None
    duration_seconds: int = 0


class SectionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    course_id: UUID
    title: str
    lesson_ids: list[UUID] = Field(default_factory=list)
    lessons: list[LessonResponse] = Field(default_factory=list)


class CourseResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    title: str
    description: str = ""
    thumbnail_url: str | None = None
    instructor_id: UUID | None = None
    price: Decimal
    section_ids: list[UUID] = Field(default_factory=list)
    enrolled_count: int = 0
    created_at: datetime | None = None


class CourseDetailResponse(CourseResponse):
    sections: list[SectionResponse] = Field(default_factory=list)
    total_lessons: int = 0
    total_duration_seconds: int = 0
    total_duration: str = Field(default="0s", description='e.g. "1h 30m"')
