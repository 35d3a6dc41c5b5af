"""Pydantic schemas for ratings and reviews."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator


class CreateReviewRequest(BaseModel):
    rating: int = Field(..., ge=1, le=5, description="Star rating, 1 to 5")
    review: str = Field(..., min_length=1, max_length=2000)

    @field_validator("review")
    @classmethod
    def strip_review(cls, v: str) -> str:
        v = v.strip()
        if not v:
            msg = "Review must not be blank"
            raise ValueError(msg)
        return v


class ReviewResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    course_id: UUID
    user_id: UUID
    rating: int
    review: str
    created_at: datetime | None = None


class ReviewListResponse(BaseModel):
    items: list[ReviewResponse]
    total: int


class AverageRatingResponse(BaseModel):
    course_id: UUID
    average_rating: float = Field(..., ge=0, le=5)
    review_count: int = 0
