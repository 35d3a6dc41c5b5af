"""Rating and review endpoints, mounted under a course."""

from uuid import UUID

from fastapi import APIRouter, status

from coursemart.auth.dependencies import StudentUser

from .dependencies import ReviewServiceDep
from .schemas import (
    AverageRatingResponse,
    CreateReviewRequest,
    ReviewListResponse,
    ReviewResponse,
)


router = APIRouter(prefix="/v1/courses/{course_id}", tags=["reviews"])


@router.post(
    "/reviews",
    response_model=ReviewResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Review a course",
)
async def create_review(
    course_id: UUID,
    data: CreateReviewRequest,
    review_service: ReviewServiceDep,
    user: StudentUser,
) -> ReviewResponse:
    """One review per enrolled student per course."""
    entry = await review_service.create_review(
        user.id, course_id, data.rating, data.review
    )
    return ReviewResponse.model_validate(entry)


@router.get("/reviews", response_model=ReviewListResponse, summary="List reviews")
async def list_reviews(
    course_id: UUID, review_service: ReviewServiceDep
) -> ReviewListResponse:
    entries = await review_service.list_reviews(course_id)
    return ReviewListResponse(
        items=[ReviewResponse.model_validate(e) for e in entries],
        total=len(entries),
    )


@router.get(
    "/rating", response_model=AverageRatingResponse, summary="Average rating"
)
async def get_average_rating(
    course_id: UUID, review_service: ReviewServiceDep
) -> AverageRatingResponse:
    average, count = await review_service.get_average_rating(course_id)
    return AverageRatingResponse(
        course_id=course_id, average_rating=float(average), review_count=count
    )
