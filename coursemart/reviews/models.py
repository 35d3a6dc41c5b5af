"""Database models for course ratings and reviews.

Reviews are partitioned by course so the average rating is a single
partition aggregate. The (course_id, user_id) primary key plus
``IF NOT EXISTS`` allows one review per student per course.
"""

from datetime import datetime
from typing import Any
from uuid import UUID, uuid4

from coursemart.core.timeutils import ensure_utc_aware, utcnow


COURSE_REVIEWS_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.course_reviews (
    course_id UUID,
    user_id UUID,
    id UUID,
    rating INT,
    review TEXT,
    created_at TIMESTAMP,
    PRIMARY KEY ((course_id), user_id)
)
"""

REVIEWS_TABLES_CQL = [
    COURSE_REVIEWS_TABLE_CQL,
]


class RatingAndReview:
    def __init__(
        self,
        course_id: UUID,
        user_id: UUID,
        rating: int,
        review: str,
        id: UUID | None = None,
        created_at: datetime | None = None,
    ):
        self.id = id or uuid4()
        self.course_id = course_id
        self.user_id = user_id
        self.rating = rating
        self.review = review
        self.created_at = ensure_utc_aware(created_at) or utcnow()

    @classmethod
    def from_row(cls, row: Any) -> "RatingAndReview":
        return cls(
            id=row.id,
            course_id=row.course_id,
            user_id=row.user_id,
            rating=row.rating,
            review=row.review or "",
            created_at=row.created_at,
        )

    def __repr__(self) -> str:
        return f"<RatingAndReview course={self.course_id} rating={self.rating}>"
