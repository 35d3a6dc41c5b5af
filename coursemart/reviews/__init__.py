"""Course ratings and reviews."""

from .models import REVIEWS_TABLES_CQL, RatingAndReview
from .service import ReviewService


__all__ = ["REVIEWS_TABLES_CQL", "RatingAndReview", "ReviewService"]
