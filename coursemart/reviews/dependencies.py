"""FastAPI dependencies for ratings and reviews."""

from typing import Annotated

from fastapi import Depends, HTTPException, Request, status

from .service import ReviewService


async def get_review_service(request: Request) -> ReviewService:
    service = getattr(request.app.state, "review_service", None)
    if service is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Review service not available",
        )
    return service


ReviewServiceDep = Annotated[ReviewService, Depends(get_review_service)]
