"""FastAPI dependencies for course services."""

from typing import Annotated

from fastapi import Depends, HTTPException, Request, status

from .cascade import CascadeService
from .service import CourseService


async def get_course_service(request: Request) -> CourseService:
    """Get course service from app state."""
    service = getattr(request.app.state, "course_service", None)
    if service is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Course service not available",
        )
    return service


async def get_cascade_service(request: Request) -> CascadeService:
    service = getattr(request.app.state, "cascade_service", None)
    if service is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Course service not available",
        )
    return service


CourseServiceDep = Annotated[CourseService, Depends(get_course_service)]
CascadeServiceDep = Annotated[CascadeService, Depends(get_cascade_service)]
