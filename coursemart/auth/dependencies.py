"""FastAPI dependencies for authentication.

Provides dependency injection for:
- Current user extraction from JWT
- Role-based access control
- The user service
"""

from typing import Annotated

from fastapi import Depends, HTTPException, Request, status
from jose import JWTError

from coursemart.auth.permissions import UserRole, has_permission
from coursemart.auth.schemas import UserResponse
from coursemart.auth.security import decode_access_token
from coursemart.auth.service import UserService
from coursemart.core.context import set_user_id


def get_token_from_header(request: Request) -> str | None:
    """Extract Bearer token from Authorization header."""
    auth_header = request.headers.get("Authorization")
    if not auth_header:
        return None

    expected_parts = 2
    parts = auth_header.split()
    if len(parts) != expected_parts or parts[0].lower() != "bearer":
        return None

    return parts[1]


async def get_current_user(
    token: Annotated[str | None, Depends(get_token_from_header)],
) -> UserResponse:
    """Authenticated user from the access token claims.

    Raises:
        HTTPException(401): If token is missing, invalid, or expired
    """
    if not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Access token not provided",
            headers={"WWW-Authenticate": "Bearer"},
        )

    try:
        payload = decode_access_token(token)
        user = UserResponse(
            id=payload["sub"],
            email=payload["email"],
            role=payload["role"],
        )
    except (JWTError, KeyError, ValueError) as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        ) from e

    set_user_id(user.id)
    return user


def require_role(*allowed_roles: UserRole):
    """Dependency requiring one of the given roles (exact match).

    Purchases and progress are student-only, matching the marketplace rule
    that instructors and admins do not buy courses.
    """

    async def role_checker(
        user: Annotated[UserResponse, Depends(get_current_user)],
    ) -> UserResponse:
        if user.role not in allowed_roles:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Insufficient permissions",
            )
        return user

    return role_checker


def require_permission(required_role: UserRole):
    """Dependency requiring at least a permission level (ADMIN >= INSTRUCTOR)."""

    async def permission_checker(
        user: Annotated[UserResponse, Depends(get_current_user)],
    ) -> UserResponse:
        if not has_permission(user.role, required_role):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Insufficient permissions",
            )
        return user

    return permission_checker


async def get_user_service(request: Request) -> UserService:
    """Get user service from app state."""
    service = getattr(request.app.state, "user_service", None)
    if service is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="User service not available",
        )
    return service


# ==============================================================================
# Type Aliases
# ==============================================================================

CurrentUser = Annotated[UserResponse, Depends(get_current_user)]
StudentUser = Annotated[UserResponse, Depends(require_role(UserRole.STUDENT))]
InstructorUser = Annotated[
    UserResponse, Depends(require_permission(UserRole.INSTRUCTOR))
]
UserServiceDep = Annotated[UserService, Depends(get_user_service)]
