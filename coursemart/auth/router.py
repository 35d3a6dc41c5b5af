"""Authentication and account API endpoints.

Provides routes for:
- Registration and login
- Password reset (request a link, confirm with the emailed token)
- Account deletion with cascade
"""

import structlog
from fastapi import APIRouter, status

from coursemart.auth.dependencies import CurrentUser, UserServiceDep
from coursemart.auth.permissions import UserRole
from coursemart.auth.schemas import (
    LoginRequest,
    MessageResponse,
    PasswordResetConfirm,
    PasswordResetRequest,
    RegisterRequest,
    TokenResponse,
    UserResponse,
)
from coursemart.auth.security import create_access_token
from coursemart.config import get_settings
from coursemart.courses.dependencies import CascadeServiceDep
from coursemart.email.dependencies import EmailServiceDep


logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/v1/auth", tags=["auth"])
users_router = APIRouter(prefix="/v1/users", tags=["users"])

RESET_REQUESTED_MESSAGE = (
    "If an account exists for this email, a password reset link has been sent"
)


# ==============================================================================
# Registration / Login
# ==============================================================================


@router.post(
    "/register",
    response_model=UserResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register a new account",
)
async def register(data: RegisterRequest, user_service: UserServiceDep) -> UserResponse:
    user = await user_service.register_user(
        email=data.email,
        name=data.name,
        password=data.password,
        role=data.role,
    )
    return UserResponse(
        id=user.id,
        email=user.email,
        name=user.name,
        role=UserRole(user.role),
        created_at=user.created_at,
    )


@router.post("/login", response_model=TokenResponse, summary="Login")
async def login(data: LoginRequest, user_service: UserServiceDep) -> TokenResponse:
    user = await user_service.authenticate(data.email, data.password)
    settings = get_settings()
    token = create_access_token(
        {"sub": str(user.id), "email": user.email, "role": user.role}
    )
    logger.info("user_logged_in", user_id=str(user.id))
    return TokenResponse(
        access_token=token,
        expires_in=settings.auth_access_token_expire_minutes * 60,
    )


# ==============================================================================
# Password Reset
# ==============================================================================


@router.post(
    "/password-reset",
    response_model=MessageResponse,
    summary="Request a password reset link",
)
async def request_password_reset(
    data: PasswordResetRequest,
    user_service: UserServiceDep,
    email_service: EmailServiceDep,
) -> MessageResponse:
    """Email a reset link.

    The response is the same whether or not the account exists.
    """
    issued = await user_service.request_password_reset(data.email)
    if issued is not None:
        user, token = issued
        settings = get_settings()
        if email_service is None:
            logger.warning("password_reset_email_skipped", user_id=str(user.id))
        else:
            result = await email_service.send_password_reset_link(
                to=user.email,
                user_name=user.name,
                reset_link=f"{settings.frontend_url}/update-password/{token}",
                expires_minutes=settings.password_reset_token_expire_minutes,
            )
            if not result.success:
                logger.warning(
                    "password_reset_email_failed",
                    user_id=str(user.id),
                    error=result.error,
                )
    return MessageResponse(message=RESET_REQUESTED_MESSAGE)


@router.post(
    "/password-reset/confirm",
    response_model=MessageResponse,
    summary="Set a new password with a reset token",
)
async def confirm_password_reset(
    data: PasswordResetConfirm,
    user_service: UserServiceDep,
    email_service: EmailServiceDep,
) -> MessageResponse:
    user = await user_service.confirm_password_reset(data.token, data.password)
    if email_service is not None:
        await email_service.send_password_changed_notification(
            to=user.email, user_name=user.name
        )
    return MessageResponse(message="Password updated successfully")


# ==============================================================================
# Account
# ==============================================================================


@users_router.delete(
    "/me",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete own account",
)
async def delete_me(user: CurrentUser, cascade: CascadeServiceDep) -> None:
    """Delete the account with its enrollments, progress, reviews and courses."""
    await cascade.delete_user(user.id)
