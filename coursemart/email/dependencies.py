"""FastAPI dependencies for email delivery."""

from typing import Annotated

from fastapi import Depends, Request

from .service import EmailService


async def get_email_service(request: Request) -> EmailService | None:
    """Email service from app state, or None when email is disabled."""
    return getattr(request.app.state, "email_service", None)


EmailServiceDep = Annotated[EmailService | None, Depends(get_email_service)]
