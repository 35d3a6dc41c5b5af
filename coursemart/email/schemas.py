"""Outgoing email models."""

from pydantic import BaseModel, EmailStr, Field


class EmailRecipient(BaseModel):
    email: EmailStr
    name: str | None = None


class SendEmailRequest(BaseModel):
    """One message, rendered as multipart/alternative."""

    to: list[EmailRecipient] = Field(..., min_length=1, max_length=50)
    subject: str = Field(..., min_length=1, max_length=998)
    body_html: str = Field(..., min_length=1)
    body_text: str | None = Field(None, description="Plain text alternative")


class SendEmailResponse(BaseModel):
    """Outcome of a send. Delivery failures are reported, never raised."""

    success: bool
    message_id: str | None = Field(None, description="Gmail message id")
    error: str | None = None
