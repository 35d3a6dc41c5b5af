"""Email module for sending transactional email via Gmail API."""

from .schemas import EmailRecipient, SendEmailRequest, SendEmailResponse
from .service import EmailService


__all__ = [
    "EmailRecipient",
    "EmailService",
    "SendEmailRequest",
    "SendEmailResponse",
]
