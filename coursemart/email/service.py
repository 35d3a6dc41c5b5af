"""Email service using Gmail API with a Service Account.

Uses domain-wide delegation to send on behalf of a Google Workspace user.
The service account needs the ``https://www.googleapis.com/auth/gmail.send``
scope granted in the Google Admin Console.

Sending never raises: failures are logged and reported through
``SendEmailResponse.success`` so callers can treat email as best-effort.
"""

import asyncio
import base64
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from pathlib import Path
from typing import TYPE_CHECKING

from google.oauth2 import service_account
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError

from coursemart.core.logging import get_logger

from .schemas import EmailRecipient, SendEmailRequest, SendEmailResponse
from .templates import (
    render_enrollment_confirmation,
    render_password_changed,
    render_password_reset_link,
)


if TYPE_CHECKING:
    from googleapiclient._apis.gmail.v1 import GmailResource


logger = get_logger(__name__)

GMAIL_SCOPES = ["https://www.googleapis.com/auth/gmail.send"]


class EmailService:
    """Send transactional email through the Gmail API."""

    def __init__(
        self,
        credentials_path: str,
        sender_address: str,
        sender_name: str = "CourseMart",
    ):
        self.credentials_path = credentials_path
        self.sender_address = sender_address
        self.sender_name = sender_name
        self._service: GmailResource | None = None

        if not Path(credentials_path).exists():
            logger.warning(
                "email_credentials_not_found",
                path=credentials_path,
                message="Gmail API will not be available",
            )

    def _get_service(self) -> "GmailResource":
        """Get or lazily build the Gmail API resource.

        Raises:
            FileNotFoundError: If credentials file doesn't exist
        """
        if self._service is not None:
            return self._service

        credentials_file = Path(self.credentials_path)
        if not credentials_file.exists():
            msg = f"Credentials file not found: {self.credentials_path}"
            raise FileNotFoundError(msg)

        credentials = service_account.Credentials.from_service_account_file(
            str(credentials_file),
            scopes=GMAIL_SCOPES,
        )
        self._service = build(
            "gmail",
            "v1",
            credentials=credentials.with_subject(self.sender_address),
            cache_discovery=False,
        )
        logger.info("gmail_service_initialized", sender=self.sender_address)
        return self._service

    @staticmethod
    def _format_address(recipient: EmailRecipient) -> str:
        if recipient.name:
            return f"{recipient.name} <{recipient.email}>"
        return recipient.email

    def _create_message(self, request: SendEmailRequest) -> dict:
        """Build a multipart/alternative message as Gmail's ``{"raw": ...}``."""
        message = MIMEMultipart("alternative")
        message["From"] = f"{self.sender_name} <{self.sender_address}>"
        message["To"] = ", ".join(self._format_address(r) for r in request.to)
        message["Subject"] = request.subject

        # Plain text first, clients prefer the last part
        if request.body_text:
            message.attach(MIMEText(request.body_text, "plain", "utf-8"))
        message.attach(MIMEText(request.body_html, "html", "utf-8"))

        return {"raw": base64.urlsafe_b64encode(message.as_bytes()).decode("utf-8")}

    async def send_email(self, request: SendEmailRequest) -> SendEmailResponse:
        recipients = [r.email for r in request.to]
        try:
            service = self._get_service()
            message = self._create_message(request)
            # googleapiclient is blocking
            result = await asyncio.to_thread(
                service.users().messages().send(userId="me", body=message).execute
            )

            logger.info(
                "email_sent",
                message_id=result.get("id"),
                to=recipients,
                subject=request.subject[:50],
            )
            return SendEmailResponse(
                success=True,
                message_id=result.get("id"),
            )

        except HttpError as e:
            logger.exception("email_send_failed", error=str(e), to=recipients)
            return SendEmailResponse(success=False, error=f"Gmail API error: {e!s}")

        except FileNotFoundError as e:
            logger.error("email_credentials_missing", error=str(e))
            return SendEmailResponse(
                success=False,
                error="Email service not configured: credentials file missing",
            )

        except Exception as e:
            logger.exception("email_send_unexpected_error", error=str(e))
            return SendEmailResponse(success=False, error=f"Unexpected error: {e!s}")

    async def send_simple_email(
        self,
        to: str,
        subject: str,
        body_html: str,
        body_text: str | None = None,
        to_name: str | None = None,
    ) -> SendEmailResponse:
        request = SendEmailRequest(
            to=[EmailRecipient(email=to, name=to_name or None)],
            subject=subject,
            body_html=body_html,
            body_text=body_text,
        )
        return await self.send_email(request)

    async def send_enrollment_confirmation(
        self,
        to: str,
        user_name: str,
        course_title: str,
        course_link: str,
    ) -> SendEmailResponse:
        body_html, body_text = render_enrollment_confirmation(
            user_name, course_title, course_link
        )
        return await self.send_simple_email(
            to=to,
            subject=f"You're enrolled in {course_title}",
            body_html=body_html,
            body_text=body_text,
            to_name=user_name,
        )

    async def send_password_reset_link(
        self,
        to: str,
        user_name: str,
        reset_link: str,
        expires_minutes: int,
    ) -> SendEmailResponse:
        body_html, body_text = render_password_reset_link(
            user_name, reset_link, expires_minutes
        )
        return await self.send_simple_email(
            to=to,
            subject="Reset your CourseMart password",
            body_html=body_html,
            body_text=body_text,
            to_name=user_name,
        )

    async def send_password_changed_notification(
        self, to: str, user_name: str
    ) -> SendEmailResponse:
        body_html, body_text = render_password_changed(user_name, to)
        return await self.send_simple_email(
            to=to,
            subject="Your CourseMart password was changed",
            body_html=body_html,
            body_text=body_text,
            to_name=user_name,
        )
