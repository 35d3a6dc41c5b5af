"""Tests for transactional email rendering and sending."""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from coursemart.email.schemas import EmailRecipient, SendEmailRequest
from coursemart.email.service import EmailService
from coursemart.email.templates import (
    render_enrollment_confirmation,
    render_password_reset_link,
)


class TestTemplates:
    def test_enrollment_confirmation_escapes_values(self) -> None:
        html, text = render_enrollment_confirmation(
            "Ana <script>", "Python & Data", "https://app.test/courses/1"
        )

        assert "<script>" not in html
        assert "Python &amp; Data" in html
        assert "https://app.test/courses/1" in html
        assert "Python & Data" in text

    def test_reset_link_mentions_expiry(self) -> None:
        html, text = render_password_reset_link(
            "Ana", "https://app.test/update-password/tok", 5
        )

        assert "https://app.test/update-password/tok" in html
        assert "5 minutes" in text


class TestEmailService:
    @pytest.fixture
    def email_service(self):
        with patch.object(EmailService, "_get_service"):
            service = EmailService(
                credentials_path="/fake/path.json",
                sender_address="no-reply@coursemart.test",
            )
            service.send_simple_email = AsyncMock(
                return_value=MagicMock(success=True, message_id="msg123")
            )
            return service

    @pytest.mark.asyncio
    async def test_enrollment_confirmation(self, email_service) -> None:
        result = await email_service.send_enrollment_confirmation(
            to="student@test.com",
            user_name="Ana",
            course_title="Python Basics",
            course_link="https://app.test/courses/1",
        )

        assert result.success is True
        kwargs = email_service.send_simple_email.call_args.kwargs
        assert kwargs["to"] == "student@test.com"
        assert "Python Basics" in kwargs["subject"]

    def test_message_is_base64_mime(self) -> None:
        service = EmailService(
            credentials_path="/fake/path.json",
            sender_address="no-reply@coursemart.test",
        )
        message = service._create_message(
            SendEmailRequest(
                to=[EmailRecipient(email="a@test.com", name="Ana")],
                subject="Hello",
                body_html="<p>Hi</p>",
                body_text="Hi",
            )
        )

        assert set(message) == {"raw"}

    @pytest.mark.asyncio
    async def test_missing_credentials_never_raises(self) -> None:
        service = EmailService(
            credentials_path="/fake/path.json",
            sender_address="no-reply@coursemart.test",
        )

        response = await service.send_email(
            SendEmailRequest(
                to=[EmailRecipient(email="a@test.com")],
                subject="Hello",
                body_html="<p>Hi</p>",
            )
        )

        assert response.success is False
