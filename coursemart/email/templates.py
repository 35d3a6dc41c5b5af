"""Email templates for CourseMart.

Every renderer returns ``(html, plain_text)``. HTML bodies share
``BASE_TEMPLATE``; user-supplied values are escaped before formatting.
"""

from datetime import datetime
from html import escape


# ==============================================================================
# Base Template
# ==============================================================================

BASE_TEMPLATE = """
<!DOCTYPE html>
<html lang="en">
<head>
  <meta charset="utf-8">
  <meta name="viewport" content="width=device-width, initial-scale=1.0">
  <title>{title} - CourseMart</title>
</head>
<body style="margin: 0; padding: 0; background-color: #F8FAFC; font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, Arial, sans-serif;">
  <table role="presentation" width="100%" cellpadding="0" cellspacing="0">
    <tr>
      <td align="center" style="padding: 40px 20px;">
        <table role="presentation" width="600" cellpadding="0" cellspacing="0" style="background-color: #FFFFFF; border-radius: 12px; max-width: 600px;">
          <tr>
            <td style="padding: 32px 40px 24px; text-align: center; border-bottom: 1px solid #E5E7EB;">
              <h1 style="margin: 0; font-size: 28px; font-weight: 700; color: #F59E0B;">CourseMart</h1>
            </td>
          </tr>
          <tr>
            <td style="padding: 40px;">
              {content}
            </td>
          </tr>
          <tr>
            <td style="padding: 24px 40px; background-color: #F9FAFB; border-top: 1px solid #E5E7EB; border-radius: 0 0 12px 12px;">
              <p style="margin: 0; font-size: 12px; color: #8E959E; text-align: center; line-height: 1.6;">
                &copy; {year} CourseMart. All rights reserved.<br>
                This email was sent automatically, please do not reply.
              </p>
            </td>
          </tr>
        </table>
      </td>
    </tr>
  </table>
</body>
</html>
"""

FOOTER_TEXT = """
---
(c) {year} CourseMart. All rights reserved.
This email was sent automatically, please do not reply.
"""


def _wrap(title: str, content: str) -> str:
    return BASE_TEMPLATE.format(title=title, content=content, year=datetime.now().year)


# ==============================================================================
# Template: Enrollment Confirmation
# ==============================================================================

ENROLLMENT_CONTENT = """
<h2 style="margin: 0 0 16px; font-size: 24px; font-weight: 600; color: #1A1D23;">
  You're enrolled!
</h2>
<p style="margin: 0 0 24px; font-size: 16px; color: #4B5563; line-height: 1.6;">
  Hi <strong style="color: #1A1D23;">{user_name}</strong>,<br><br>
  Your payment went through and you now have access to
  <strong>{course_title}</strong>.
</p>
<p style="text-align: center;">
  <a href="{course_link}" style="display: inline-block; background-color: #F59E0B; color: #000000; padding: 12px 24px; text-decoration: none; border-radius: 6px;">
    Start learning
  </a>
</p>
"""


def render_enrollment_confirmation(
    user_name: str, course_title: str, course_link: str
) -> tuple[str, str]:
    content = ENROLLMENT_CONTENT.format(
        user_name=escape(user_name),
        course_title=escape(course_title),
        course_link=escape(course_link, quote=True),
    )
    year = datetime.now().year
    plain_text = f"""
You're enrolled! - CourseMart

Hi {user_name},

Your payment went through and you now have access to "{course_title}".

Start learning: {course_link}
{FOOTER_TEXT.format(year=year)}"""
    return _wrap("Course Enrollment", content), plain_text.strip()


# ==============================================================================
# Template: Password Reset Link
# ==============================================================================

PASSWORD_RESET_CONTENT = """
<h2 style="margin: 0 0 16px; font-size: 24px; font-weight: 600; color: #1A1D23;">
  Reset your password
</h2>
<p style="margin: 0 0 24px; font-size: 16px; color: #4B5563; line-height: 1.6;">
  Hi <strong style="color: #1A1D23;">{user_name}</strong>,<br><br>
  We received a request to reset the password for your account.
</p>
<p style="text-align: center;">
  <a href="{reset_link}" style="display: inline-block; background-color: #F59E0B; color: #000000; padding: 12px 24px; text-decoration: none; border-radius: 6px;">
    Choose a new password
  </a>
</p>
<div style="background-color: #FEF3C7; border-left: 4px solid #F59E0B; padding: 12px 16px; margin: 24px 0;">
  <p style="margin: 0; font-size: 14px; color: #92400E;">
    This link expires in <strong>{expires_minutes} minutes</strong>.
    If you did not ask for a reset, ignore this email.
  </p>
</div>
"""


def render_password_reset_link(
    user_name: str, reset_link: str, expires_minutes: int
) -> tuple[str, str]:
    content = PASSWORD_RESET_CONTENT.format(
        user_name=escape(user_name),
        reset_link=escape(reset_link, quote=True),
        expires_minutes=expires_minutes,
    )
    year = datetime.now().year
    plain_text = f"""
Reset your password - CourseMart

Hi {user_name},

We received a request to reset the password for your account.
Choose a new password here: {reset_link}

This link expires in {expires_minutes} minutes.
If you did not ask for a reset, ignore this email.
{FOOTER_TEXT.format(year=year)}"""
    return _wrap("Password Reset", content), plain_text.strip()


# ==============================================================================
# Template: Password Changed Notification
# ==============================================================================

PASSWORD_CHANGED_CONTENT = """
<h2 style="margin: 0 0 16px; font-size: 24px; font-weight: 600; color: #1A1D23;">
  Password updated
</h2>
<p style="margin: 0 0 24px; font-size: 16px; color: #4B5563; line-height: 1.6;">
  Hi <strong style="color: #1A1D23;">{user_name}</strong>,<br><br>
  The password for <strong>{email}</strong> was changed on {changed_at}.
</p>
<div style="background-color: #FEF2F2; border-left: 4px solid #DC2626; padding: 12px 16px; margin: 24px 0;">
  <p style="margin: 0; font-size: 14px; color: #991B1B;">
    <strong>Not you?</strong> Reset your password right away and contact support.
  </p>
</div>
"""


def render_password_changed(user_name: str, email: str) -> tuple[str, str]:
    now = datetime.now()
    changed_at = now.strftime("%Y-%m-%d %H:%M")
    content = PASSWORD_CHANGED_CONTENT.format(
        user_name=escape(user_name),
        email=escape(email),
        changed_at=changed_at,
    )
    plain_text = f"""
Password updated - CourseMart

Hi {user_name},

The password for {email} was changed on {changed_at}.

Not you? Reset your password right away and contact support.
{FOOTER_TEXT.format(year=now.year)}"""
    return _wrap("Password Updated", content), plain_text.strip()
