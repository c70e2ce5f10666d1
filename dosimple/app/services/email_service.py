"""
Outbound email service.
Sends verification, password-reset and password-changed messages over SMTP.
Delivery is best-effort: failures are logged and reported as False, never raised.
When SMTP credentials are not configured the message is logged instead
of sent, which keeps local development and tests self-contained.
"""
from __future__ import annotations

import asyncio
import html
import logging
import smtplib
from email.message import EmailMessage
from email.utils import formataddr
from urllib.parse import urlencode

from app.core.config import settings

logger = logging.getLogger(__name__)


def _layout(title: str, body: str) -> str:
    return f"""\
<!DOCTYPE html>
<html>
  <body style="font-family: Arial, sans-serif; color: #333; max-width: 600px; margin: 0 auto;">
    <h2 style="color: #2563eb;">{settings.APP_NAME}</h2>
    <h3>{title}</h3>
    {body}
    <p style="font-size: 12px; color: #888;">
      This is an automated message from {settings.APP_NAME}. Please do not reply.
    </p>
  </body>
</html>
"""


def _button(url: str, label: str) -> str:
    url = html.escape(url, quote=True)
    return (
        f'<p><a href="{url}" style="background: #2563eb; color: #fff; '
        f'padding: 10px 18px; border-radius: 4px; text-decoration: none;">{label}</a></p>'
        f'<p>Or copy this link into your browser:<br><a href="{url}">{url}</a></p>'
    )


class EmailService:

    def build_link(self, path: str, token: str) -> str:
        base = settings.APP_BASE_URL.rstrip("/")
        return f"{base}{settings.API_V1_STR}/auth/{path}?{urlencode({'token': token})}"

    async def send_email_verification(self, *, to_email: str, name: str, token: str) -> bool:
        link = self.build_link("verify-email", token)
        hours = settings.EMAIL_VERIFICATION_TOKEN_EXPIRE_HOURS
        body = _layout(
            "Verify your email address",
            f"<p>Hi {html.escape(name)},</p>"
            f"<p>Thanks for signing up. Please confirm your email address.</p>"
            f"{_button(link, 'Verify email')}"
            f"<p>This link expires in {hours} hours.</p>",
        )
        return await self.send_email(
            to_email=to_email,
            subject=f"Verify your {settings.APP_NAME} account",
            html=body,
        )

    async def send_password_reset_email(self, *, to_email: str, name: str, token: str) -> bool:
        link = self.build_link("reset-password", token)
        hours = settings.PASSWORD_RESET_TOKEN_EXPIRE_HOURS
        body = _layout(
            "Reset your password",
            f"<p>Hi {html.escape(name)},</p>"
            f"<p>We received a request to reset your password.</p>"
            f"{_button(link, 'Reset password')}"
            f"<p>This link expires in {hours} hour(s). "
            f"If you did not request a reset you can ignore this email.</p>",
        )
        return await self.send_email(
            to_email=to_email,
            subject=f"{settings.APP_NAME} password reset",
            html=body,
        )

    async def send_password_changed_confirmation(self, *, to_email: str, name: str) -> bool:
        body = _layout(
            "Your password was changed",
            f"<p>Hi {html.escape(name)},</p>"
            f"<p>The password for your account was just changed. "
            f"If this was not you, reset your password immediately.</p>",
        )
        return await self.send_email(
            to_email=to_email,
            subject=f"Your {settings.APP_NAME} password was changed",
            html=body,
        )

    async def send_email(self, *, to_email: str, subject: str, html: str) -> bool:
        if not settings.mail_configured:
            logger.info(
                "SMTP not configured; email to %s with subject %r was not sent",
                to_email,
                subject,
            )
            return True

        message = EmailMessage()
        message["Subject"] = subject
        message["From"] = formataddr((settings.MAIL_FROM_NAME, settings.MAIL_FROM_EMAIL))
        message["To"] = to_email
        message.set_content("This message requires an HTML capable mail client.")
        message.add_alternative(html, subtype="html")

        try:
            await asyncio.to_thread(self._deliver, message)
        except (smtplib.SMTPException, OSError):
            logger.exception("Failed to send email to %s", to_email)
            return False

        logger.info("Email sent to %s: %s", to_email, subject)
        return True

    def _deliver(self, message: EmailMessage) -> None:
        with smtplib.SMTP(settings.SMTP_HOST, settings.SMTP_PORT, timeout=30) as smtp:
            smtp.starttls()
            smtp.login(settings.SMTP_USERNAME, settings.SMTP_PASSWORD)
            smtp.send_message(message)


email_service = EmailService()
