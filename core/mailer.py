"""Outbound email over SMTP. Delivery is best effort: failures are returned, not raised."""
import logging
import smtplib
import ssl
from dataclasses import dataclass
from email.message import EmailMessage
from typing import Optional

from core.config import settings

logger = logging.getLogger(__name__)


@dataclass
class MailResult:
    success: bool
    error: Optional[str] = None


def _sender() -> str:
    from_email = settings.FROM_EMAIL or settings.SMTP_USER
    return f"{settings.FROM_NAME} <{from_email}>"


def build_message(to: str, subject: str, body: str, attachment: Optional[bytes] = None,
                  filename: Optional[str] = None) -> EmailMessage:
    message = EmailMessage()
    message["From"] = _sender()
    message["To"] = to
    message["Subject"] = subject
    message.set_content(body)
    if attachment is not None:
        message.add_attachment(
            attachment,
            maintype="application",
            subtype="pdf",
            filename=filename or "invoice.pdf",
        )
    return message


def send_email(to: str, subject: str, body: str, attachment: Optional[bytes] = None,
               filename: Optional[str] = None) -> MailResult:
    if not settings.SMTP_SERVER:
        logger.warning("SMTP_SERVER is not set; email to %s not sent", to)
        return MailResult(success=False, error="Email delivery is not configured")

    message = build_message(to, subject, body, attachment, filename)
    try:
        # Port 465 is implicit TLS, anything else upgrades with STARTTLS
        if settings.SMTP_PORT == 465:
            server = smtplib.SMTP_SSL(
                settings.SMTP_SERVER, settings.SMTP_PORT,
                timeout=settings.SMTP_TIMEOUT_SECONDS, context=ssl.create_default_context(),
            )
        else:
            server = smtplib.SMTP(settings.SMTP_SERVER, settings.SMTP_PORT, timeout=settings.SMTP_TIMEOUT_SECONDS)
            server.starttls(context=ssl.create_default_context())
        with server:
            if settings.SMTP_USER:
                server.login(settings.SMTP_USER, settings.SMTP_PASSWORD or "")
            server.send_message(message)
    except (smtplib.SMTPException, OSError) as exc:
        logger.error("Email to %s failed: %s", to, exc)
        return MailResult(success=False, error=str(exc))

    logger.info("Email sent to %s: %s", to, subject)
    return MailResult(success=True)
