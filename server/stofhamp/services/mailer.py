"""Outbound email for the contact form."""

import asyncio
import logging
import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from email.utils import formataddr
from html import escape
from typing import Optional

from ..config import Settings, get_settings

logger = logging.getLogger(__name__)


class MailerError(Exception):
    """Raised when a message cannot be delivered to the SMTP server."""


def build_contact_email(
    name: str, email: str, subject: str, message: str, sender: str, recipient: str
) -> MIMEMultipart:
    """Build the HTML notification for a contact form submission."""
    html_content = f"""
        <h3>New contact form message</h3>
        <p><strong>From:</strong> {escape(name)}</p>
        <p><strong>Email:</strong> {escape(email)}</p>
        <p><strong>Subject:</strong> {escape(subject)}</p>
        <p><strong>Message:</strong></p>
        <p>{escape(message).replace(chr(10), "<br>")}</p>
    """

    msg = MIMEMultipart("alternative")
    msg["Subject"] = f"Contact form: {subject}"
    msg["From"] = formataddr((name, sender))
    msg["To"] = recipient
    msg["Reply-To"] = email
    msg.attach(MIMEText(html_content, "html", "utf-8"))
    return msg


def _send(settings: Settings, msg: MIMEMultipart) -> None:
    if settings.smtp_port == 465:
        server = smtplib.SMTP_SSL(settings.smtp_host, settings.smtp_port, timeout=30)
    else:
        server = smtplib.SMTP(settings.smtp_host, settings.smtp_port, timeout=30)

    with server:
        if settings.smtp_port != 465:
            server.starttls()
        server.login(settings.smtp_user, settings.smtp_password)
        server.send_message(msg)


async def send_contact_message(
    name: str,
    email: str,
    subject: str,
    message: str,
    settings: Optional[Settings] = None,
) -> None:
    """Deliver a contact form submission to the site inbox."""
    settings = settings or get_settings()

    if not all([settings.smtp_host, settings.smtp_user, settings.smtp_password]):
        logger.warning("Email configuration incomplete, cannot send contact message")
        raise MailerError("Email is not configured")

    msg = build_contact_email(
        name, email, subject, message,
        sender=settings.smtp_user,
        recipient=settings.mail_recipient,
    )

    try:
        await asyncio.to_thread(_send, settings, msg)
    except (smtplib.SMTPException, OSError) as e:
        logger.error(f"Failed to send contact message from {email}: {e}")
        raise MailerError(str(e)) from e

    logger.info(f"Contact message from {email} sent to {settings.mail_recipient}")
