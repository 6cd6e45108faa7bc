# Copyright (C) 2025 Scripelle Contributors
# SPDX-License-Identifier: GPL-3.0-or-later

"""Email sending service. Logs to console when SMTP not configured."""

import asyncio
import logging
import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from html import escape

from scripelle_server.config import settings
from scripelle_server.errors import EmailDeliveryError

logger = logging.getLogger(__name__)


def reset_password_url(token: str) -> str:
    base = settings.client_url.rstrip("/")
    return f"{base}/reset-password?token={token}"


def wrap_body_html(plain_body: str) -> str:
    """Wrap plain text body in minimal HTML."""
    body_escaped = escape(plain_body).replace("\n", "<br>\n")
    return f"""<!DOCTYPE html>
<html>
<head><meta charset="utf-8"></head>
<body style="font-family: Arial, sans-serif; color: #333; max-width: 600px;">
<div style="white-space: pre-wrap;">{body_escaped}</div>
</body>
</html>"""


def _build_message(to: str, subject: str, body: str, html: bool) -> MIMEText | MIMEMultipart:
    if html:
        msg: MIMEText | MIMEMultipart = MIMEMultipart("alternative")
        msg.attach(MIMEText(body, "plain"))
        msg.attach(MIMEText(wrap_body_html(body), "html"))
    else:
        msg = MIMEText(body, "plain")
    msg["Subject"] = subject
    msg["From"] = settings.smtp_from
    msg["To"] = to
    return msg


def _deliver(to: str, msg: MIMEText | MIMEMultipart) -> None:
    with smtplib.SMTP(settings.smtp_host, settings.smtp_port) as server:
        server.starttls()
        server.login(settings.smtp_user, settings.smtp_password or "")
        server.sendmail(settings.smtp_from, [to], msg.as_string())


async def send_email(to: str, subject: str, body: str, html: bool = True) -> None:
    """Send an email (plain and HTML). Logs to console if SMTP not configured.

    Raises EmailDeliveryError if the SMTP server rejects or cannot be reached.
    """
    if not (settings.smtp_host and settings.smtp_user):
        logger.info("Email (SMTP not configured): To=%s Subject=%s", to, subject)
        return
    msg = _build_message(to, subject, body, html)
    try:
        await asyncio.to_thread(_deliver, to, msg)
    except (smtplib.SMTPException, OSError) as e:
        logger.exception("Failed to send email to %s", to)
        raise EmailDeliveryError(str(e)) from e
    logger.info("Email sent: To=%s Subject=%s", to, subject)


async def send_password_reset_email(to: str, token: str) -> None:
    """Email the reset link for token. The link expires with the token (1 hour)."""
    url = reset_password_url(token)
    body = (
        "Hello,\n\n"
        "We received a request to reset the password for your Scripelle account. "
        "Open the link below to choose a new password:\n\n"
        f"{url}\n\n"
        "This link will expire in 1 hour.\n"
        "If you didn't request a password reset, you can ignore this email; "
        "your password will remain unchanged.\n\n"
        "The Scripelle Team"
    )
    await send_email(to, "Reset your Scripelle password", body)
