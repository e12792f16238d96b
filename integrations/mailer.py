"""
Outgoing mail.

Sends HTML mail over SMTP. When SMTP is not configured the message is
logged and skipped.
"""

import html
import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import Any
import structlog

from config import settings

logger = structlog.get_logger(__name__)


SAMPLE_REQUEST_SUBJECT = "New sample request: {company_name}"

SAMPLE_REQUEST_HTML = """
<div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">
    <h2 style="color: #1e293b;">New sample request</h2>
    <table style="width: 100%; border-collapse: collapse;">
        <tr><td style="padding: 6px; color: #64748b;">Date</td><td style="padding: 6px;">{date}</td></tr>
        <tr><td style="padding: 6px; color: #64748b;">Company</td><td style="padding: 6px;">{company_name}</td></tr>
        <tr><td style="padding: 6px; color: #64748b;">Contact</td><td style="padding: 6px;">{full_name}</td></tr>
        <tr><td style="padding: 6px; color: #64748b;">E-mail</td><td style="padding: 6px;">{email}</td></tr>
        <tr><td style="padding: 6px; color: #64748b;">Phone</td><td style="padding: 6px;">{phone}</td></tr>
        <tr><td style="padding: 6px; color: #64748b;">Address</td><td style="padding: 6px;">{address}</td></tr>
        <tr><td style="padding: 6px; color: #64748b;">Sector</td><td style="padding: 6px;">{sector}</td></tr>
        <tr><td style="padding: 6px; color: #64748b;">Production groups</td><td style="padding: 6px;">{production_groups}</td></tr>
        <tr><td style="padding: 6px; color: #64748b;">Products</td><td style="padding: 6px;">{products}</td></tr>
    </table>
    <p style="color: #94a3b8; font-size: 12px;">Request {request_id}</p>
</div>
"""


def render_template(template: str, context: dict[str, Any]) -> str:
    """Fill a template with HTML-escaped values."""
    return template.format(**{k: html.escape(str(v)) for k, v in context.items()})


def send_mail(to_email: str, subject: str, html_body: str) -> bool:
    """
    Send one HTML mail.

    Returns:
        True if sent, False if SMTP is not configured

    Raises:
        smtplib.SMTPException / OSError: If delivery fails
    """
    if not settings.smtp_host:
        logger.info("mail_not_configured_skipping_send", to=to_email, subject=subject)
        return False

    msg = MIMEMultipart("alternative")
    msg["Subject"] = subject
    msg["From"] = settings.mail_from
    msg["To"] = to_email
    msg.attach(MIMEText(html_body, "html"))

    with smtplib.SMTP(settings.smtp_host, settings.smtp_port, timeout=30) as smtp:
        if settings.smtp_use_tls:
            smtp.starttls()
        if settings.smtp_username and settings.smtp_password:
            smtp.login(settings.smtp_username, settings.smtp_password)
        smtp.send_message(msg)

    logger.info("mail_sent", to=to_email, subject=subject)
    return True
