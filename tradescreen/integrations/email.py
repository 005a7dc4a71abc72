from __future__ import annotations

import logging
import smtplib
import ssl
from email.message import EmailMessage

from tradescreen.core.config import settings
from tradescreen.schemas.notification import Notification

logger = logging.getLogger(__name__)


def _smtp_ready() -> bool:
    return bool(settings.smtp_host and settings.hr_notify_email)


def _smtp_password() -> str | None:
    if not settings.smtp_password:
        return None
    # App passwords are often pasted with spaces every 4 chars.
    return settings.smtp_password.replace(" ", "")


def _smtp_login_if_needed(server: smtplib.SMTP) -> None:
    password = _smtp_password()
    if settings.smtp_user and password:
        server.login(settings.smtp_user, password)


def _send(msg: EmailMessage) -> None:
    context = ssl.create_default_context()
    host = settings.smtp_host or ""
    if settings.smtp_use_tls:
        with smtplib.SMTP(host, settings.smtp_port, timeout=15) as server:
            server.starttls(context=context)
            _smtp_login_if_needed(server)
            server.send_message(msg)
        return

    with smtplib.SMTP_SSL(host, settings.smtp_port, context=context, timeout=15) as server:
        _smtp_login_if_needed(server)
        server.send_message(msg)


def build_hr_alert(notification: Notification, recipient: str, sender: str) -> EmailMessage:
    msg = EmailMessage()
    msg["Subject"] = f"[{notification.priority.upper()}] {notification.title}"
    msg["From"] = sender
    msg["To"] = recipient
    lines = [
        notification.message,
        "",
        f"Type: {notification.type}",
        f"Candidate: {notification.candidate_id or '-'}",
        f"Session: {notification.session_id or '-'}",
        f"Assessment: {notification.assessment_id or '-'}",
        f"Created: {notification.created_at.isoformat()}",
    ]
    msg.set_content("\n".join(lines).strip())
    return msg


def send_hr_alert(notification: Notification) -> bool:
    """Email HR about a notification. Delivery is best effort and never raises."""
    if not _smtp_ready():
        logger.info("hr_alert_skipped reason=smtp_not_configured notification=%s", notification.id)
        return False

    recipient = settings.hr_notify_email or ""
    sender = settings.smtp_from or settings.smtp_user or recipient
    msg = build_hr_alert(notification, recipient, sender)
    try:
        _send(msg)
    except Exception as exc:  # noqa: BLE001 - alert delivery must not break scoring
        logger.exception(
            "hr_alert_failed notification=%s host=%s port=%s: %s",
            notification.id,
            settings.smtp_host,
            settings.smtp_port,
            exc,
        )
        return False
    logger.info("hr_alert_sent notification=%s type=%s", notification.id, notification.type)
    return True
