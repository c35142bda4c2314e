"""
SMTP transport. Raises NotificationError for every delivery failure so the
outbox can record it and retry later.
"""

from __future__ import annotations

import smtplib
from email.message import EmailMessage
from email.utils import formataddr
from typing import Protocol

from confreview.log import get_logger
from confreview.workflow.errors import NotificationError

logger = get_logger(__name__)


class MailTransport(Protocol):
    def send(self, recipient: str, subject: str, html_body: str) -> None: ...


class SmtpTransport:
    """Sends one HTML message per call over SMTP with STARTTLS."""

    def __init__(self, mail_settings=None):
        if mail_settings is None:
            from config.settings import settings
            mail_settings = settings.mail
        self.cfg = mail_settings

    def _build(self, recipient: str, subject: str, html_body: str) -> EmailMessage:
        msg = EmailMessage()
        msg["From"] = formataddr((self.cfg.sender_name, self.cfg.user))
        msg["To"] = recipient
        msg["Subject"] = subject
        msg.set_content("This message requires an HTML-capable mail client.")
        msg.add_alternative(html_body, subtype="html")
        return msg

    def send(self, recipient: str, subject: str, html_body: str) -> None:
        if not self.cfg.configured:
            logger.error("Email credentials not configured. Set EMAIL_USER and EMAIL_PASS.")
            raise NotificationError("Email service not configured")
        try:
            msg = self._build(recipient, subject, html_body)
            with smtplib.SMTP(self.cfg.host, self.cfg.port, timeout=self.cfg.timeout_seconds) as server:
                if self.cfg.use_tls:
                    server.starttls()
                server.login(self.cfg.user, self.cfg.password)
                server.send_message(msg)
        except (smtplib.SMTPException, OSError, ValueError) as exc:
            raise NotificationError(f"SMTP delivery to {recipient!r} failed: {exc}") from exc
        logger.info("Email sent to %s: %s", recipient, subject)
