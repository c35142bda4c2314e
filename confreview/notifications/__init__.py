"""Email notifications: templates, SMTP transport, durable outbox."""
from confreview.notifications.mailer import MailTransport, SmtpTransport
from confreview.notifications.outbox import (
    dispatch_after_commit,
    dispatch_ids,
    dispatch_pending,
    enqueue,
    get_transport,
    run_outbox_worker,
    set_transport,
    shutdown_background,
    wait_for_background,
)
from confreview.notifications.templates import EMAIL_KINDS, TemplateManager

__all__ = [
    "MailTransport",
    "SmtpTransport",
    "TemplateManager",
    "EMAIL_KINDS",
    "enqueue",
    "dispatch_after_commit",
    "dispatch_ids",
    "dispatch_pending",
    "get_transport",
    "set_transport",
    "run_outbox_worker",
    "wait_for_background",
    "shutdown_background",
]
