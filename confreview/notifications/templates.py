"""Email template manager: singleton that loads and caches .html templates."""

from __future__ import annotations

import html
import threading
from pathlib import Path
from typing import Any, Dict, Mapping, Tuple

from confreview.workflow.errors import NotificationError

_TEMPLATES_DIR = Path(__file__).resolve().parent / "templates"

# kind -> (template file, subject format)
EMAIL_KINDS: Dict[str, Tuple[str, str]] = {
    "reviewer_assignment": ("reviewer_assignment.html", "Paper Review Assignment - {conference}"),
    "reviewer_credentials": ("reviewer_credentials.html", "Your Reviewer Account Credentials - {conference}"),
    "paper_status_update": ("paper_status_update.html", "Paper Status Update - {conference} (Paper ID: {paper_id})"),
    "final_submission_reset": ("final_submission_reset.html", "Final Submission Reset - {conference} (Paper ID: {paper_id})"),
    "apply_confirmation": ("apply_confirmation.html", "Conference Registration Confirmation"),
    "final_submission_confirmation": (
        "final_submission_confirmation.html",
        "Camera Ready Submission Confirmation - {conference}",
    ),
    "admin_paper_notification": (
        "admin_paper_notification.html",
        "New Paper {submission_type} Received - {conference} (Paper ID: {paper_id})",
    ),
}


def _escape(value: Any) -> str:
    # multi-line comments keep their line breaks in the HTML body
    return html.escape(str(value)).replace("\n", "<br>")


class TemplateManager:
    """Singleton email template manager.

    Loads ``.html`` templates from ``confreview/notifications/templates/``,
    renders them with ``str.format(**kwargs)`` after HTML-escaping every value,
    and caches each file so it is read from disk at most once per process.

    Usage::

        tm = TemplateManager()
        subject, body = tm.render("reviewer_assignment", {"reviewer_name": "Ada", ...})
    """

    _instance: TemplateManager | None = None
    _lock: threading.Lock = threading.Lock()

    def __new__(cls) -> "TemplateManager":
        if cls._instance is None:
            with cls._lock:
                if cls._instance is None:
                    inst = super().__new__(cls)
                    inst._cache: Dict[str, str] = {}
                    cls._instance = inst
        return cls._instance

    def _load(self, template_name: str) -> str:
        if template_name not in self._cache:
            path = _TEMPLATES_DIR / template_name
            self._cache[template_name] = path.read_text(encoding="utf-8")
        return self._cache[template_name]

    def render(self, kind: str, payload: Mapping[str, Any]) -> Tuple[str, str]:
        """Render the subject line and HTML body for an outbox *kind*.

        ``conference`` and ``portal_url`` default to the mail settings so
        payloads only carry the per-message fields.
        """
        from config.settings import settings

        if kind not in EMAIL_KINDS:
            raise NotificationError(f"unknown email kind: {kind}")
        template_name, subject_fmt = EMAIL_KINDS[kind]
        values: Dict[str, Any] = {
            "conference": settings.mail.conference_name,
            "portal_url": settings.mail.portal_url,
        }
        values.update(payload)
        try:
            subject = subject_fmt.format(**values)
            body = self._load(template_name).format(**{k: _escape(v) for k, v in values.items()})
        except KeyError as exc:
            raise NotificationError(f"missing template field {exc} for {kind}") from exc
        return subject, body

    def invalidate(self, template_name: str | None = None) -> None:
        """Clear one or all cached templates (useful in tests or hot-reload scenarios)."""
        if template_name is None:
            self._cache.clear()
        else:
            self._cache.pop(template_name, None)
